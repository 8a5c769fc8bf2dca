#!/usr/bin/env python3
"""
Blur a single image on the GPU.

Usage:
    python examples/blur_image.py input.png output.png --radius 8

Any format Pillow reads works as input; the image is blurred as RGBA.
"""

import argparse
import asyncio
import sys
import time
from pathlib import Path

from PIL import Image

from gpu_worker import GpuWorkerError, new_blur_processor


async def main(args):
    image = Image.open(args.input).convert('RGBA')
    width, height = image.size

    blur = await new_blur_processor()
    print(f"✅ GPU: {blur.context.device_name} ({blur.context.backend_name})")

    try:
        start = time.perf_counter()
        pixels = await blur.blur(image.tobytes(), width, height, args.radius)
        elapsed_ms = (time.perf_counter() - start) * 1000
    finally:
        blur.close()

    Image.frombytes('RGBA', (width, height), pixels).save(args.output)
    print(f"✅ {width}x{height} blurred with radius {args.radius} in {elapsed_ms:.1f}ms")
    print(f"   Saved to {args.output}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Box-blur an image on the GPU")
    parser.add_argument("input", type=Path)
    parser.add_argument("output", type=Path)
    parser.add_argument("--radius", type=float, default=5.0, help="Blur radius (default: 5)")
    args = parser.parse_args()

    try:
        asyncio.run(main(args))
    except GpuWorkerError as e:
        print(f"❌ {e.error_type}: {e}", file=sys.stderr)
        sys.exit(1)
