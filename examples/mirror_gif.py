#!/usr/bin/env python3
"""
Mirror every frame of an animated GIF on the GPU.

Usage:
    python examples/mirror_gif.py input.gif output.gif [--method compute]

Frame count, per-frame delays, disposal methods and the loop count are kept.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from gpu_worker import (
    GpuWorkerError,
    Mirror,
    TransformPipeline,
    new_mirror_processor,
)
from gpu_worker.processors import MIRROR_METHODS


async def main(args):
    processor = await new_mirror_processor(method=args.method)
    print(f"✅ GPU: {processor.context.device_name} ({processor.context.backend_name})")

    try:
        pipeline = TransformPipeline(processor, Mirror())
        output = await pipeline.run(args.input.read_bytes())
    finally:
        processor.close()

    args.output.write_bytes(output)
    print(f"✅ Wrote {args.output} ({processor.frames_processed} frames)")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Mirror an animated GIF vertically")
    parser.add_argument("input", type=Path, help="Input GIF")
    parser.add_argument("output", type=Path, help="Output GIF")
    parser.add_argument("--method", choices=MIRROR_METHODS, default='render')
    parser.add_argument("--verbose", action="store_true", help="Log every frame")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        asyncio.run(main(args))
    except GpuWorkerError as e:
        print(f"❌ {e.error_type}: {e}", file=sys.stderr)
        sys.exit(1)
