"""
Test helpers: GIF builders and CPU versions of the GPU transforms, used as
references and as a stand-in processor for tests that run without a GPU.
"""

import asyncio
import io

import numpy as np
from PIL import Image

from gpu_worker.errors import TransformError
from gpu_worker.processors import kernel_radius


def to_array(pixels, width, height):
    return np.frombuffer(pixels, dtype=np.uint8).reshape(height, width, 4)


def flip_vertical(pixels, width, height):
    return to_array(pixels, width, height)[::-1].tobytes()


def box_blur(pixels, width, height, radius):
    """Edge-clamped box blur with round-half-up integer means."""
    r = kernel_radius(radius)
    if r == 0:
        return bytes(pixels)

    image = to_array(pixels, width, height)
    padded = np.pad(image, ((r, r), (r, r), (0, 0)), mode='edge').astype(np.int64)

    integral = np.zeros((padded.shape[0] + 1, padded.shape[1] + 1, 4), dtype=np.int64)
    integral[1:, 1:] = padded.cumsum(axis=0).cumsum(axis=1)

    k = 2 * r + 1
    sums = integral[k:, k:] - integral[:-k, k:] - integral[k:, :-k] + integral[:-k, :-k]
    count = k * k
    return ((sums + count // 2) // count).astype(np.uint8).tobytes()


PALETTE = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 255),
]


def random_pixels(width, height, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=width * height * 4, dtype=np.uint8).tobytes()


def striped_frame(width, height, offset=0):
    """RGB frame of horizontal bands in PALETTE colours, shifted by offset."""
    rows = np.arange(height)
    bands = ((rows * len(PALETTE)) // height + offset) % len(PALETTE)
    colours = np.array(PALETTE, dtype=np.uint8)[bands]
    return np.repeat(colours[:, np.newaxis, :], width, axis=1)


def make_gif(frames, durations=None, disposal=None, loop=0, **kwargs):
    """Encode RGB or RGBA numpy frames into GIF bytes with Pillow."""
    images = [Image.fromarray(frame) for frame in frames]
    images = [
        image.quantize(colors=256, dither=Image.Dither.NONE) if image.mode == 'RGB' else image
        for image in images
    ]

    save_kwargs = dict(kwargs)
    if durations is not None:
        save_kwargs['duration'] = durations
    if disposal is not None:
        save_kwargs['disposal'] = disposal
    if loop is not None:
        save_kwargs['loop'] = loop

    output = io.BytesIO()
    images[0].save(
        output,
        format='GIF',
        save_all=True,
        append_images=images[1:],
        optimize=False,
        **save_kwargs
    )
    return output.getvalue()


class CPUProcessor:
    """Processor stand-in doing both transforms with numpy."""

    name = 'cpu'

    def __init__(self, fail_on_call=None, delay=0.0, error=None):
        self.fail_on_call = fail_on_call
        self.delay = delay
        self.error = error or TransformError("device lost")
        self.calls = 0
        self.closed = False

    async def _step(self):
        index = self.calls
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_on_call is not None and index == self.fail_on_call:
            raise self.error

    async def mirror_vertically(self, pixels, width, height):
        await self._step()
        return flip_vertical(pixels, width, height)

    async def blur(self, pixels, width, height, radius):
        await self._step()
        return box_blur(pixels, width, height, radius)

    def close(self):
        self.closed = True
