"""
Box blur on the GPU.

Every output pixel is the rounded mean of the (2r+1)^2 window around it,
sampled with edge clamping. Each RGBA channel, alpha included, is averaged
independently with integer arithmetic, so results are exact and always lie
within the window's min/max.
"""

import logging
import math
from typing import Any

import numpy as np
import wgpu

from ..errors import InvalidInput
from ..gpu import ComputeShader, DeviceTexture, GPUContext, create_uniform_buffer
from ..shaders import BOX_BLUR_SHADER
from .base import Processor

logger = logging.getLogger(__name__)

MAX_BLUR_RADIUS = 1024


def kernel_radius(radius: float) -> int:
    """
    Integer half-width of the blur window.

    Raises:
        InvalidInput: If radius is negative, NaN or above MAX_BLUR_RADIUS
    """
    try:
        radius = float(radius)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Blur radius must be a number, got {radius!r}") from e

    if math.isnan(radius) or radius < 0:
        raise InvalidInput(f"Blur radius must be >= 0, got {radius}")
    if radius >= MAX_BLUR_RADIUS + 1:
        raise InvalidInput(f"Blur radius must be <= {MAX_BLUR_RADIUS}, got {radius}")

    return int(math.floor(radius))


class BlurProcessor(Processor):
    """
    GPU box blur.

    Example:
        blur = await BlurProcessor.create()
        result = await blur.blur(pixels, width=640, height=480, radius=5.0)
    """

    name = 'blur'

    def __init__(self, context: GPUContext):
        super().__init__(context)
        self.shader = ComputeShader.from_wgsl(
            context,
            shader_code=BOX_BLUR_SHADER,
            bindings=[
                {'binding': 0, 'type': 'texture', 'sample_type': 'uint'},
                {'binding': 1, 'type': 'storage_texture', 'format': 'rgba8uint'},
                {'binding': 2, 'type': 'uniform'},
            ],
            label='box blur'
        )

    async def blur(self, pixels: Any, width: int, height: int, radius: float) -> bytes:
        """
        Blur an RGBA image.

        Args:
            pixels: width * height * 4 bytes, row-major RGBA
            width: Image width in pixels
            height: Image height in pixels
            radius: Blur radius; truncated to an integer half-width

        Returns:
            Blurred RGBA bytes of the same size

        Raises:
            InvalidInput: Bad radius or pixel buffer (nothing is submitted)
            TransformError: GPU failure while processing
        """
        r = kernel_radius(radius)
        flat = self.validate(pixels, width, height)

        if r == 0:
            return flat.tobytes()

        return await self._run(flat, width, height, r)

    async def _process(self, pixels: np.ndarray, width: int, height: int, r: int) -> bytes:
        ctx = self.context

        input_texture = DeviceTexture.create(
            ctx, width, height,
            usage=wgpu.TextureUsage.TEXTURE_BINDING | wgpu.TextureUsage.COPY_DST,
            label='blur input'
        )
        output_texture = DeviceTexture.create(
            ctx, width, height,
            usage=wgpu.TextureUsage.STORAGE_BINDING | wgpu.TextureUsage.COPY_SRC,
            label='blur output'
        )
        params = create_uniform_buffer(ctx, data={'radius': r}, layout=[('radius', 'i32')])

        input_texture.write(pixels)

        encoder = ctx.device.create_command_encoder()
        self.shader.encode_dispatch(
            encoder,
            workgroup_count=self.shader.workgroups_for(width, height),
            bindings={
                0: input_texture.create_view(),
                1: output_texture.create_view(),
                2: params,
            }
        )
        readback = output_texture.encode_readback(encoder)
        ctx.submit(encoder)

        logger.debug("Blur r=%d dispatched for %dx%d image", r, width, height)
        return await output_texture.finish_readback(readback)
