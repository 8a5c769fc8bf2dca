"""
Vertical mirror on the GPU.

Output row y is input row height - 1 - y. Texels are loaded and stored as
rgba8uint, so the result is a pure row permutation of the input bytes.
"""

import logging
from typing import Any

import numpy as np
import wgpu

from ..gpu import ComputeShader, DeviceTexture, GPUContext
from ..shaders import FLIP_VERTICAL_RENDER_SHADER, FLIP_VERTICAL_SHADER
from .base import Processor

logger = logging.getLogger(__name__)

MIRROR_METHODS = ('render', 'compute')


class MirrorProcessor(Processor):
    """
    GPU vertical mirror.

    Args:
        context: GPU context
        method: 'render' draws a full-covering triangle into the output
            target; 'compute' runs one invocation per pixel

    Example:
        mirror = await MirrorProcessor.create()
        result = await mirror.mirror_vertically(pixels, width=640, height=480)
    """

    name = 'mirror'

    def __init__(self, context: GPUContext, method: str = 'render'):
        super().__init__(context)

        if method not in MIRROR_METHODS:
            raise ValueError(f"method must be one of {MIRROR_METHODS}, got {method!r}")
        self.method = method

        if method == 'render':
            self._build_render_pipeline()
        else:
            self.shader = ComputeShader.from_wgsl(
                context,
                shader_code=FLIP_VERTICAL_SHADER,
                bindings=[
                    {'binding': 0, 'type': 'texture', 'sample_type': 'uint'},
                    {'binding': 1, 'type': 'storage_texture', 'format': 'rgba8uint'},
                ],
                label='flip vertical'
            )

    def _build_render_pipeline(self) -> None:
        device = self.context.device
        shader_module = device.create_shader_module(
            code=FLIP_VERTICAL_RENDER_SHADER,
            label='flip vertical render'
        )

        self._bind_group_layout = device.create_bind_group_layout(
            entries=[
                {
                    "binding": 0,
                    "visibility": wgpu.ShaderStage.FRAGMENT,
                    "texture": {
                        "sample_type": wgpu.TextureSampleType.uint,
                        "view_dimension": wgpu.TextureViewDimension.d2,
                        "multisampled": False,
                    }
                }
            ]
        )

        pipeline_layout = device.create_pipeline_layout(
            bind_group_layouts=[self._bind_group_layout]
        )

        # Integer targets cannot blend, so no blend state is given
        self._render_pipeline = device.create_render_pipeline(
            layout=pipeline_layout,
            vertex={
                "module": shader_module,
                "entry_point": "vs_main",
                "buffers": [],
            },
            fragment={
                "module": shader_module,
                "entry_point": "fs_main",
                "targets": [{"format": wgpu.TextureFormat.rgba8uint}],
            },
            primitive={"topology": wgpu.PrimitiveTopology.triangle_list},
        )

    async def mirror_vertically(self, pixels: Any, width: int, height: int) -> bytes:
        """
        Flip an RGBA image top to bottom.

        Args:
            pixels: width * height * 4 bytes, row-major RGBA
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            Mirrored RGBA bytes of the same size

        Raises:
            InvalidInput: Bad pixel buffer (nothing is submitted)
            TransformError: GPU failure while processing
        """
        flat = self.validate(pixels, width, height)
        return await self._run(flat, width, height)

    async def _process(self, pixels: np.ndarray, width: int, height: int) -> bytes:
        ctx = self.context

        input_texture = DeviceTexture.create(
            ctx, width, height,
            usage=wgpu.TextureUsage.TEXTURE_BINDING | wgpu.TextureUsage.COPY_DST,
            label='mirror input'
        )
        target_usage = (
            wgpu.TextureUsage.RENDER_ATTACHMENT
            if self.method == 'render'
            else wgpu.TextureUsage.STORAGE_BINDING
        )
        output_texture = DeviceTexture.create(
            ctx, width, height,
            usage=target_usage | wgpu.TextureUsage.COPY_SRC,
            label='mirror output'
        )

        input_texture.write(pixels)

        encoder = ctx.device.create_command_encoder()
        if self.method == 'render':
            self._encode_render(encoder, input_texture, output_texture)
        else:
            self.shader.encode_dispatch(
                encoder,
                workgroup_count=self.shader.workgroups_for(width, height),
                bindings={
                    0: input_texture.create_view(),
                    1: output_texture.create_view(),
                }
            )
        readback = output_texture.encode_readback(encoder)
        ctx.submit(encoder)

        logger.debug("Mirror (%s) submitted for %dx%d image", self.method, width, height)
        return await output_texture.finish_readback(readback)

    def _encode_render(
        self,
        encoder: 'wgpu.GPUCommandEncoder',
        source: DeviceTexture,
        target: DeviceTexture
    ) -> None:
        bind_group = self.context.device.create_bind_group(
            layout=self._bind_group_layout,
            entries=[
                {"binding": 0, "resource": source.create_view()},
            ]
        )

        rp = encoder.begin_render_pass(
            color_attachments=[{
                "view": target.create_view(),
                "resolve_target": None,
                "clear_value": (0, 0, 0, 0),
                "load_op": wgpu.LoadOp.clear,
                "store_op": wgpu.StoreOp.store,
            }]
        )
        rp.set_pipeline(self._render_pipeline)
        rp.set_bind_group(0, bind_group)
        rp.draw(3, 1, 0, 0)  # 3 vertices for fullscreen triangle
        rp.end()
