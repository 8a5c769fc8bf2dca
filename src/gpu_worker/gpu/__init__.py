"""
GPU access using WebGPU.

WebGPU selects the native backend per platform:
- macOS: Metal
- Windows: Direct3D 12
- Linux: Vulkan

Example:
    gpu_ctx = await GPUContext.create()
    texture = DeviceTexture.create(gpu_ctx, width=640, height=480)
    texture.write(pixels)
    result = await texture.read()
"""

from .buffers import (
    BYTES_PER_PIXEL,
    COPY_BYTES_PER_ROW_ALIGNMENT,
    DeviceTexture,
    pad_rows,
    padded_bytes_per_row,
    unpad_rows,
    validate_pixel_buffer,
)
from .compute import ComputeShader, create_uniform_buffer
from .context import GPUContext

__all__ = [
    'GPUContext',
    'DeviceTexture',
    'ComputeShader',
    'create_uniform_buffer',
    'BYTES_PER_PIXEL',
    'COPY_BYTES_PER_ROW_ALIGNMENT',
    'padded_bytes_per_row',
    'pad_rows',
    'unpad_rows',
    'validate_pixel_buffer',
]
