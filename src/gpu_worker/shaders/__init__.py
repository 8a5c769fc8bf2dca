"""
WGSL shader library for gpu-worker.

Example usage:
    from gpu_worker.shaders import BOX_BLUR_SHADER

    shader = ComputeShader.from_wgsl(gpu_ctx, BOX_BLUR_SHADER, bindings=[...])
"""

from .blur import BOX_BLUR_SHADER
from .transforms import FLIP_VERTICAL_RENDER_SHADER, FLIP_VERTICAL_SHADER

__all__ = [
    'BOX_BLUR_SHADER',
    'FLIP_VERTICAL_SHADER',
    'FLIP_VERTICAL_RENDER_SHADER',
]
