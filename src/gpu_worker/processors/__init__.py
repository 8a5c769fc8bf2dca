"""
GPU image processors.

Each processor owns its own GPU context; blur and mirror never share one.

Example:
    mirror = await new_mirror_processor()
    flipped = await mirror.mirror_vertically(pixels, width, height)
"""

from .base import Processor
from .blur import MAX_BLUR_RADIUS, BlurProcessor, kernel_radius
from .mirror import MIRROR_METHODS, MirrorProcessor


async def new_blur_processor(power_preference: str = 'high-performance') -> BlurProcessor:
    """Create a BlurProcessor with a fresh GPU context (raises GpuInitError)."""
    return await BlurProcessor.create(power_preference=power_preference)


async def new_mirror_processor(
    power_preference: str = 'high-performance',
    method: str = 'render'
) -> MirrorProcessor:
    """Create a MirrorProcessor with a fresh GPU context (raises GpuInitError)."""
    return await MirrorProcessor.create(power_preference=power_preference, method=method)


__all__ = [
    'Processor',
    'BlurProcessor',
    'MirrorProcessor',
    'MAX_BLUR_RADIUS',
    'MIRROR_METHODS',
    'kernel_radius',
    'new_blur_processor',
    'new_mirror_processor',
]
