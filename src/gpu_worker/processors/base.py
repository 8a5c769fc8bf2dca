"""
Base class for GPU image processors.

A processor owns exactly one GPUContext, built when the processor is
created, and runs one transform call at a time on it.
"""

import asyncio
import logging
from typing import Any

import numpy as np
import wgpu

from ..errors import GpuWorkerError, InvalidInput, TransformError
from ..gpu import GPUContext, validate_pixel_buffer
from ..gpu.context import DEFAULT_MAP_TIMEOUT

logger = logging.getLogger(__name__)


class Processor:
    """
    Base class for processors.

    Subclasses compile their pipelines in __init__ and implement
    _process(pixels, width, height, *args) returning tightly packed bytes.

    Example:
        processor = await MirrorProcessor.create()
        result = await processor.mirror_vertically(pixels, width, height)
    """

    name = 'processor'

    def __init__(self, context: GPUContext):
        self.context = context
        self.frames_processed = 0
        self._lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        power_preference: str = 'high-performance',
        map_timeout: float = DEFAULT_MAP_TIMEOUT,
        **kwargs: Any
    ) -> 'Processor':
        """
        Create a processor with its own GPU context (async).

        Raises:
            GpuInitError: If no compatible GPU is available
        """
        context = await GPUContext.create(
            power_preference=power_preference,
            map_timeout=map_timeout
        )
        processor = cls(context, **kwargs)
        logger.info("Created %s on %s", processor.name, context.device_name)
        return processor

    def validate(self, pixels: Any, width: int, height: int) -> np.ndarray:
        """Validate a pixel buffer and its dimensions against device limits."""
        flat = validate_pixel_buffer(pixels, width, height)

        max_dim = self.context.limits['max_texture_dimension_2d']
        if width > max_dim or height > max_dim:
            raise InvalidInput(
                f"Image {width}x{height} exceeds the device texture limit of {max_dim}"
            )

        return flat

    async def _run(self, pixels: np.ndarray, width: int, height: int, *args: Any) -> bytes:
        async with self._lock:
            try:
                result = await self._process(pixels, width, height, *args)
            except GpuWorkerError:
                raise
            except wgpu.GPUError as e:
                logger.error("%s failed on %dx%d image: %s", self.name, width, height, e)
                raise TransformError(f"{self.name} failed: {e}") from e

            self.frames_processed += 1
            return result

    async def _process(self, pixels: np.ndarray, width: int, height: int, *args: Any) -> bytes:
        raise NotImplementedError

    def close(self) -> None:
        """Release the GPU device; the processor cannot be used afterwards."""
        self.context.destroy()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(context={self.context!r})"
