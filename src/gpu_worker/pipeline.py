"""
Transform pipeline orchestrator.

Drives one processor through decode -> per-frame transform -> encode for a
single request:

    DECODED -> TRANSFORMING(frame_index) -> ENCODING -> DONE
                         any step -> FAILED

Frames are transformed one at a time, in order, on the same processor, so
the GPU context is initialised once per request. The first failing frame
aborts the request; no partial animation is ever returned.

Example:
    pipeline = TransformPipeline(await new_mirror_processor(), Mirror())
    gif_bytes = await pipeline.run(gif_bytes)

    # Or on already decoded frames
    animation = await process_animation(animation, Blur(radius=3))
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional

from .codec import DEFAULT_MAX_DECODED_BYTES, Animation, decode_gif, encode_gif
from .errors import GpuWorkerError, InvalidInput, TransformError
from .processors import (
    BlurProcessor,
    MirrorProcessor,
    Processor,
    kernel_radius,
    new_blur_processor,
    new_mirror_processor,
)

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Per-request orchestrator state."""

    PENDING = 'pending'
    DECODED = 'decoded'
    TRANSFORMING = 'transforming'
    ENCODING = 'encoding'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class Mirror:
    """Vertical mirror transform."""

    name: ClassVar[str] = 'mirror'

    async def create_processor(self, power_preference: str = 'high-performance') -> MirrorProcessor:
        return await new_mirror_processor(power_preference=power_preference)

    async def apply(self, processor: MirrorProcessor, pixels: bytes, width: int, height: int) -> bytes:
        return await processor.mirror_vertically(pixels, width, height)


@dataclass(frozen=True)
class Blur:
    """Box blur transform."""

    radius: float = 5.0
    name: ClassVar[str] = 'blur'

    def __post_init__(self):
        # Reject bad radii before any GPU work
        kernel_radius(self.radius)

    async def create_processor(self, power_preference: str = 'high-performance') -> BlurProcessor:
        return await new_blur_processor(power_preference=power_preference)

    async def apply(self, processor: BlurProcessor, pixels: bytes, width: int, height: int) -> bytes:
        return await processor.blur(pixels, width, height, self.radius)


class TransformPipeline:
    """
    Runs one transform over every frame of one animation.

    Attributes:
        state: Current PipelineState
        frame_index: Index of the frame being (or last) transformed
        error: The error that moved the pipeline to FAILED, if any
    """

    def __init__(
        self,
        processor: Processor,
        transform: Any,
        max_decoded_bytes: int = DEFAULT_MAX_DECODED_BYTES
    ):
        self.processor = processor
        self.transform = transform
        self.max_decoded_bytes = max_decoded_bytes
        self.state = PipelineState.PENDING
        self.frame_index: Optional[int] = None
        self.error: Optional[GpuWorkerError] = None

    def _fail(self, error: GpuWorkerError) -> GpuWorkerError:
        self.state = PipelineState.FAILED
        self.error = error
        return error

    async def transform_animation(self, animation: Animation) -> Animation:
        """
        Transform every frame, keeping count, order, delay and disposal.

        Raises:
            GpuWorkerError: The first frame failure, with frame_index set and
                the original error chained
        """
        self.state = PipelineState.DECODED
        total = len(animation.frames)
        transformed = []

        for index, frame in enumerate(animation.frames):
            self.state = PipelineState.TRANSFORMING
            self.frame_index = index
            logger.debug("Processing frame %d/%d", index + 1, total)

            try:
                pixels = await self.transform.apply(
                    self.processor, frame.pixels, frame.width, frame.height
                )
            except GpuWorkerError as e:
                logger.error("Frame %d failed: %s", index, e)
                raise self._fail(
                    type(e)(f"Frame {index}: {e.message}", frame_index=index)
                ) from e
            except Exception as e:
                logger.error("Frame %d failed: %s", index, e)
                raise self._fail(
                    TransformError(f"Frame {index}: {e}", frame_index=index)
                ) from e

            try:
                transformed.append(frame.with_pixels(pixels))
            except InvalidInput as e:
                logger.error("Frame %d: bad processor output: %s", index, e)
                raise self._fail(TransformError(
                    f"Frame {index}: processor returned unusable pixels: {e.message}",
                    frame_index=index
                )) from e

        return animation.with_frames(transformed)

    async def run(self, gif_bytes: bytes) -> bytes:
        """
        Decode, transform and re-encode a GIF.

        Decoding and encoding run in worker threads so other requests keep
        being served while Pillow works.
        """
        try:
            animation = await asyncio.to_thread(decode_gif, gif_bytes, self.max_decoded_bytes)
        except GpuWorkerError as e:
            raise self._fail(e)

        result = await self.transform_animation(animation)

        self.state = PipelineState.ENCODING
        try:
            output = await asyncio.to_thread(encode_gif, result)
        except GpuWorkerError as e:
            raise self._fail(e)

        self.state = PipelineState.DONE
        logger.info(
            "%s applied to %d frames (%dx%d)",
            self.transform.name, len(result), result.width, result.height
        )
        return output


async def process_animation(
    animation: Animation,
    transform: Any,
    processor: Optional[Processor] = None
) -> Animation:
    """
    Apply transform to every frame of animation.

    Args:
        animation: Decoded animation
        transform: Blur(radius) or Mirror()
        processor: Processor to reuse; one is created for the transform
            when omitted (raises GpuInitError if no GPU is available)
            and closed again before returning

    Returns:
        New Animation with the same frame count, order and metadata
    """
    owned = processor is None
    if owned:
        processor = await transform.create_processor()

    try:
        pipeline = TransformPipeline(processor, transform)
        return await pipeline.transform_animation(animation)
    finally:
        if owned:
            processor.close()
