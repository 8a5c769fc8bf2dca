"""
GPU context for managing WebGPU device and queue.

This module provides a high-level context for GPU operations,
abstracting the underlying WebGPU backend.
"""

import asyncio
import logging
from typing import Dict, Optional

import wgpu

from ..errors import TransformError
from .backends.webgpu import WebGPUBackend

logger = logging.getLogger(__name__)

DEFAULT_MAP_TIMEOUT = 30.0


class GPUContext:
    """
    GPU context for one processor.

    Owns the WebGPU adapter, device and queue, and is the only place GPU
    resources are created. Each processor has its own context (not global).

    Example:
        # Create context
        gpu_ctx = await GPUContext.create()

        # Get device info
        print(f"Using {gpu_ctx.backend_name} on {gpu_ctx.device_name}")

        # Read back a MAP_READ buffer
        data = await gpu_ctx.read_buffer(staging_buffer)
    """

    def __init__(
        self,
        backend: WebGPUBackend,
        map_timeout: float = DEFAULT_MAP_TIMEOUT
    ):
        """
        Initialize GPU context (use create() instead).

        Args:
            backend: WebGPU backend instance
            map_timeout: Seconds to wait for a readback mapping
        """
        self.backend = backend
        self.map_timeout = map_timeout

    @classmethod
    async def create(
        cls,
        power_preference: str = 'high-performance',
        map_timeout: float = DEFAULT_MAP_TIMEOUT
    ) -> 'GPUContext':
        """
        Create GPU context (async).

        Args:
            power_preference: 'high-performance' or 'low-power'
            map_timeout: Seconds to wait for a readback mapping

        Returns:
            GPUContext instance

        Raises:
            GpuInitError: If no compatible adapter/device is available
        """
        backend = await WebGPUBackend.create(power_preference=power_preference)
        context = cls(backend=backend, map_timeout=map_timeout)
        logger.info(
            "GPU context ready: %s via %s", context.device_name, context.backend_name
        )
        return context

    @property
    def device(self) -> 'wgpu.GPUDevice':
        """Get WebGPU device."""
        return self.backend.device

    @property
    def queue(self) -> 'wgpu.GPUQueue':
        """Get WebGPU command queue."""
        return self.backend.queue

    @property
    def adapter(self) -> 'wgpu.GPUAdapter':
        """Get WebGPU adapter."""
        return self.backend.adapter

    @property
    def backend_name(self) -> str:
        """
        Get backend name.

        Returns:
            'Metal' (macOS), 'D3D12' (Windows), or 'Vulkan' (Linux)
        """
        return self.backend.backend_name

    @property
    def device_name(self) -> str:
        """
        Get device name.

        Returns:
            GPU device name (e.g., "Apple M1 Pro", "NVIDIA RTX 4090")
        """
        info = self.backend.adapter_info
        return info.get('description', 'Unknown GPU')

    @property
    def limits(self) -> Dict[str, int]:
        """Get device limits."""
        return self.backend.limits

    def create_buffer(
        self,
        size: int,
        usage: Optional[int] = None,
        label: Optional[str] = None
    ) -> 'wgpu.GPUBuffer':
        """
        Create GPU buffer.

        Args:
            size: Buffer size in bytes
            usage: Buffer usage flags (default: COPY_SRC | COPY_DST)
            label: Optional debug label

        Returns:
            WebGPU buffer
        """
        if usage is None:
            usage = wgpu.BufferUsage.COPY_SRC | wgpu.BufferUsage.COPY_DST

        return self.backend.create_buffer(size=size, usage=usage, label=label)

    def create_texture(
        self,
        width: int,
        height: int,
        format: str = 'rgba8uint',
        usage: Optional[int] = None,
        label: Optional[str] = None
    ) -> 'wgpu.GPUTexture':
        """
        Create GPU texture.

        Args:
            width: Texture width in pixels
            height: Texture height in pixels
            format: Texture format (default: 'rgba8uint', exact byte storage)
            usage: Texture usage flags (default: TEXTURE_BINDING | COPY_DST)
            label: Optional debug label

        Returns:
            WebGPU texture
        """
        if usage is None:
            usage = wgpu.TextureUsage.TEXTURE_BINDING | wgpu.TextureUsage.COPY_DST

        return self.backend.create_texture(
            width=width,
            height=height,
            format=format,
            usage=usage,
            label=label
        )

    def submit(self, encoder: 'wgpu.GPUCommandEncoder') -> None:
        """Finish an encoder and submit it; wgpu failures become TransformError."""
        try:
            self.queue.submit([encoder.finish()])
        except wgpu.GPUError as e:
            raise TransformError(f"GPU submission failed: {e}") from e

    async def read_buffer(self, buffer: 'wgpu.GPUBuffer') -> bytes:
        """
        Map a MAP_READ buffer and copy its contents to host memory.

        The mapping completes once every command submitted before it has
        executed; wgpu polls the device and yields to the event loop while
        waiting. This is the only suspension point of a transform.

        Raises:
            TransformError: If mapping fails or exceeds map_timeout
        """
        try:
            await asyncio.wait_for(
                buffer.map_async(wgpu.MapMode.READ),
                timeout=self.map_timeout
            )
        except asyncio.TimeoutError as e:
            raise TransformError(
                f"GPU readback did not complete within {self.map_timeout}s"
            ) from e
        except wgpu.GPUError as e:
            raise TransformError(f"Failed to map buffer: {e}") from e

        try:
            data = bytes(buffer.read_mapped())
        finally:
            buffer.unmap()

        return data

    def destroy(self) -> None:
        """Destroy the logical device and everything allocated from it."""
        self.device.destroy()

    def __repr__(self) -> str:
        return (
            f"GPUContext(backend={self.backend_name}, "
            f"device={self.device_name})"
        )
