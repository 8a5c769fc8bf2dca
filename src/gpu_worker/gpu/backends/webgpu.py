"""
WebGPU backend implementation.

Provides GPU access through wgpu-py, which selects the native API per
platform:
- macOS: Metal
- Windows: Direct3D 12
- Linux: Vulkan
"""

import logging
import sys
from typing import Any, Dict, Optional

import wgpu

from ...errors import GpuInitError

logger = logging.getLogger(__name__)

# Blur writes to a storage texture from the compute stage
MIN_STORAGE_TEXTURES_PER_STAGE = 1


class WebGPUBackend:
    """
    WebGPU backend holding one adapter, one device and its queue.

    Example:
        backend = await WebGPUBackend.create()
        print(f"Using {backend.backend_name} on {backend.adapter_info['description']}")
    """

    def __init__(
        self,
        adapter: 'wgpu.GPUAdapter',
        device: 'wgpu.GPUDevice',
        queue: 'wgpu.GPUQueue'
    ):
        """
        Initialize WebGPU backend (use create() instead).

        Args:
            adapter: WebGPU adapter
            device: WebGPU device
            queue: WebGPU command queue
        """
        self.adapter = adapter
        self.device = device
        self.queue = queue

        self._adapter_info: Optional[Dict[str, Any]] = None

    @classmethod
    async def create(
        cls,
        power_preference: str = 'high-performance',
        label: str = 'gpu-worker device'
    ) -> 'WebGPUBackend':
        """
        Create WebGPU backend (async).

        Args:
            power_preference: 'high-performance' or 'low-power'
            label: Debug label for the logical device

        Returns:
            WebGPUBackend instance

        Raises:
            GpuInitError: If no adapter satisfies the minimum requirements or
                the device request fails
        """
        try:
            adapter = await wgpu.gpu.request_adapter_async(
                power_preference=power_preference
            )
        except Exception as e:
            raise GpuInitError(f"Failed to request WebGPU adapter: {e}") from e

        if adapter is None:
            raise GpuInitError("Failed to find an appropriate adapter")

        cls._check_adapter(adapter)

        try:
            device = await adapter.request_device_async(label=label)
        except Exception as e:
            raise GpuInitError(f"Failed to request WebGPU device: {e}") from e

        if device is None:
            raise GpuInitError("Failed to request WebGPU device")

        return cls(adapter=adapter, device=device, queue=device.queue)

    @staticmethod
    def _check_adapter(adapter: 'wgpu.GPUAdapter') -> None:
        limits = adapter.limits
        storage_textures = limits.get(
            'max-storage-textures-per-shader-stage',
            limits.get('max_storage_textures_per_shader_stage', 4)
        )
        if storage_textures < MIN_STORAGE_TEXTURES_PER_STAGE:
            raise GpuInitError(
                "Adapter does not support storage textures in compute shaders"
            )

    @property
    def adapter_info(self) -> Dict[str, Any]:
        """
        Get adapter information.

        Returns:
            Dictionary with adapter details:
            - description: GPU name (e.g., "Apple M1 Pro")
            - backend_type: Backend type (e.g., "Metal", "D3D12", "Vulkan")
            - adapter_type: "DiscreteGPU", "IntegratedGPU", "CPU", ...
        """
        if self._adapter_info is None:
            info = getattr(self.adapter, 'info', None) or {}
            description = (
                info.get('device')
                or info.get('description')
                or 'Unknown GPU'
            )
            self._adapter_info = {
                'description': description,
                'backend_type': info.get('backend_type') or self.backend_name,
                'adapter_type': info.get('adapter_type', 'Unknown'),
            }

        return self._adapter_info

    @property
    def backend_name(self) -> str:
        """
        Get backend name.

        Returns:
            'Metal' (macOS), 'D3D12' (Windows), or 'Vulkan' (Linux)
        """
        if sys.platform == 'darwin':
            return 'Metal'
        elif sys.platform == 'win32':
            return 'D3D12'
        else:
            return 'Vulkan'

    @property
    def limits(self) -> Dict[str, int]:
        """
        Get the device limits relevant to image transforms.

        Returns:
            Dictionary with device limits:
            - max_texture_dimension_2d: Maximum 2D texture size
            - max_buffer_size: Maximum buffer size
            - max_compute_workgroup_size_x/y: Max workgroup dimensions
        """
        limits = self.device.limits

        def get(name: str, default: int) -> int:
            return limits.get(name.replace('_', '-'), limits.get(name, default))

        return {
            'max_texture_dimension_2d': get('max_texture_dimension_2d', 8192),
            'max_buffer_size': get('max_buffer_size', 256 * 1024 * 1024),
            'max_compute_workgroup_size_x': get('max_compute_workgroup_size_x', 256),
            'max_compute_workgroup_size_y': get('max_compute_workgroup_size_y', 256),
        }

    def create_buffer(
        self,
        size: int,
        usage: 'wgpu.BufferUsage',
        label: Optional[str] = None
    ) -> 'wgpu.GPUBuffer':
        """
        Create GPU buffer.

        Args:
            size: Buffer size in bytes
            usage: Buffer usage flags (e.g., wgpu.BufferUsage.MAP_READ)
            label: Optional debug label

        Returns:
            WebGPU buffer
        """
        return self.device.create_buffer(
            size=size,
            usage=usage,
            label=label or ''
        )

    def create_texture(
        self,
        width: int,
        height: int,
        format: str,
        usage: 'wgpu.TextureUsage',
        label: Optional[str] = None
    ) -> 'wgpu.GPUTexture':
        """
        Create 2D GPU texture.

        Args:
            width: Texture width in pixels
            height: Texture height in pixels
            format: Texture format (e.g. 'rgba8uint')
            usage: Texture usage flags
            label: Optional debug label

        Returns:
            WebGPU texture
        """
        return self.device.create_texture(
            size=(width, height, 1),
            format=format,
            usage=usage,
            dimension='2d',
            label=label or ''
        )

    def __repr__(self) -> str:
        info = self.adapter_info
        return (
            f"WebGPUBackend(backend={self.backend_name}, "
            f"device={info.get('description', 'Unknown')})"
        )
