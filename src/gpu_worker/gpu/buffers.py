"""
Host/device pixel layout translation.

Host pixel buffers are tightly packed RGBA rows (width * 4 bytes each).
Buffer<->texture copies on the GPU require every row to start at a multiple
of COPY_BYTES_PER_ROW_ALIGNMENT, so uploads are padded and downloads are
unpadded here. Nothing outside this module ever sees a padded buffer.

Example:
    texture = DeviceTexture.create(gpu_ctx, width=100, height=100)
    texture.write(pixels)          # padded staging upload
    result = await texture.read()  # padded readback, returned tightly packed
"""

from typing import TYPE_CHECKING, Optional, Union

import numpy as np
import wgpu

from ..errors import InvalidInput

if TYPE_CHECKING:
    from .context import GPUContext

BYTES_PER_PIXEL = 4
COPY_BYTES_PER_ROW_ALIGNMENT = 256

PixelData = Union[bytes, bytearray, memoryview, np.ndarray]


def padded_bytes_per_row(
    width: int,
    alignment: int = COPY_BYTES_PER_ROW_ALIGNMENT
) -> int:
    """Row stride for GPU copies: width * 4 rounded up to the alignment."""
    unpadded = width * BYTES_PER_PIXEL
    return (unpadded + alignment - 1) // alignment * alignment


def validate_pixel_buffer(pixels: PixelData, width: int, height: int) -> np.ndarray:
    """
    Check a host pixel buffer against its declared dimensions.

    Returns:
        Flat uint8 view of the pixels (no copy when already contiguous)

    Raises:
        InvalidInput: On non-positive dimensions or a length mismatch
    """
    if width <= 0 or height <= 0:
        raise InvalidInput(f"Image dimensions must be positive, got {width}x{height}")

    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise InvalidInput(f"Expected dtype uint8, got {pixels.dtype}")
        flat = np.ascontiguousarray(pixels).reshape(-1)
    else:
        try:
            flat = np.frombuffer(pixels, dtype=np.uint8)
        except TypeError as e:
            raise InvalidInput(f"Expected a bytes-like pixel buffer, got {type(pixels)}") from e

    expected = width * height * BYTES_PER_PIXEL
    if flat.size != expected:
        raise InvalidInput(
            f"Pixel buffer is {flat.size} bytes, expected {expected} "
            f"for a {width}x{height} RGBA image"
        )

    return flat


def pad_rows(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Lay out a tightly packed buffer with GPU-aligned row stride.

    Returns the input unchanged when width * 4 is already aligned.
    """
    unpadded = width * BYTES_PER_PIXEL
    padded = padded_bytes_per_row(width)

    if padded == unpadded:
        return pixels

    staging = np.zeros((height, padded), dtype=np.uint8)
    staging[:, :unpadded] = pixels.reshape(height, unpadded)
    return staging.reshape(-1)


def unpad_rows(
    data: Union[bytes, memoryview, np.ndarray],
    width: int,
    height: int,
    padded_stride: int
) -> bytes:
    """Copy each row's first width * 4 bytes into a tightly packed buffer."""
    unpadded = width * BYTES_PER_PIXEL
    rows = np.frombuffer(data, dtype=np.uint8)

    if padded_stride == unpadded:
        return rows[:unpadded * height].tobytes()

    rows = rows[:padded_stride * height].reshape(height, padded_stride)
    return rows[:, :unpadded].tobytes()


class DeviceTexture:
    """
    RGBA texture living on the GPU for the duration of one transform.

    Uploads and downloads go through buffers laid out with
    padded_bytes_per_row(width), as required by buffer<->texture copies.
    """

    def __init__(
        self,
        context: 'GPUContext',
        texture: 'wgpu.GPUTexture',
        width: int,
        height: int,
        format: str
    ):
        """
        Initialize device texture (use create() instead).

        Args:
            context: GPU context
            texture: WebGPU texture
            width: Texture width in pixels
            height: Texture height in pixels
            format: Texture format (e.g., 'rgba8uint')
        """
        self.context = context
        self.texture = texture
        self.width = width
        self.height = height
        self.format = format

    @classmethod
    def create(
        cls,
        context: 'GPUContext',
        width: int,
        height: int,
        usage: Optional[int] = None,
        format: str = 'rgba8uint',
        label: Optional[str] = None
    ) -> 'DeviceTexture':
        """
        Create device texture.

        Args:
            context: GPU context
            width: Texture width in pixels
            height: Texture height in pixels
            usage: Texture usage flags (default: TEXTURE_BINDING | COPY_DST)
            format: Texture format (default: 'rgba8uint')
            label: Optional debug label

        Returns:
            DeviceTexture instance
        """
        texture = context.create_texture(
            width=width,
            height=height,
            format=format,
            usage=usage,
            label=label
        )

        return cls(
            context=context,
            texture=texture,
            width=width,
            height=height,
            format=format
        )

    @property
    def padded_bytes_per_row(self) -> int:
        return padded_bytes_per_row(self.width)

    def create_view(self) -> 'wgpu.GPUTextureView':
        return self.texture.create_view()

    def write(self, pixels: np.ndarray) -> None:
        """
        Upload a tightly packed RGBA buffer into the texture.

        Args:
            pixels: Flat uint8 array of width * height * 4 bytes
        """
        stride = self.padded_bytes_per_row
        staging_data = pad_rows(pixels, self.width, self.height)

        staging_buffer = self.context.create_buffer(
            size=stride * self.height,
            usage=wgpu.BufferUsage.COPY_SRC | wgpu.BufferUsage.COPY_DST,
            label='upload staging buffer'
        )
        self.context.queue.write_buffer(staging_buffer, 0, staging_data)

        encoder = self.context.device.create_command_encoder()
        encoder.copy_buffer_to_texture(
            {
                "buffer": staging_buffer,
                "offset": 0,
                "bytes_per_row": stride,
                "rows_per_image": self.height,
            },
            {
                "texture": self.texture,
                "mip_level": 0,
                "origin": (0, 0, 0),
            },
            (self.width, self.height, 1)
        )
        self.context.submit(encoder)

    def encode_readback(self, encoder: 'wgpu.GPUCommandEncoder') -> 'wgpu.GPUBuffer':
        """
        Record a texture -> padded MAP_READ buffer copy into encoder.

        Returns:
            The readback buffer; pass it to finish_readback() after submit.
        """
        stride = self.padded_bytes_per_row
        readback_buffer = self.context.create_buffer(
            size=stride * self.height,
            usage=wgpu.BufferUsage.COPY_DST | wgpu.BufferUsage.MAP_READ,
            label='readback buffer'
        )

        encoder.copy_texture_to_buffer(
            {
                "texture": self.texture,
                "mip_level": 0,
                "origin": (0, 0, 0),
            },
            {
                "buffer": readback_buffer,
                "offset": 0,
                "bytes_per_row": stride,
                "rows_per_image": self.height,
            },
            (self.width, self.height, 1)
        )

        return readback_buffer

    async def finish_readback(self, readback_buffer: 'wgpu.GPUBuffer') -> bytes:
        """Wait for a submitted readback and strip the row padding."""
        data = await self.context.read_buffer(readback_buffer)
        return unpad_rows(data, self.width, self.height, self.padded_bytes_per_row)

    async def read(self) -> bytes:
        """
        Download the texture (async).

        Returns:
            Tightly packed RGBA bytes, width * height * 4 long
        """
        encoder = self.context.device.create_command_encoder()
        readback_buffer = self.encode_readback(encoder)
        self.context.submit(encoder)
        return await self.finish_readback(readback_buffer)

    def __repr__(self) -> str:
        return f"DeviceTexture(width={self.width}, height={self.height}, format={self.format})"
