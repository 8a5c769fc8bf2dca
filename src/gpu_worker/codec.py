"""
GIF frame codec.

Decodes an animated GIF into fully composited RGBA frames plus animation
metadata, and encodes a processed frame sequence back into a GIF. Pillow does
the bitstream work, including disposal compositing on decode; this module
only moves data between Pillow images and the Frame/Animation types.

Example:
    animation = decode_gif(gif_bytes)
    print(len(animation), animation.width, animation.height, animation.loop)
    gif_bytes = encode_gif(animation)
"""

import dataclasses
import io
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

import numpy as np
from PIL import GifImagePlugin, Image, ImageSequence, UnidentifiedImageError

from .config import DEFAULT_MAX_DECODED_BYTES
from .errors import DecodeError, EncodeError, InvalidInput, PayloadTooLarge
from .gpu.buffers import BYTES_PER_PIXEL

logger = logging.getLogger(__name__)

# Palette index reserved for transparent pixels when a frame has any
TRANSPARENT_INDEX = 255
ALPHA_THRESHOLD = 128

GIF_TRAILER = b';'


class Disposal(IntEnum):
    """GIF disposal method: what happens to a frame before the next is drawn."""

    UNSPECIFIED = 0
    NONE = 1          # leave in place
    BACKGROUND = 2    # restore to background
    PREVIOUS = 3      # restore to previous

    @classmethod
    def from_gif(cls, value: Optional[int]) -> 'Disposal':
        try:
            return cls(value or 0)
        except ValueError:
            return cls.UNSPECIFIED


@dataclass
class Frame:
    """One display step of an animation."""

    pixels: bytes
    width: int
    height: int
    delay: int = 0                                  # centiseconds
    disposal: Disposal = Disposal.UNSPECIFIED

    def __post_init__(self):
        expected = self.width * self.height * BYTES_PER_PIXEL
        if len(self.pixels) != expected:
            raise InvalidInput(
                f"Frame pixel buffer is {len(self.pixels)} bytes, expected {expected} "
                f"for {self.width}x{self.height}"
            )

    def with_pixels(self, pixels: bytes) -> 'Frame':
        """Copy of this frame with new pixel content and the same metadata."""
        return dataclasses.replace(self, pixels=bytes(pixels))

    def to_image(self) -> Image.Image:
        return Image.frombytes('RGBA', (self.width, self.height), self.pixels)


@dataclass
class Animation:
    """Ordered frames plus container-level metadata."""

    frames: List[Frame]
    width: int
    height: int
    loop: Optional[int] = 0         # None: no loop extension, 0: forever
    background: int = 0
    comment: Optional[bytes] = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.frames)

    def with_frames(self, frames: List[Frame]) -> 'Animation':
        return dataclasses.replace(self, frames=list(frames))


def decode_gif(data: bytes, max_decoded_bytes: int = DEFAULT_MAX_DECODED_BYTES) -> Animation:
    """
    Decode a GIF into composited RGBA frames.

    A small GIF can expand to a huge frame sequence (many frames on a large
    canvas), so decoding stops once the frames would exceed max_decoded_bytes.

    Raises:
        DecodeError: Not a GIF, malformed data, or no frames
        PayloadTooLarge: Decoded frames would exceed max_decoded_bytes
    """
    if not data:
        raise DecodeError("Empty input")

    try:
        image = Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Input is not a readable image: {e}") from e
    except (OSError, EOFError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Malformed GIF: {e}") from e

    with image:
        if image.format != 'GIF':
            raise DecodeError(f"Expected a GIF, got {image.format}")

        width, height = image.size
        # Container metadata is attached to the first frame; read it before seeking
        loop = image.info.get('loop')
        background = image.info.get('background', 0)
        comment = image.info.get('comment')

        frame_bytes = width * height * BYTES_PER_PIXEL
        frames = []
        try:
            for frame in ImageSequence.Iterator(image):
                decoded_bytes = (len(frames) + 1) * frame_bytes
                if decoded_bytes > max_decoded_bytes:
                    raise PayloadTooLarge(
                        f"Decoded GIF exceeds {max_decoded_bytes} bytes "
                        f"({width}x{height}, more than {len(frames)} frames)"
                    )

                rgba = frame.convert('RGBA')
                if rgba.size != (width, height):
                    canvas = Image.new('RGBA', (width, height))
                    canvas.paste(rgba, (0, 0))
                    rgba = canvas

                duration_ms = frame.info.get('duration') or 0
                frames.append(Frame(
                    pixels=rgba.tobytes(),
                    width=width,
                    height=height,
                    delay=int(round(duration_ms / 10)),
                    disposal=Disposal.from_gif(getattr(frame, 'disposal_method', 0)),
                ))
        except (OSError, EOFError, SyntaxError, ValueError) as e:
            raise DecodeError(f"Malformed GIF: {e}") from e

    if not frames:
        raise DecodeError("GIF contains no frames")

    animation = Animation(
        frames=frames,
        width=width,
        height=height,
        loop=loop,
        background=background,
        comment=comment,
    )

    logger.info("Decoded %d frames from GIF (%dx%d)", len(frames), width, height)
    return animation


def quantize_frame(frame: Frame) -> Image.Image:
    """
    Reduce an RGBA frame to a palette image.

    Opaque frames get an adaptive palette of up to 256 colours. Frames with
    any alpha below ALPHA_THRESHOLD get up to 255 colours plus
    TRANSPARENT_INDEX for those pixels. Each frame gets its own palette.
    """
    rgb = frame.to_image().convert('RGB')
    alpha = np.frombuffer(frame.pixels, dtype=np.uint8)[3::4]
    transparent = alpha < ALPHA_THRESHOLD

    if not transparent.any():
        return rgb.quantize(colors=256, dither=Image.Dither.NONE)

    paletted = rgb.quantize(colors=TRANSPARENT_INDEX, dither=Image.Dither.NONE)
    indices = np.asarray(paletted, dtype=np.uint8).copy()
    indices[transparent.reshape(frame.height, frame.width)] = TRANSPARENT_INDEX

    palette = (paletted.getpalette() or [])[:TRANSPARENT_INDEX * 3]
    palette += [0] * (256 * 3 - len(palette))

    result = Image.frombytes('P', (frame.width, frame.height), indices.tobytes())
    result.putpalette(palette)
    result.info['transparency'] = TRANSPARENT_INDEX
    return result


def _as_gif89a(header: bytes) -> bytes:
    # Graphic control extensions (delay, disposal) are a GIF89a feature
    if header.startswith(b'GIF87a'):
        return b'GIF89a' + header[6:]
    return header


def encode_gif(animation: Animation) -> bytes:
    """
    Encode frames back into a GIF, keeping delays, disposal and loop count.

    Raises:
        EncodeError: No frames, or Pillow failed to write the GIF
    """
    frames = animation.frames
    if not frames:
        raise EncodeError("Cannot encode an animation with no frames")

    images = [quantize_frame(frame) for frame in frames]

    header_info = {
        'background': animation.background,
        'optimize': False,
    }
    if animation.loop is not None:
        header_info['loop'] = animation.loop
    if animation.comment:
        header_info['comment'] = animation.comment

    # One image block per frame; identical neighbours keep their own delays
    output = io.BytesIO()
    try:
        header, _ = GifImagePlugin.getheader(images[0], info=header_info)
        output.write(_as_gif89a(b''.join(header)))

        for frame, image in zip(frames, images):
            params = {
                'duration': frame.delay * 10,
                'disposal': int(frame.disposal),
                'include_color_table': True,
            }
            if 'transparency' in image.info:
                params['transparency'] = image.info['transparency']
            for chunk in GifImagePlugin.getdata(image, offset=(0, 0), **params):
                output.write(chunk)

        output.write(GIF_TRAILER)
    except (OSError, ValueError, TypeError) as e:
        raise EncodeError(f"Failed to encode GIF: {e}") from e

    logger.info("Encoded %d frames into GIF (%d bytes)", len(frames), output.tell())
    return output.getvalue()
