"""
Tests for GIF decoding, quantization and encoding.
"""

import io

import numpy as np
import pytest
from PIL import Image

from gpu_worker.codec import (
    TRANSPARENT_INDEX,
    Animation,
    Disposal,
    Frame,
    decode_gif,
    encode_gif,
    quantize_frame,
)
from gpu_worker.errors import DecodeError, EncodeError, InvalidInput, PayloadTooLarge

from helpers import PALETTE, make_gif, striped_frame, to_array


def solid_frame(width, height, rgba, delay=10, disposal=Disposal.NONE):
    pixels = bytes(rgba) * (width * height)
    return Frame(pixels, width, height, delay=delay, disposal=disposal)


class TestDecode:
    """Test decoding GIFs into composited RGBA frames."""

    def test_metadata(self, three_frame_gif):
        animation = decode_gif(three_frame_gif)

        assert len(animation) == 3
        assert (animation.width, animation.height) == (100, 100)
        assert animation.loop == 0
        assert [frame.delay for frame in animation.frames] == [50, 50, 50]
        assert all(frame.disposal == Disposal.NONE for frame in animation.frames)

    def test_frames_are_full_canvas_rgba(self, three_frame_gif):
        for frame in decode_gif(three_frame_gif).frames:
            assert (frame.width, frame.height) == (100, 100)
            assert len(frame.pixels) == 100 * 100 * 4

    def test_pixel_content(self, three_frame_gif):
        frame = decode_gif(three_frame_gif).frames[0]
        image = to_array(frame.pixels, 100, 100)

        assert tuple(image[0, 0]) == PALETTE[0] + (255,)
        assert tuple(image[99, 99]) == PALETTE[3] + (255,)

    def test_no_loop_extension(self):
        data = make_gif([striped_frame(8, 8), striped_frame(8, 8, 1)], loop=None)
        assert decode_gif(data).loop is None

    def test_loop_count(self):
        data = make_gif([striped_frame(8, 8), striped_frame(8, 8, 1)], loop=3)
        assert decode_gif(data).loop == 3

    def test_single_frame(self):
        output = io.BytesIO()
        Image.new('RGB', (5, 4), (0, 0, 255)).save(output, format='GIF')

        animation = decode_gif(output.getvalue())
        assert len(animation) == 1
        assert (animation.width, animation.height) == (5, 4)

    def test_transparent_pixels_decode_with_zero_alpha(self):
        frame = np.zeros((4, 4, 4), dtype=np.uint8)
        frame[:2] = (255, 0, 0, 255)
        quantized = quantize_frame(Frame(frame.tobytes(), 4, 4))

        output = io.BytesIO()
        quantized.save(output, format='GIF', transparency=TRANSPARENT_INDEX, optimize=False)

        decoded = to_array(decode_gif(output.getvalue()).frames[0].pixels, 4, 4)
        assert np.all(decoded[:2, :, 3] == 255)
        assert np.all(decoded[2:, :, 3] == 0)

    def test_empty_input(self):
        with pytest.raises(DecodeError, match="Empty"):
            decode_gif(b'')

    def test_garbage(self):
        with pytest.raises(DecodeError):
            decode_gif(b'this is not an image at all')

    def test_truncated_gif(self, three_frame_gif):
        with pytest.raises(DecodeError):
            decode_gif(three_frame_gif[:20])

    def test_other_image_format(self):
        output = io.BytesIO()
        Image.new('RGB', (4, 4)).save(output, format='PNG')

        with pytest.raises(DecodeError, match="PNG"):
            decode_gif(output.getvalue())

    def test_decoded_size_limit(self, three_frame_gif):
        # Three 100x100 RGBA frames decode to 120000 bytes
        with pytest.raises(PayloadTooLarge, match="100x100"):
            decode_gif(three_frame_gif, max_decoded_bytes=100000)

    def test_decoded_size_at_limit(self, three_frame_gif):
        assert len(decode_gif(three_frame_gif, max_decoded_bytes=120000)) == 3


class TestQuantize:
    """Test RGBA to palette reduction."""

    def test_opaque_frame(self):
        image = quantize_frame(solid_frame(6, 6, (10, 20, 30, 255)))
        assert image.mode == 'P'
        assert 'transparency' not in image.info

    def test_transparent_pixels_use_reserved_index(self):
        pixels = np.full((4, 4, 4), 200, dtype=np.uint8)
        pixels[0, 0, 3] = 0
        pixels[3, 3, 3] = 127
        pixels[1, 1, 3] = 128

        image = quantize_frame(Frame(pixels.tobytes(), 4, 4))
        indices = np.asarray(image)

        assert image.info['transparency'] == TRANSPARENT_INDEX
        assert indices[0, 0] == TRANSPARENT_INDEX
        assert indices[3, 3] == TRANSPARENT_INDEX
        assert indices[1, 1] != TRANSPARENT_INDEX

    def test_few_colours_are_exact(self):
        frame = Frame(
            np.dstack([striped_frame(8, 8), np.full((8, 8), 255, np.uint8)]).tobytes(),
            8, 8
        )
        image = quantize_frame(frame).convert('RGB')
        assert image.tobytes() == striped_frame(8, 8).tobytes()


class TestEncode:
    """Test encoding frames back into a GIF."""

    def test_round_trip_metadata(self):
        frames = [
            solid_frame(10, 10, (255, 0, 0, 255), delay=7, disposal=Disposal.BACKGROUND),
            solid_frame(10, 10, (0, 255, 0, 255), delay=12, disposal=Disposal.BACKGROUND),
            solid_frame(10, 10, (0, 0, 255, 255), delay=30, disposal=Disposal.BACKGROUND),
        ]
        animation = Animation(frames, 10, 10, loop=2, comment=b'made by tests')

        decoded = decode_gif(encode_gif(animation))

        assert len(decoded) == 3
        assert [frame.delay for frame in decoded.frames] == [7, 12, 30]
        assert [frame.disposal for frame in decoded.frames] == [Disposal.BACKGROUND] * 3
        assert decoded.loop == 2
        assert decoded.comment == b'made by tests'

    def test_round_trip_pixels(self, three_frame_gif):
        animation = decode_gif(three_frame_gif)
        decoded = decode_gif(encode_gif(animation))

        for before, after in zip(animation.frames, decoded.frames):
            assert before.pixels == after.pixels

    def test_no_loop_is_preserved(self):
        frames = [
            solid_frame(4, 4, (255, 0, 0, 255)),
            solid_frame(4, 4, (0, 0, 255, 255)),
        ]
        decoded = decode_gif(encode_gif(Animation(frames, 4, 4, loop=None)))
        assert decoded.loop is None

    def test_output_is_gif(self):
        data = encode_gif(Animation([solid_frame(4, 4, (1, 2, 3, 255))], 4, 4))
        assert data[:6] == b'GIF89a'
        assert data[-1:] == b';'

    def test_single_frame(self):
        frame = solid_frame(6, 5, (200, 100, 50, 255), delay=25, disposal=Disposal.BACKGROUND)
        decoded = decode_gif(encode_gif(Animation([frame], 6, 5, loop=0)))

        assert len(decoded) == 1
        assert decoded.frames[0].pixels == frame.pixels
        assert decoded.frames[0].delay == 25
        assert decoded.frames[0].disposal == Disposal.BACKGROUND
        assert decoded.loop == 0

    def test_identical_frames_are_kept(self):
        frames = [
            solid_frame(4, 4, (255, 0, 0, 255), delay=10),
            solid_frame(4, 4, (255, 0, 0, 255), delay=20),
            solid_frame(4, 4, (0, 0, 255, 255), delay=30),
        ]
        decoded = decode_gif(encode_gif(Animation(frames, 4, 4)))

        assert len(decoded) == 3
        assert [frame.delay for frame in decoded.frames] == [10, 20, 30]
        assert [frame.pixels for frame in decoded.frames] == [frame.pixels for frame in frames]

    def test_transparent_pixels_survive(self):
        pixels = np.zeros((4, 4, 4), dtype=np.uint8)
        pixels[:2] = (0, 255, 0, 255)
        frame = Frame(pixels.tobytes(), 4, 4, delay=5)

        decoded = decode_gif(encode_gif(Animation([frame], 4, 4)))
        alpha = to_array(decoded.frames[0].pixels, 4, 4)[:, :, 3]

        assert np.all(alpha[:2] == 255)
        assert np.all(alpha[2:] == 0)

    def test_no_frames(self):
        with pytest.raises(EncodeError):
            encode_gif(Animation([], 4, 4))


class TestFrame:
    """Test frame construction and copying."""

    def test_length_mismatch(self):
        with pytest.raises(InvalidInput):
            Frame(bytes(10), 2, 2)

    def test_with_pixels_keeps_metadata(self):
        frame = solid_frame(2, 2, (1, 2, 3, 4), delay=9, disposal=Disposal.PREVIOUS)
        copy = frame.with_pixels(bytes(16))

        assert copy.pixels == bytes(16)
        assert (copy.delay, copy.disposal) == (9, Disposal.PREVIOUS)
        assert frame.pixels == bytes([1, 2, 3, 4]) * 4

    def test_disposal_from_gif(self):
        assert Disposal.from_gif(2) == Disposal.BACKGROUND
        assert Disposal.from_gif(None) == Disposal.UNSPECIFIED
        assert Disposal.from_gif(7) == Disposal.UNSPECIFIED
