import pytest
from PIL import Image

from dither_studio.buffer import ImageBuffer, clamp
from dither_studio.errors import ParameterError


def test_clamp_rounds_into_byte_range():
    assert clamp(-3.2) == 0
    assert clamp(300) == 255
    assert clamp(127.5) == 128
    assert clamp(127.4) == 127


def test_buffer_rejects_mismatched_length():
    with pytest.raises(ParameterError):
        ImageBuffer(2, 2, bytes(15))


def test_buffer_rejects_empty_dimensions():
    with pytest.raises(ParameterError):
        ImageBuffer(0, 3, b"")


def test_buffer_coerces_bytearray_to_bytes():
    buf = ImageBuffer(1, 1, bytearray(b"\x01\x02\x03\x04"))

    assert isinstance(buf.pixels, bytes)
    assert buf.pixel(0, 0) == (1, 2, 3, 4)


def test_blank_fills_missing_alpha():
    buf = ImageBuffer.blank(3, 2, (10, 20, 30))

    assert buf.size == (3, 2)
    assert buf.pixel(2, 1) == (10, 20, 30, 255)


def test_from_image_converts_any_mode_to_rgba():
    img = Image.new("L", (4, 3), color=90)

    buf = ImageBuffer.from_image(img)

    assert buf.size == (4, 3)
    assert buf.pixel(1, 1) == (90, 90, 90, 255)
    assert buf.to_image().mode == "RGBA"


def test_pillow_round_trip_keeps_pixels():
    buf = ImageBuffer(2, 1, bytes([1, 2, 3, 4, 250, 251, 252, 253]))

    assert ImageBuffer.from_image(buf.to_image()) == buf


def test_luminance_uses_bt601_weights():
    buf = ImageBuffer(2, 1, bytes([255, 0, 0, 255, 255, 255, 255, 255]))

    red, white = buf.luminance()

    assert red == pytest.approx(0.299 * 255)
    assert white == pytest.approx(255)


def test_alpha_and_mean_brightness():
    buf = ImageBuffer(1, 1, bytes([30, 60, 90, 7]))

    assert buf.alpha() == b"\x07"
    assert buf.mean_brightness() == [60]


def test_digest_tracks_content_and_shape():
    a = ImageBuffer.blank(2, 2, (1, 2, 3))
    b = ImageBuffer.blank(2, 2, (1, 2, 3))
    c = ImageBuffer.blank(4, 1, (1, 2, 3))

    assert a.digest() == b.digest()
    assert a.digest() != c.digest()
    assert a.digest() != ImageBuffer.blank(2, 2, (1, 2, 4)).digest()


def test_from_gray_replicates_values():
    buf = ImageBuffer.from_gray(2, 1, [0, 300], b"\x10\x20")

    assert buf.pixel(0, 0) == (0, 0, 0, 16)
    assert buf.pixel(1, 0) == (255, 255, 255, 32)
