import pytest

from dither_studio.buffer import ImageBuffer
from dither_studio.errors import ParameterError
from dither_studio.processing.palette import Palette, custom_palette, get_palette
from dither_studio.processing.quantize import palette_map, quantize_brightness_ramp, quantize_nearest


def test_brightness_ramp_with_empty_palette_fails_fast(colourful):
    with pytest.raises(ParameterError, match="empty"):
        quantize_brightness_ramp(colourful, Palette("empty", ()))


def test_nearest_with_empty_palette_fails_fast(colourful):
    with pytest.raises(ParameterError):
        quantize_nearest(colourful, Palette("empty", ()))


def test_brightness_ramp_maps_extremes_to_palette_ends(make_gray):
    palette = get_palette("gameBoyOriginal")

    assert quantize_brightness_ramp(make_gray(1, 1, 0), palette).pixel(0, 0)[:3] == (15, 56, 15)
    assert quantize_brightness_ramp(make_gray(1, 1, 255), palette).pixel(0, 0)[:3] == (155, 188, 15)


def test_brightness_ramp_buckets_by_gray_level(make_gray):
    palette = custom_palette("ramp", ["#ffffff", "#000000", "#808080"])

    assert quantize_brightness_ramp(make_gray(1, 1, 127), palette).pixel(0, 0)[:3] == (0, 0, 0)
    assert quantize_brightness_ramp(make_gray(1, 1, 128), palette).pixel(0, 0)[:3] == (128, 128, 128)


def test_nearest_picks_closest_colour():
    palette = custom_palette("rgbw", ["#000000", "#ffffff", "#ff0000"])
    buf = ImageBuffer(2, 1, bytes([250, 10, 10, 255, 200, 210, 220, 40]))

    out = quantize_nearest(buf, palette)

    assert out.pixel(0, 0) == (255, 0, 0, 255)
    assert out.pixel(1, 0) == (255, 255, 255, 40)


def test_palette_map_dispatches_on_mode(colourful):
    palette = get_palette("commodore64")

    assert palette_map(colourful, palette) == quantize_brightness_ramp(colourful, palette)
    assert palette_map(colourful, palette, "nearest") == quantize_nearest(colourful, palette)
    with pytest.raises(ParameterError):
        palette_map(colourful, palette, "dither")
