import pytest

from dither_studio.errors import ParameterError
from dither_studio.processing.palette import (
    PRESET_PALETTES,
    Palette,
    brightness,
    brightness_ramp,
    custom_palette,
    get_palette,
    hex_to_rgb,
    nearest_color,
    nearest_level,
    resolve_palette,
    rgb_to_hex,
    sort_by_brightness,
)


def test_presets_are_available_and_read_only():
    for key in (
        "commodore64",
        "gameBoyOriginal",
        "gameBoyColor",
        "nes",
        "amiga",
        "atari2600",
        "zxSpectrum",
        "masterSystem",
        "pcEngine",
        "monochrome",
    ):
        assert len(get_palette(key)) > 0

    with pytest.raises(TypeError):
        PRESET_PALETTES["mine"] = Palette("mine", ())


def test_unknown_palette_key_is_a_parameter_error():
    with pytest.raises(ParameterError, match="Unknown palette"):
        get_palette("vic20")


def test_hex_conversions():
    assert hex_to_rgb("#0a0B0c") == (10, 11, 12)
    assert hex_to_rgb("fff") == (255, 255, 255)
    assert rgb_to_hex((255, 0, 16)) == "#ff0010"

    with pytest.raises(ParameterError):
        hex_to_rgb("#12345")
    with pytest.raises(ParameterError):
        hex_to_rgb("#zzzzzz")


def test_nearest_color_prefers_first_listed_on_ties():
    palette = custom_palette("tie", [(0, 0, 0), (20, 0, 0)])

    assert nearest_color((10, 0, 0), palette) == (0, 0, 0)
    assert nearest_color((19, 0, 0), palette) == (20, 0, 0)


def test_nearest_color_on_empty_palette_fails():
    with pytest.raises(ParameterError):
        nearest_color((1, 2, 3), Palette("empty", ()))


def test_sort_by_brightness_is_stable():
    palette = custom_palette("grays", ["#ffffff", "#808080", "#000000", "#808080"])

    ordered = sort_by_brightness(palette)

    assert ordered[0] == (0, 0, 0)
    assert ordered[-1] == (255, 255, 255)
    assert brightness(ordered[1]) == brightness(ordered[2])


def test_brightness_ramp_orders_levels():
    ramp = brightness_ramp(get_palette("gameBoyOriginal"))

    assert list(ramp.levels) == sorted(ramp.levels)
    assert ramp.colors[0] == (15, 56, 15)


def test_brightness_ramp_of_empty_palette_fails():
    with pytest.raises(ParameterError):
        brightness_ramp(Palette("empty", ()))


def test_nearest_level_breaks_ties_towards_darker():
    assert nearest_level(50, (0.0, 100.0)) == 0
    assert nearest_level(51, (0.0, 100.0)) == 1


def test_resolve_palette_accepts_keys_hex_and_triples():
    assert resolve_palette("monochrome") is get_palette("monochrome")
    assert resolve_palette(["#000", "#fff"]).colors == ((0, 0, 0), (255, 255, 255))
    assert resolve_palette([[1, 2, 3]]).colors == ((1, 2, 3),)
    assert resolve_palette({"name": "duo", "colors": ["#f00", "#00f"]}).name == "duo"

    with pytest.raises(ParameterError):
        resolve_palette(5)
    with pytest.raises(ParameterError):
        resolve_palette([[1, 2]])


@pytest.mark.parametrize("colour", [[300, 0, 0], [0, -1, 0], [0, 0, 256]])
def test_custom_palette_channels_must_be_bytes(colour):
    with pytest.raises(ParameterError, match="0, 255"):
        custom_palette("bad", [[0, 0, 0], colour])
