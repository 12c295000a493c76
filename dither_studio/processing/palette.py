from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, NamedTuple, Sequence, Tuple, Union

from ..errors import ParameterError


RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class Palette:
    name: str
    colors: Tuple[RGB, ...]

    def __len__(self) -> int:
        return len(self.colors)

    def to_hex(self) -> List[str]:
        return [rgb_to_hex(color) for color in self.colors]


class BrightnessRamp(NamedTuple):
    """A palette sorted darkest-first, with the brightness of each entry."""

    levels: Tuple[float, ...]
    colors: Tuple[RGB, ...]


PaletteSpec = Union[str, Palette, Mapping, Sequence[str], Sequence[Sequence[int]]]


def _preset(name: str, *colors: RGB) -> Palette:
    return Palette(name, tuple(colors))


PRESET_PALETTES: Mapping[str, Palette] = MappingProxyType(
    {
        "monochrome": _preset("Monochrome", (0, 0, 0), (255, 255, 255)),
        "commodore64": _preset(
            "Commodore 64",
            (0, 0, 0), (255, 255, 255), (136, 58, 58), (112, 228, 228),
            (158, 58, 158), (112, 158, 112), (58, 58, 196), (228, 228, 112),
            (196, 112, 58), (112, 70, 58), (228, 112, 112), (58, 58, 58),
            (112, 112, 112), (196, 196, 196), (112, 228, 112), (58, 158, 228),
            (196, 112, 196),
        ),
        "gameBoyOriginal": _preset(
            "Game Boy (Original)",
            (15, 56, 15), (48, 98, 48), (139, 172, 15), (155, 188, 15),
        ),
        "gameBoyColor": _preset(
            "Game Boy Color",
            (0, 0, 0), (255, 255, 255), (15, 56, 15), (48, 98, 48),
            (139, 172, 15), (155, 188, 15), (196, 58, 58), (58, 112, 196),
        ),
        "nes": _preset(
            "NES",
            (0, 0, 0), (255, 255, 255), (124, 124, 124), (58, 58, 58),
            (196, 58, 58), (255, 112, 112), (112, 58, 58), (58, 196, 58),
            (112, 228, 112), (58, 112, 58), (58, 58, 196), (112, 112, 255),
            (58, 58, 112), (196, 196, 58), (255, 255, 112), (112, 112, 58),
            (196, 58, 196), (255, 112, 255), (112, 58, 112),
        ),
        "amiga": _preset(
            "Amiga OCS",
            (0, 0, 0), (255, 255, 255), (136, 58, 58), (112, 228, 228),
            (158, 58, 158), (112, 158, 112), (58, 58, 196), (228, 228, 112),
            (196, 112, 58), (112, 70, 58), (228, 112, 112), (58, 58, 58),
            (112, 112, 112), (196, 196, 196), (112, 228, 112), (58, 158, 228),
            (196, 112, 196), (255, 196, 112), (255, 228, 112), (112, 228, 196),
            (196, 196, 112), (196, 112, 112), (112, 112, 196), (196, 112, 196),
            (112, 196, 112), (196, 196, 196), (228, 228, 228), (255, 255, 255),
        ),
        "atari2600": _preset(
            "Atari 2600",
            (0, 0, 0), (255, 255, 255), (112, 58, 58), (58, 112, 58),
            (58, 58, 112), (196, 196, 58), (196, 58, 196), (58, 196, 196),
            (196, 112, 58), (112, 196, 58), (58, 112, 196), (196, 58, 112),
        ),
        "zxSpectrum": _preset(
            "ZX Spectrum",
            (0, 0, 0), (0, 0, 196), (196, 0, 0), (196, 0, 196),
            (0, 196, 0), (0, 196, 196), (196, 196, 0), (196, 196, 196),
            (0, 0, 0), (0, 0, 255), (255, 0, 0), (255, 0, 255), (0, 255, 0),
            (0, 255, 255), (255, 255, 0), (255, 255, 255),
        ),
        "masterSystem": _preset(
            "Master System",
            (0, 0, 0), (255, 255, 255), (112, 58, 58), (58, 112, 58),
            (58, 58, 112), (196, 196, 58), (196, 58, 196), (58, 196, 196),
            (196, 112, 58), (112, 196, 58), (58, 112, 196), (196, 58, 112),
            (196, 196, 196), (112, 112, 112), (58, 58, 58),
        ),
        "pcEngine": _preset(
            "PC Engine",
            (0, 0, 0), (255, 255, 255), (196, 58, 58), (58, 196, 58),
            (58, 58, 196), (196, 196, 58), (196, 58, 196), (58, 196, 196),
            (196, 112, 58), (112, 196, 58), (58, 112, 196), (196, 58, 112),
            (158, 158, 158), (112, 112, 112), (228, 228, 228),
        ),
    }
)


def get_palette(key: str) -> Palette:
    try:
        return PRESET_PALETTES[key]
    except KeyError:
        known = ", ".join(sorted(PRESET_PALETTES))
        raise ParameterError(f"Unknown palette {key!r}; expected one of: {known}") from None


def hex_to_rgb(value: str) -> RGB:
    text = value.strip().lstrip("#")
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) != 6:
        raise ParameterError(f"Invalid hex colour {value!r}")
    try:
        return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)
    except ValueError:
        raise ParameterError(f"Invalid hex colour {value!r}") from None


def rgb_to_hex(rgb: Sequence[int]) -> str:
    r, g, b = (max(0, min(255, int(c))) for c in rgb[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def _coerce_rgb(value) -> RGB:
    if isinstance(value, str):
        return hex_to_rgb(value)
    try:
        r, g, b = value
        rgb = int(r), int(g), int(b)
    except (TypeError, ValueError, OverflowError):
        raise ParameterError(f"Cannot interpret {value!r} as an RGB colour") from None
    if any(not 0 <= channel <= 255 for channel in rgb):
        raise ParameterError(f"RGB channels must be within [0, 255], got {value!r}")
    return rgb


def custom_palette(name: str, colors: Iterable) -> Palette:
    """Build a palette from hex strings or RGB triples, keeping their order."""
    return Palette(name, tuple(_coerce_rgb(color) for color in colors))


def resolve_palette(spec: PaletteSpec) -> Palette:
    if isinstance(spec, Palette):
        return spec
    if isinstance(spec, str):
        return get_palette(spec)
    if isinstance(spec, Mapping):
        return custom_palette(str(spec.get("name", "custom")), spec.get("colors", ()))
    if not isinstance(spec, (list, tuple)):
        raise ParameterError(f"Cannot interpret {spec!r} as a palette")
    return custom_palette("custom", spec)


def brightness(rgb: Sequence[int]) -> float:
    return rgb[0] * 0.299 + rgb[1] * 0.587 + rgb[2] * 0.114


def sort_by_brightness(palette: Palette) -> Tuple[RGB, ...]:
    return tuple(sorted(palette.colors, key=brightness))


def brightness_ramp(palette: Palette) -> BrightnessRamp:
    if not palette.colors:
        raise ParameterError(f"Palette {palette.name!r} has no colours to quantize to")
    ordered = sort_by_brightness(palette)
    return BrightnessRamp(tuple(brightness(color) for color in ordered), ordered)


def nearest_level(value: float, levels: Sequence[float]) -> int:
    best_index = 0
    best_distance = float("inf")
    for index, level in enumerate(levels):
        distance = abs(value - level)
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index


def nearest_palette_index(rgb: Sequence[int], palette: Palette) -> int:
    if not palette.colors:
        raise ParameterError(f"Palette {palette.name!r} has no colours to match against")
    best_index = 0
    best_distance = float("inf")
    r, g, b = rgb[:3]
    for index, (R, G, B) in enumerate(palette.colors):
        distance = (R - r) ** 2 + (G - g) ** 2 + (B - b) ** 2
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index


def nearest_color(rgb: Sequence[int], palette: Palette) -> RGB:
    return palette.colors[nearest_palette_index(rgb, palette)]
