from __future__ import annotations

from ..buffer import ImageBuffer
from ..errors import ParameterError
from .palette import Palette, nearest_palette_index, sort_by_brightness


def quantize_brightness_ramp(buf: ImageBuffer, palette: Palette) -> ImageBuffer:
    """Map each pixel's gray level onto the brightness-sorted palette.

    ``gray / 255`` selects a bucket along the ramp, so black lands on the
    darkest entry and white on the brightest.
    """
    if not palette.colors:
        raise ParameterError(f"Palette {palette.name!r} is empty; cannot build a brightness ramp")
    ramp = [bytes(color) for color in sort_by_brightness(palette)]
    top = len(ramp) - 1
    out = bytearray(buf.pixels)
    for p, gray in enumerate(buf.mean_brightness()):
        i = p * 4
        out[i:i + 3] = ramp[int(gray / 255 * top)]
    return ImageBuffer(buf.width, buf.height, bytes(out))


def quantize_nearest(buf: ImageBuffer, palette: Palette) -> ImageBuffer:
    if not palette.colors:
        raise ParameterError(f"Palette {palette.name!r} is empty; nothing to match against")
    src = buf.pixels
    out = bytearray(src)
    lookup = {}
    for i in range(0, len(src), 4):
        key = src[i:i + 3]
        color = lookup.get(key)
        if color is None:
            color = bytes(palette.colors[nearest_palette_index(key, palette)])
            lookup[key] = color
        out[i:i + 3] = color
    return ImageBuffer(buf.width, buf.height, bytes(out))


def palette_map(buf: ImageBuffer, palette: Palette, mode: str = "brightness") -> ImageBuffer:
    if mode == "brightness":
        return quantize_brightness_ramp(buf, palette)
    if mode == "nearest":
        return quantize_nearest(buf, palette)
    raise ParameterError(f"Unknown palette mapping mode {mode!r}; expected 'brightness' or 'nearest'")
