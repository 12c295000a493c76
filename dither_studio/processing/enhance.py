from __future__ import annotations

from typing import Callable, List, Sequence

from PIL import Image

from ..buffer import ImageBuffer, clamp
from ..errors import ParameterError
from .palette import hex_to_rgb


_IDENTITY = list(range(256))


def _channel_lut(fn: Callable[[int], float]) -> List[int]:
    return [clamp(fn(value)) for value in range(256)]


def apply_rgb_lut(buf: ImageBuffer, lut: Sequence[int]) -> ImageBuffer:
    """Run the same 256-entry table over R, G and B, leaving alpha untouched."""
    img = buf.to_image()
    return ImageBuffer.from_image(img.point(list(lut) * 3 + _IDENTITY))


def apply_contrast(buf: ImageBuffer, contrast: float = 128) -> ImageBuffer:
    if not -255 <= contrast <= 255:
        raise ParameterError(f"Contrast must be within [-255, 255], got {contrast}")
    factor = (259 * (contrast + 255)) / (255 * (259 - contrast))
    return apply_rgb_lut(buf, _channel_lut(lambda v: factor * (v - 128) + 128))


def apply_midtones(buf: ImageBuffer, midtones: float = 128) -> ImageBuffer:
    if midtones <= 0:
        raise ParameterError(f"Midtones must be positive, got {midtones}")
    inv = 128.0 / midtones
    return apply_rgb_lut(buf, _channel_lut(lambda v: 255 * (v / 255.0) ** inv))


def apply_highlights(buf: ImageBuffer, highlights: float = 128) -> ImageBuffer:
    if highlights < 0:
        raise ParameterError(f"Highlights must not be negative, got {highlights}")
    factor = highlights / 128.0
    return apply_rgb_lut(buf, _channel_lut(lambda v: v * factor if v > 128 else v))


def bit_tone(buf: ImageBuffer, levels: int = 4) -> ImageBuffer:
    """Posterize luminance into ``levels`` evenly spaced grays."""
    if levels < 2:
        raise ParameterError(f"Bit tone needs at least two levels, got {levels}")
    top = levels - 1
    values = []
    for lum in buf.luminance():
        index = min(top, int(lum * levels / 256))
        values.append(index * 255 / top)
    return ImageBuffer.from_gray(buf.width, buf.height, values, buf.alpha())


def colorize(
    buf: ImageBuffer,
    *,
    mode: str = "rgb",
    red: int = 255,
    green: int = 255,
    blue: int = 255,
    color: str = "#ffffff",
) -> ImageBuffer:
    """Tint a (typically dithered) image by its mean brightness.

    ``rgb`` scales each channel target by brightness; ``single`` splits at 128
    into black and ``color``.
    """
    mode = mode.lower()
    if mode == "rgb":
        targets = (red, green, blue)
        if any(not 0 <= t <= 255 for t in targets):
            raise ParameterError(f"Colour targets must be within [0, 255], got {targets}")
    elif mode == "single":
        targets = hex_to_rgb(color)
    else:
        raise ParameterError(f"Unknown colorize mode {mode!r}; expected 'rgb' or 'single'")

    out = bytearray(buf.pixels)
    for p, value in enumerate(buf.mean_brightness()):
        i = p * 4
        if mode == "rgb":
            scale = value / 255
            out[i] = clamp(scale * targets[0])
            out[i + 1] = clamp(scale * targets[1])
            out[i + 2] = clamp(scale * targets[2])
        elif value < 128:
            out[i] = out[i + 1] = out[i + 2] = 0
        else:
            out[i:i + 3] = bytes(targets)
    return ImageBuffer(buf.width, buf.height, bytes(out))


def color_grade(
    buf: ImageBuffer,
    *,
    hue: float = 0.0,
    saturation: float = 1.0,
    vibrance: float = 0.0,
) -> ImageBuffer:
    """Rotate hue (degrees), scale saturation and apply vibrance in HSV space."""
    if saturation < 0:
        raise ParameterError(f"Saturation must not be negative, got {saturation}")
    if not -1.0 <= vibrance <= 1.0:
        raise ParameterError(f"Vibrance must be within [-1, 1], got {vibrance}")
    if abs(hue % 360) < 1e-9 and abs(saturation - 1.0) < 1e-9 and abs(vibrance) < 1e-9:
        return buf.copy()

    img = buf.to_image()
    alpha = img.getchannel("A")
    h, s, v = img.convert("RGB").convert("HSV").split()

    shift = int(round((hue % 360) / 360.0 * 256)) % 256
    h = h.point([(value + shift) % 256 for value in range(256)])

    def grade(value: int) -> float:
        graded = value * saturation
        # Muted colours receive more of the vibrance boost than saturated ones.
        graded += vibrance * (1 - graded / 255.0) * graded if graded < 255 else 0
        return graded

    s = s.point(_channel_lut(grade))
    rgb = Image.merge("HSV", (h, s, v)).convert("RGB")
    rgb.putalpha(alpha)
    return ImageBuffer.from_image(rgb)
