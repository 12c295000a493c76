from __future__ import annotations

import math
from typing import List

from PIL import Image, ImageChops, ImageDraw

from ..buffer import ImageBuffer, clamp
from ..errors import ParameterError
from .dither import lcg_stream, check_seed


BLOOM_PASSES = 3
BLOOM_BRIGHT_THRESHOLD = 128
BLOOM_BRIGHT_GAIN = 1.2


def _blur_121(channel: List[float], width: int, height: int) -> List[float]:
    """One pass of the 3x3 ``[1, 2, 1]`` binomial blur with edge clamping."""
    horizontal = [0.0] * len(channel)
    last_x = width - 1
    for y in range(height):
        row = y * width
        for x in range(width):
            left = channel[row + (x - 1 if x > 0 else 0)]
            right = channel[row + (x + 1 if x < last_x else last_x)]
            horizontal[row + x] = (left + 2 * channel[row + x] + right) / 4

    out = [0.0] * len(channel)
    last_y = height - 1
    for y in range(height):
        up = (y - 1 if y > 0 else 0) * width
        down = (y + 1 if y < last_y else last_y) * width
        row = y * width
        for x in range(width):
            value = (horizontal[up + x] + 2 * horizontal[row + x] + horizontal[down + x]) / 4
            out[row + x] = float(clamp(value))
    return out


def bloom(buf: ImageBuffer, intensity: float = 100) -> ImageBuffer:
    """Blur a working copy, lift its highlights and screen it over the source.

    ``intensity`` is a percentage: 100 screens the full glow layer.
    """
    if intensity < 0:
        raise ParameterError(f"Bloom intensity must not be negative, got {intensity}")
    width, height = buf.width, buf.height
    src = buf.pixels
    channels = [[float(v) for v in src[c::4]] for c in range(3)]
    for _ in range(BLOOM_PASSES):
        channels = [_blur_121(channel, width, height) for channel in channels]

    strength = intensity / 100.0
    glow = bytearray(width * height * 3)
    for p, (r, g, b) in enumerate(zip(*channels)):
        if (r + g + b) / 3 > BLOOM_BRIGHT_THRESHOLD:
            r, g, b = r * BLOOM_BRIGHT_GAIN, g * BLOOM_BRIGHT_GAIN, b * BLOOM_BRIGHT_GAIN
        i = p * 3
        glow[i] = clamp(clamp(r) * strength)
        glow[i + 1] = clamp(clamp(g) * strength)
        glow[i + 2] = clamp(clamp(b) * strength)

    source = buf.to_image()
    glow_img = Image.frombytes("RGB", (width, height), bytes(glow))
    blended = ImageChops.screen(source.convert("RGB"), glow_img)
    blended.putalpha(source.getchannel("A"))
    return ImageBuffer.from_image(blended)


def grain(buf: ImageBuffer, amount: float = 0.2, seed: int = 1) -> ImageBuffer:
    """Add reproducible monochrome noise of amplitude ``amount * 128``."""
    if not 0.0 <= amount <= 1.0:
        raise ParameterError(f"Grain amount must be within [0, 1], got {amount}")
    noise = lcg_stream(check_seed(seed))
    amplitude = amount * 128
    out = bytearray(buf.pixels)
    for i in range(0, len(out), 4):
        delta = (next(noise) * 2 - 1) * amplitude
        out[i] = clamp(out[i] + delta)
        out[i + 1] = clamp(out[i + 1] + delta)
        out[i + 2] = clamp(out[i + 2] + delta)
    return ImageBuffer(buf.width, buf.height, bytes(out))


def halftone_circles(buf: ImageBuffer, cell_size: int = 8) -> ImageBuffer:
    """Classic print halftone: one black disc per cell, sized by darkness."""
    if cell_size < 2:
        raise ParameterError(f"Halftone cell size must be at least 2, got {cell_size}")
    width, height = buf.width, buf.height
    lum = buf.luminance()
    canvas = Image.new("L", (width, height), 255)
    draw = ImageDraw.Draw(canvas)

    for top in range(0, height, cell_size):
        cell_h = min(cell_size, height - top)
        for left in range(0, width, cell_size):
            cell_w = min(cell_size, width - left)
            total = 0.0
            for y in range(top, top + cell_h):
                row = y * width
                total += sum(lum[row + left:row + left + cell_w])
            darkness = 1.0 - total / (cell_w * cell_h) / 255.0
            # Disc area grows linearly with darkness; full black covers the cell.
            radius = cell_size / 2 * math.sqrt(2 * darkness)
            if radius < 0.5:
                continue
            cx = left + cell_w / 2
            cy = top + cell_h / 2
            draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), fill=0)

    out = Image.merge("RGBA", (canvas, canvas, canvas, buf.to_image().getchannel("A")))
    return ImageBuffer.from_image(out)


def _reduced_length(length: int, scale: float, min_size: int) -> int:
    return max(1, min(length, max(int(length * scale + 0.5), min_size)))


def pixelate(buf: ImageBuffer, size: float = 10, min_size: int = 200) -> ImageBuffer:
    """Shrink to ``size`` percent with nearest-neighbour sampling, then blow back up.

    The reduced frame keeps at least ``min_size`` pixels per side, capped at
    the source size.
    """
    if not 0 < size <= 100:
        raise ParameterError(f"Pixel size must be within (0, 100], got {size}")
    if min_size < 1:
        raise ParameterError(f"Minimum pixelated size must be at least 1, got {min_size}")
    scale = size / 100.0
    reduced = (
        _reduced_length(buf.width, scale, min_size),
        _reduced_length(buf.height, scale, min_size),
    )
    img = buf.to_image()
    small = img.resize(reduced, Image.NEAREST)
    return ImageBuffer.from_image(small.resize(img.size, Image.NEAREST))


def mosaic(buf: ImageBuffer, tile_size: int = 4) -> ImageBuffer:
    """Replace each tile with its mean colour; partial edge tiles average what they cover."""
    if tile_size < 1:
        raise ParameterError(f"Mosaic tile size must be at least 1, got {tile_size}")
    width, height = buf.width, buf.height
    src = buf.pixels
    out = bytearray(src)

    for top in range(0, height, tile_size):
        rows = range(top, min(top + tile_size, height))
        for left in range(0, width, tile_size):
            cols = range(left, min(left + tile_size, width))
            offsets = [(y * width + x) * 4 for y in rows for x in cols]
            count = len(offsets)
            mean = bytes(
                int(sum(src[i + c] for i in offsets) / count + 0.5) for c in range(3)
            )
            for i in offsets:
                out[i:i + 3] = mean
    return ImageBuffer(width, height, bytes(out))


def crt(
    buf: ImageBuffer,
    scanlines: float = 0.12,
    grille: float = 0.05,
    vignette: float = 0.28,
) -> ImageBuffer:
    """Darken every other row, every third column and the corners like a tube display.

    Each argument is the opacity of black laid over the affected pixels.
    """
    for name, value in (("scanlines", scanlines), ("grille", grille), ("vignette", vignette)):
        if not 0.0 <= value <= 1.0:
            raise ParameterError(f"CRT {name} opacity must be within [0, 1], got {value}")
    width, height = buf.width, buf.height
    size = (width, height)

    rows = Image.new("L", size, 255)
    draw = ImageDraw.Draw(rows)
    for y in range(0, height, 2):
        draw.line((0, y, width - 1, y), fill=clamp(255 * (1 - scanlines)))

    columns = Image.new("L", size, 255)
    draw = ImageDraw.Draw(columns)
    for x in range(0, width, 3):
        draw.line((x, 0, x, height - 1), fill=clamp(255 * (1 - grille)))

    # Radial falloff from clear at the centre to ``vignette`` at max(w, h) / 1.1.
    radius = max(width, height) / 1.1
    cx, cy = width / 2, height / 2
    falloff = Image.new("L", size)
    falloff.putdata(
        [
            clamp(255 * (1 - vignette * min(1.0, math.hypot(x + 0.5 - cx, y + 0.5 - cy) / radius)))
            for y in range(height)
            for x in range(width)
        ]
    )

    shade = ImageChops.multiply(ImageChops.multiply(rows, columns), falloff)
    source = buf.to_image()
    shaded = ImageChops.multiply(source.convert("RGB"), Image.merge("RGB", (shade, shade, shade)))
    shaded.putalpha(source.getchannel("A"))
    return ImageBuffer.from_image(shaded)
