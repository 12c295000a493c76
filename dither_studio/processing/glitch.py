"""Glitch effects.

Every effect draws its randomness from a generator seeded with
``(seed, time, intensity)``, so a video frame rendered twice with the same
timestamp glitches identically.
"""

from __future__ import annotations

import random

from ..buffer import ImageBuffer
from ..errors import ParameterError


def _rng(effect: str, seed: int, time: float, intensity: float) -> random.Random:
    return random.Random(f"{effect}:{int(seed)}:{float(time)!r}:{float(intensity)!r}")


def _check_intensity(intensity: float) -> float:
    if not 0.0 <= intensity <= 1.0:
        raise ParameterError(f"Glitch intensity must be within [0, 1], got {intensity}")
    return float(intensity)


def data_mosh(buf: ImageBuffer, intensity: float = 0.5, seed: int = 1, time: float = 0.0) -> ImageBuffer:
    """Shift random horizontal bands sideways, wrapping around the frame."""
    intensity = _check_intensity(intensity)
    if intensity == 0:
        return buf.copy()
    rng = _rng("dataMosh", seed, time, intensity)
    width, height = buf.width, buf.height
    stride = width * 4
    out = bytearray(buf.pixels)
    max_shift = max(1, int(width * intensity / 2))

    for _ in range(max(1, round(intensity * 10))):
        top = rng.randrange(height)
        band = rng.randint(1, max(1, height // 8))
        shift = rng.randint(-max_shift, max_shift) % width
        if shift == 0:
            continue
        cut = (width - shift) * 4
        for y in range(top, min(top + band, height)):
            start = y * stride
            row = out[start:start + stride]
            out[start:start + stride] = row[cut:] + row[:cut]
    return ImageBuffer(width, height, bytes(out))


def pixel_sort(
    buf: ImageBuffer,
    threshold: float = 128,
    direction: str = "horizontal",
    intensity: float = 1.0,
    seed: int = 1,
    time: float = 0.0,
) -> ImageBuffer:
    """Sort runs of pixels brighter than ``threshold`` by brightness.

    ``intensity`` is the fraction of rows (or columns) that get sorted.
    """
    intensity = _check_intensity(intensity)
    if direction not in ("horizontal", "vertical"):
        raise ParameterError(f"Pixel sort direction must be 'horizontal' or 'vertical', got {direction!r}")
    rng = _rng("pixelSort", seed, time, intensity)
    width, height = buf.width, buf.height
    src = buf.pixels
    out = bytearray(src)

    if direction == "horizontal":
        lines = [[y * width + x for x in range(width)] for y in range(height)]
    else:
        lines = [[y * width + x for y in range(height)] for x in range(width)]

    def key(px: bytes) -> float:
        return (px[0] + px[1] + px[2]) / 3

    for line in lines:
        if intensity < 1.0 and rng.random() >= intensity:
            continue
        run = []
        for p in line + [None]:
            px = src[p * 4:p * 4 + 4] if p is not None else None
            if px is not None and key(px) > threshold:
                run.append(p)
                continue
            if len(run) > 1:
                ordered = sorted((src[q * 4:q * 4 + 4] for q in run), key=key)
                for q, value in zip(run, ordered):
                    out[q * 4:q * 4 + 4] = value
            run = []
    return ImageBuffer(width, height, bytes(out))


def chromatic_aberration(buf: ImageBuffer, intensity: float = 0.3, seed: int = 1, time: float = 0.0) -> ImageBuffer:
    """Pull the red channel left and the blue channel right."""
    intensity = _check_intensity(intensity)
    rng = _rng("chromaticAberration", seed, time, intensity)
    offset = round(intensity * 10)
    if offset:
        offset = max(0, offset + rng.choice((-1, 0, 1)))
    if offset == 0:
        return buf.copy()

    width, height = buf.width, buf.height
    src = buf.pixels
    out = bytearray(src)
    last = width - 1
    for y in range(height):
        row = y * width
        for x in range(width):
            i = (row + x) * 4
            out[i] = src[(row + min(last, x + offset)) * 4]
            out[i + 2] = src[(row + max(0, x - offset)) * 4 + 2]
    return ImageBuffer(width, height, bytes(out))


def digital_corruption(buf: ImageBuffer, intensity: float = 0.3, seed: int = 1, time: float = 0.0) -> ImageBuffer:
    """Overwrite random blocks with displaced, channel-rotated copies."""
    intensity = _check_intensity(intensity)
    if intensity == 0:
        return buf.copy()
    rng = _rng("digitalCorruption", seed, time, intensity)
    width, height = buf.width, buf.height
    src = buf.pixels
    out = bytearray(src)

    for _ in range(max(1, round(intensity * 24))):
        block_w = rng.randint(1, max(1, width // 4))
        block_h = rng.randint(1, max(1, height // 8))
        left = rng.randrange(width)
        top = rng.randrange(height)
        dx = rng.randint(-width // 2, width // 2)
        dy = rng.randint(-height // 4, height // 4)
        rotation = rng.randrange(3)
        for y in range(top, min(top + block_h, height)):
            sy = (y + dy) % height
            for x in range(left, min(left + block_w, width)):
                sx = (x + dx) % width
                s = (sy * width + sx) * 4
                rgb = src[s:s + 3]
                i = (y * width + x) * 4
                out[i:i + 3] = rgb[rotation:] + rgb[:rotation]
    return ImageBuffer(width, height, bytes(out))
