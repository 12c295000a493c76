from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from PIL import Image

from .errors import ParameterError


RGBA = Tuple[int, int, int, int]

LUMA_R = 0.299
LUMA_G = 0.587
LUMA_B = 0.114


def clamp(value: float) -> int:
    """Round ``value`` to the nearest integer inside ``[0, 255]``."""
    if value <= 0:
        return 0
    if value >= 255:
        return 255
    return int(value + 0.5)


@dataclass(frozen=True)
class ImageBuffer:
    """An immutable RGBA8 raster.

    ``pixels`` is row-major with four bytes per pixel. Transforms never mutate
    a buffer; they always build a new one.
    """

    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ParameterError(
                f"Image buffers need a positive size, got {self.width}x{self.height}"
            )
        if not isinstance(self.pixels, bytes):
            object.__setattr__(self, "pixels", bytes(self.pixels))
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise ParameterError(
                f"Expected {expected} bytes for a {self.width}x{self.height} RGBA buffer, "
                f"got {len(self.pixels)}"
            )

    @classmethod
    def blank(cls, width: int, height: int, color: Sequence[int] = (0, 0, 0, 255)) -> "ImageBuffer":
        rgba = tuple(color) + (255,) * (4 - len(color))
        return cls(width, height, bytes(clamp(c) for c in rgba[:4]) * (width * height))

    @classmethod
    def from_image(cls, img: Image.Image) -> "ImageBuffer":
        rgba = img.convert("RGBA")
        width, height = rgba.size
        return cls(width, height, rgba.tobytes())

    @classmethod
    def from_gray(cls, width: int, height: int, values: Iterable[float], alpha: bytes) -> "ImageBuffer":
        """Build a buffer whose RGB channels all carry ``values``."""
        gray = bytes(clamp(v) for v in values)
        out = bytearray(width * height * 4)
        out[0::4] = gray
        out[1::4] = gray
        out[2::4] = gray
        out[3::4] = alpha
        return cls(width, height, bytes(out))

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def pixel(self, x: int, y: int) -> RGBA:
        i = (y * self.width + x) * 4
        r, g, b, a = self.pixels[i:i + 4]
        return r, g, b, a

    def alpha(self) -> bytes:
        return self.pixels[3::4]

    def luminance(self) -> List[float]:
        """Per-pixel BT.601 luminance as floats, in raster order."""
        data = self.pixels
        return [
            LUMA_R * r + LUMA_G * g + LUMA_B * b
            for r, g, b in zip(data[0::4], data[1::4], data[2::4])
        ]

    def mean_brightness(self) -> List[float]:
        """Unweighted ``(R + G + B) / 3`` per pixel."""
        data = self.pixels
        return [(r + g + b) / 3 for r, g, b in zip(data[0::4], data[1::4], data[2::4])]

    def digest(self) -> str:
        h = hashlib.sha1()
        h.update(f"{self.width}x{self.height}:".encode("ascii"))
        h.update(self.pixels)
        return h.hexdigest()

    def copy(self) -> "ImageBuffer":
        return ImageBuffer(self.width, self.height, bytes(self.pixels))
