from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..buffer import ImageBuffer
from ..errors import ParameterError
from .palette import Palette, brightness_ramp, nearest_level


BINARY_THRESHOLD = 128.0
SHADOW_FLOOR = 10.0
NOISE_TILE = 32
LCG_MULTIPLIER = 16807
LCG_MODULUS = 2147483647

Matrix = Tuple[Tuple[float, ...], ...]
ThresholdFn = Callable[[int, int], float]


class KernelTap(NamedTuple):
    dx: int
    dy: int
    weight: float


@dataclass(frozen=True)
class DiffusionKernel:
    """Error-diffusion weights relative to the pixel being quantized."""

    name: str
    taps: Tuple[KernelTap, ...]

    def __post_init__(self) -> None:
        if not self.taps:
            raise ParameterError(f"Kernel {self.name!r} has no taps")
        for dx, dy, weight in self.taps:
            if dy < 0 or (dy == 0 and dx <= 0):
                raise ParameterError(
                    f"Kernel {self.name!r} pushes error to an already visited pixel ({dx}, {dy})"
                )
            if weight < 0:
                raise ParameterError(f"Kernel {self.name!r} has a negative weight at ({dx}, {dy})")
        total = self.total_weight
        if total <= 0 or total > 1.0 + 1e-9:
            raise ParameterError(f"Kernel {self.name!r} weights must sum to (0, 1], got {total:.4f}")

    @property
    def total_weight(self) -> float:
        return sum(tap.weight for tap in self.taps)

    @classmethod
    def from_table(cls, name: str, divisor: float, table: Sequence[Sequence[float]]) -> "DiffusionKernel":
        try:
            taps = tuple(KernelTap(int(dx), int(dy), float(w) / divisor) for dx, dy, w in table)
        except (TypeError, ValueError):
            raise ParameterError(f"Kernel {name!r} must be a list of [dx, dy, weight] rows") from None
        return cls(name, taps)


FLOYD_STEINBERG = DiffusionKernel.from_table(
    "floydSteinberg", 16, [(1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1)]
)
FALSE_FLOYD_STEINBERG = DiffusionKernel.from_table(
    "falseFloydSteinberg", 8, [(1, 0, 3), (0, 1, 3), (1, 1, 2)]
)
# Atkinson only diffuses 6/8 of the error; the loss is what gives it its contrast.
ATKINSON = DiffusionKernel.from_table(
    "atkinson", 8, [(1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1)]
)
JARVIS_JUDICE_NINKE = DiffusionKernel.from_table(
    "jarvisJudiceNinke",
    48,
    [
        (1, 0, 7), (2, 0, 5),
        (-2, 1, 3), (-1, 1, 5), (0, 1, 7), (1, 1, 5), (2, 1, 3),
        (-2, 2, 1), (-1, 2, 3), (0, 2, 5), (1, 2, 3), (2, 2, 1),
    ],
)
STUCKI = DiffusionKernel.from_table(
    "stucki",
    42,
    [
        (1, 0, 8), (2, 0, 4),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2),
        (-2, 2, 1), (-1, 2, 2), (0, 2, 4), (1, 2, 2), (2, 2, 1),
    ],
)
BURKES = DiffusionKernel.from_table(
    "burkes",
    32,
    [(1, 0, 8), (2, 0, 4), (-2, 1, 2), (-1, 1, 4), (0, 1, 8), (1, 1, 4), (2, 1, 2)],
)
SIERRA = DiffusionKernel.from_table(
    "sierra",
    32,
    [
        (1, 0, 5), (2, 0, 3),
        (-2, 1, 2), (-1, 1, 4), (0, 1, 5), (1, 1, 4), (2, 1, 2),
        (-1, 2, 2), (0, 2, 3), (1, 2, 2),
    ],
)
TWO_ROW_SIERRA = DiffusionKernel.from_table(
    "twoRowSierra",
    16,
    [(1, 0, 4), (2, 0, 3), (-2, 1, 1), (-1, 1, 2), (0, 1, 3), (1, 1, 2), (2, 1, 1)],
)
SIERRA_LITE = DiffusionKernel.from_table(
    "sierraLite", 4, [(1, 0, 2), (-1, 1, 1), (0, 1, 1)]
)

KERNELS = {
    kernel.name: kernel
    for kernel in (
        FLOYD_STEINBERG,
        FALSE_FLOYD_STEINBERG,
        ATKINSON,
        JARVIS_JUDICE_NINKE,
        STUCKI,
        BURKES,
        SIERRA,
        TWO_ROW_SIERRA,
        SIERRA_LITE,
    )
}


def _quantization_levels(palette: Optional[Palette]):
    if palette is None:
        return (0.0, 255.0), None
    ramp = brightness_ramp(palette)
    return ramp.levels, tuple(bytes(color) for color in ramp.colors)


def error_diffuse(
    buf: ImageBuffer,
    kernel: DiffusionKernel,
    *,
    serpentine: bool = False,
    palette: Optional[Palette] = None,
) -> ImageBuffer:
    """Quantize luminance to two levels (or palette brightness levels),
    spreading each pixel's residual over its unvisited neighbours.

    Diffusion targets outside the buffer are dropped. Alpha is carried over.
    """
    width, height = buf.width, buf.height
    levels, colors = _quantization_levels(palette)
    lum = buf.luminance()
    out = bytearray(len(buf.pixels))
    out[3::4] = buf.alpha()
    taps = kernel.taps

    for y in range(height):
        flip = serpentine and y % 2 == 1
        x_range = range(width - 1, -1, -1) if flip else range(width)
        direction = -1 if flip else 1
        row = y * width
        for x in x_range:
            p = row + x
            old = lum[p]
            if colors is None:
                index = 0 if old < BINARY_THRESHOLD else 1
            else:
                index = nearest_level(old, levels)
            new = levels[index]
            error = old - new
            lum[p] = new

            for dx, dy, weight in taps:
                nx = x + dx * direction
                ny = y + dy
                if 0 <= nx < width and ny < height:
                    lum[ny * width + nx] += error * weight

            i = p * 4
            if colors is None:
                value = int(new)
                out[i] = out[i + 1] = out[i + 2] = value
            else:
                out[i:i + 3] = colors[index]

    return ImageBuffer(width, height, bytes(out))


def build_bayer_matrix(size: int) -> Matrix:
    """Recursive Bayer index matrix of ``size`` x ``size`` (a power of two)."""
    if size < 2 or size & (size - 1):
        raise ParameterError(f"Bayer matrix size must be a power of two >= 2, got {size}")
    matrix: List[List[int]] = [[0, 2], [3, 1]]
    n = 2
    while n < size:
        grown = [[0] * (n * 2) for _ in range(n * 2)]
        for y in range(n):
            for x in range(n):
                value = matrix[y][x] * 4
                grown[y][x] = value
                grown[y][x + n] = value + 2
                grown[y + n][x] = value + 3
                grown[y + n][x + n] = value + 1
        matrix = grown
        n *= 2
    return tuple(tuple(float(v) for v in row) for row in matrix)


def _check_matrix(matrix: Sequence[Sequence[float]]) -> Matrix:
    if not matrix:
        raise ParameterError("Threshold matrix must not be empty")
    size = len(matrix)
    try:
        rows = tuple(tuple(float(v) for v in row) for row in matrix)
    except (TypeError, ValueError):
        raise ParameterError("Threshold matrix must contain only numbers") from None
    if any(len(row) != size for row in rows):
        raise ParameterError(f"Threshold matrix must be square, got {size} rows of uneven length")
    return rows


def ordered_dither(
    buf: ImageBuffer,
    matrix: Sequence[Sequence[float]],
    *,
    palette: Optional[Palette] = None,
) -> ImageBuffer:
    rows = _check_matrix(matrix)
    size = len(rows)
    cells = float(size * size)
    width, height = buf.width, buf.height
    lum = buf.luminance()
    out = bytearray(len(buf.pixels))
    out[3::4] = buf.alpha()

    if palette is None:
        thresholds = [[value / cells * 255 for value in row] for row in rows]
        for y in range(height):
            trow = thresholds[y % size]
            for x in range(width):
                p = y * width + x
                value = lum[p]
                # Near-black pixels stay black instead of picking up stray dots.
                if value <= SHADOW_FLOOR or value < trow[x % size]:
                    level = 0
                else:
                    level = 255
                i = p * 4
                out[i] = out[i + 1] = out[i + 2] = level
        return ImageBuffer(width, height, bytes(out))

    levels, colors = _quantization_levels(palette)
    step = 255.0 / max(1, len(levels) - 1)
    offsets = [[(value / cells - 0.5) * step for value in row] for row in rows]
    for y in range(height):
        orow = offsets[y % size]
        for x in range(width):
            p = y * width + x
            index = nearest_level(lum[p] + orow[x % size], levels)
            i = p * 4
            out[i:i + 3] = colors[index]
    return ImageBuffer(width, height, bytes(out))


def lcg_stream(seed: int) -> Iterator[float]:
    state = seed
    while True:
        state = (state * LCG_MULTIPLIER) % LCG_MODULUS
        yield state / LCG_MODULUS


def check_seed(seed) -> int:
    try:
        value = int(seed)
    except (TypeError, ValueError):
        raise ParameterError(f"Seed must be an integer, got {seed!r}") from None
    if value <= 0 or value % LCG_MODULUS == 0:
        raise ParameterError(f"Seed must be a positive integer not divisible by {LCG_MODULUS}, got {value}")
    return value


def lcg_noise_tile(seed: int, size: int = NOISE_TILE) -> Tuple[float, ...]:
    """``size * size`` threshold values in ``[0, 255)`` from a Park-Miller generator."""
    generator = lcg_stream(check_seed(seed))
    return tuple(next(generator) * 255 for _ in range(size * size))


def random_ordered(buf: ImageBuffer, seed: int = 1, *, palette: Optional[Palette] = None) -> ImageBuffer:
    noise = lcg_noise_tile(seed)
    width, height = buf.width, buf.height
    src = buf.pixels
    out = bytearray(len(src))
    out[3::4] = buf.alpha()

    if palette is None:
        for y in range(height):
            nrow = (y % NOISE_TILE) * NOISE_TILE
            for x in range(width):
                threshold = noise[nrow + x % NOISE_TILE]
                i = (y * width + x) * 4
                for c in range(3):
                    out[i + c] = 0 if src[i + c] < threshold else 255
        return ImageBuffer(width, height, bytes(out))

    levels, colors = _quantization_levels(palette)
    step = 255.0 / max(1, len(levels) - 1)
    lum = buf.luminance()
    for y in range(height):
        nrow = (y % NOISE_TILE) * NOISE_TILE
        for x in range(width):
            p = y * width + x
            offset = (noise[nrow + x % NOISE_TILE] / 255 - 0.5) * step
            index = nearest_level(lum[p] + offset, levels)
            i = p * 4
            out[i:i + 3] = colors[index]
    return ImageBuffer(width, height, bytes(out))


def threshold_map(buf: ImageBuffer, fn: ThresholdFn, *, palette: Optional[Palette] = None) -> ImageBuffer:
    """Binarize luminance against a per-coordinate threshold ``fn(x, y)``.

    With a palette the two outcomes are the darkest and brightest entries.
    """
    width, height = buf.width, buf.height
    if palette is None:
        dark, light = b"\x00\x00\x00", b"\xff\xff\xff"
    else:
        _, colors = _quantization_levels(palette)
        dark, light = colors[0], colors[-1]
    lum = buf.luminance()
    out = bytearray(len(buf.pixels))
    out[3::4] = buf.alpha()
    for y in range(height):
        for x in range(width):
            p = y * width + x
            i = p * 4
            out[i:i + 3] = dark if lum[p] < fn(x, y) else light
    return ImageBuffer(width, height, bytes(out))


def cross_plus_thresholds(size: int = 4) -> ThresholdFn:
    if size < 2:
        raise ParameterError(f"Cross-plus cell size must be at least 2, got {size}")
    centre = size // 2

    def thresholds(x: int, y: int) -> float:
        return 192.0 if x % size == centre or y % size == centre else 64.0

    return thresholds


@dataclass(frozen=True)
class ErrorDiffusion:
    kernel: DiffusionKernel
    serpentine: bool = False

    def apply(self, buf: ImageBuffer, palette: Optional[Palette] = None) -> ImageBuffer:
        return error_diffuse(buf, self.kernel, serpentine=self.serpentine, palette=palette)


@dataclass(frozen=True)
class OrderedMatrix:
    matrix: Matrix

    def apply(self, buf: ImageBuffer, palette: Optional[Palette] = None) -> ImageBuffer:
        return ordered_dither(buf, self.matrix, palette=palette)


@dataclass(frozen=True)
class RandomOrdered:
    seed: int = 1

    def apply(self, buf: ImageBuffer, palette: Optional[Palette] = None) -> ImageBuffer:
        return random_ordered(buf, self.seed, palette=palette)


@dataclass(frozen=True)
class ThresholdMap:
    fn: ThresholdFn = field(compare=False)

    def apply(self, buf: ImageBuffer, palette: Optional[Palette] = None) -> ImageBuffer:
        return threshold_map(buf, self.fn, palette=palette)


@dataclass(frozen=True)
class Passthrough:
    def apply(self, buf: ImageBuffer, palette: Optional[Palette] = None) -> ImageBuffer:
        return buf.copy()


DitherAlgorithm = Union[ErrorDiffusion, OrderedMatrix, RandomOrdered, ThresholdMap, Passthrough]
