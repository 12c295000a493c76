"""String-keyed table of every transform a pipeline node can name.

A transform is ``(ImageBuffer, params) -> ImageBuffer``. Adding a new effect
means registering one more key; the executor never changes.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from ..buffer import ImageBuffer
from ..errors import ParameterError
from . import dither, effects, enhance, glitch
from .palette import Palette, resolve_palette
from .quantize import palette_map


Params = Mapping[str, Any]
Transform = Callable[[ImageBuffer, Params], ImageBuffer]


class TransformRegistry:
    def __init__(self, transforms: Optional[Mapping[str, Transform]] = None) -> None:
        self._transforms: Dict[str, Transform] = dict(transforms or {})

    def register(self, key: str, fn: Optional[Transform] = None):
        """Register ``fn`` under ``key``; usable as a decorator when ``fn`` is omitted."""

        def decorator(func: Transform) -> Transform:
            if key in self._transforms:
                raise ValueError(f"Transform {key!r} is already registered")
            self._transforms[key] = func
            return func

        if fn is not None:
            return decorator(fn)
        return decorator

    def get(self, key: str) -> Transform:
        try:
            return self._transforms[key]
        except KeyError:
            raise ParameterError(f"Unknown algorithm: {key!r}") from None

    def apply(self, key: str, buf: ImageBuffer, params: Optional[Params] = None) -> ImageBuffer:
        return self.get(key)(buf, params or {})

    def copy(self) -> "TransformRegistry":
        return TransformRegistry(self._transforms)

    def keys(self):
        return sorted(self._transforms)

    def __contains__(self, key: object) -> bool:
        return key in self._transforms

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._transforms)


def number_param(
    params: Params,
    name: str,
    default: float,
    *,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    raw = params.get(name, default)
    if raw is None:
        raw = default
    if isinstance(raw, bool):
        raise ParameterError(f"Parameter {name!r} must be a number, got {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        raise ParameterError(f"Parameter {name!r} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ParameterError(f"Parameter {name!r} must be a finite number, got {raw!r}")
    if minimum is not None and value < minimum:
        raise ParameterError(f"Parameter {name!r} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ParameterError(f"Parameter {name!r} must be <= {maximum}, got {value}")
    return value


def int_param(params: Params, name: str, default: int, **bounds) -> int:
    value = number_param(params, name, default, **bounds)
    if value != int(value):
        raise ParameterError(f"Parameter {name!r} must be a whole number, got {value}")
    return int(value)


def bool_param(params: Params, name: str, default: bool) -> bool:
    raw = params.get(name, default)
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.lower() in ("true", "1", "yes", "on", "false", "0", "no", "off"):
        return raw.lower() in ("true", "1", "yes", "on")
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    raise ParameterError(f"Parameter {name!r} must be a boolean, got {raw!r}")


def str_param(params: Params, name: str, default: str) -> str:
    raw = params.get(name, default)
    if not isinstance(raw, str):
        raise ParameterError(f"Parameter {name!r} must be a string, got {raw!r}")
    return raw


def palette_param(params: Params, required: bool = False) -> Optional[Palette]:
    spec = params.get("palette")
    if spec is None:
        if required:
            raise ParameterError("Parameter 'palette' is required")
        return None
    return resolve_palette(spec)


def _diffusion(kernel: dither.DiffusionKernel, serpentine: bool = False) -> Transform:
    def transform(buf: ImageBuffer, params: Params) -> ImageBuffer:
        return dither.error_diffuse(
            buf,
            kernel,
            serpentine=bool_param(params, "serpentine", serpentine),
            palette=palette_param(params),
        )

    transform.__name__ = kernel.name
    return transform


def _custom_diffusion(buf: ImageBuffer, params: Params) -> ImageBuffer:
    table = params.get("kernel")
    if not table:
        raise ParameterError("Parameter 'kernel' must list [dx, dy, weight] taps")
    divisor = number_param(params, "divisor", 1.0)
    if divisor <= 0:
        raise ParameterError(f"Parameter 'divisor' must be positive, got {divisor}")
    kernel = dither.DiffusionKernel.from_table("custom", divisor, table)
    return dither.error_diffuse(
        buf,
        kernel,
        serpentine=bool_param(params, "serpentine", False),
        palette=palette_param(params),
    )


def _bayer(size: int) -> Transform:
    matrix = dither.build_bayer_matrix(size)

    def transform(buf: ImageBuffer, params: Params) -> ImageBuffer:
        return dither.ordered_dither(buf, matrix, palette=palette_param(params))

    return transform


def _ordered_matrix(buf: ImageBuffer, params: Params) -> ImageBuffer:
    matrix = params.get("matrix")
    if matrix is None:
        matrix = dither.build_bayer_matrix(int_param(params, "size", 8, minimum=2))
    return dither.ordered_dither(buf, matrix, palette=palette_param(params))


def _random_ordered(buf: ImageBuffer, params: Params) -> ImageBuffer:
    return dither.random_ordered(buf, int_param(params, "seed", 1), palette=palette_param(params))


def _threshold(buf: ImageBuffer, params: Params) -> ImageBuffer:
    level = number_param(params, "threshold", 128, minimum=0, maximum=256)
    # round(lum) >= t, with halves rounding up
    cutoff = math.ceil(level) - 0.5
    return dither.threshold_map(buf, lambda x, y: cutoff, palette=palette_param(params))


def _cross_plus(buf: ImageBuffer, params: Params) -> ImageBuffer:
    fn = dither.cross_plus_thresholds(int_param(params, "size", 4))
    return dither.threshold_map(buf, fn, palette=palette_param(params))


def _passthrough(buf: ImageBuffer, params: Params) -> ImageBuffer:
    return dither.Passthrough().apply(buf)


def _palette_map(buf: ImageBuffer, params: Params) -> ImageBuffer:
    return palette_map(buf, palette_param(params, required=True), str_param(params, "mode", "brightness"))


def _glitch_args(params: Params, intensity: float) -> Dict[str, Any]:
    return {
        "intensity": number_param(params, "intensity", intensity, minimum=0, maximum=1),
        "seed": int_param(params, "seed", 1),
        "time": number_param(params, "time", 0.0),
    }


def build_default_registry() -> TransformRegistry:
    registry = TransformRegistry()

    registry.register("floydSteinberg", _diffusion(dither.FLOYD_STEINBERG))
    registry.register("floydSteinbergSerpentine", _diffusion(dither.FLOYD_STEINBERG, serpentine=True))
    for name in (
        "falseFloydSteinberg",
        "jarvisJudiceNinke",
        "atkinson",
        "stucki",
        "burkes",
        "sierra",
        "twoRowSierra",
        "sierraLite",
    ):
        registry.register(name, _diffusion(dither.KERNELS[name]))
    registry.register("errorDiffusion", _custom_diffusion)

    registry.register("bayerOrdered", _bayer(8))
    registry.register("bayerOrdered4x4", _bayer(4))
    registry.register("bayerOrdered16x16", _bayer(16))
    registry.register("orderedMatrix", _ordered_matrix)
    registry.register("randomOrdered", _random_ordered)
    registry.register("threshold", _threshold)
    registry.register("crossPlus", _cross_plus)
    registry.register("none", _passthrough)

    registry.register(
        "contrast",
        lambda buf, params: enhance.apply_contrast(buf, number_param(params, "contrast", 128)),
    )
    registry.register(
        "midtones",
        lambda buf, params: enhance.apply_midtones(buf, number_param(params, "midtones", 128)),
    )
    registry.register(
        "highlights",
        lambda buf, params: enhance.apply_highlights(buf, number_param(params, "highlights", 128)),
    )
    registry.register(
        "bitTone",
        lambda buf, params: enhance.bit_tone(buf, int_param(params, "levels", 4)),
    )
    registry.register(
        "colorize",
        lambda buf, params: enhance.colorize(
            buf,
            mode=str_param(params, "mode", "rgb"),
            red=int_param(params, "red", 255),
            green=int_param(params, "green", 255),
            blue=int_param(params, "blue", 255),
            color=str_param(params, "color", "#ffffff"),
        ),
    )
    registry.register(
        "colorGrade",
        lambda buf, params: enhance.color_grade(
            buf,
            hue=number_param(params, "hue", 0.0),
            saturation=number_param(params, "saturation", 1.0),
            vibrance=number_param(params, "vibrance", 0.0),
        ),
    )
    registry.register("paletteMap", _palette_map)

    registry.register(
        "bloom",
        lambda buf, params: effects.bloom(buf, number_param(params, "bloom", 100)),
    )
    registry.register(
        "grain",
        lambda buf, params: effects.grain(
            buf, number_param(params, "amount", 0.2), int_param(params, "seed", 1)
        ),
    )
    registry.register(
        "halftoneCircles",
        lambda buf, params: effects.halftone_circles(buf, int_param(params, "cellSize", 8)),
    )
    registry.register(
        "pixelate",
        lambda buf, params: effects.pixelate(
            buf, number_param(params, "size", 10), int_param(params, "minSize", 200)
        ),
    )
    registry.register(
        "mosaic",
        lambda buf, params: effects.mosaic(buf, int_param(params, "tileSize", 4)),
    )
    registry.register(
        "crt",
        lambda buf, params: effects.crt(
            buf,
            scanlines=number_param(params, "scanlines", 0.12),
            grille=number_param(params, "grille", 0.05),
            vignette=number_param(params, "vignette", 0.28),
        ),
    )

    registry.register(
        "dataMosh",
        lambda buf, params: glitch.data_mosh(buf, **_glitch_args(params, 0.5)),
    )
    registry.register(
        "pixelSort",
        lambda buf, params: glitch.pixel_sort(
            buf,
            threshold=number_param(params, "threshold", 128),
            direction=str_param(params, "direction", "horizontal"),
            **_glitch_args(params, 1.0),
        ),
    )
    registry.register(
        "chromaticAberration",
        lambda buf, params: glitch.chromatic_aberration(buf, **_glitch_args(params, 0.3)),
    )
    registry.register(
        "digitalCorruption",
        lambda buf, params: glitch.digital_corruption(buf, **_glitch_args(params, 0.3)),
    )

    return registry


DEFAULT_REGISTRY = build_default_registry()
