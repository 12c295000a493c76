"""Pixel transforms, palettes and the registry that names them."""

from .dither import (
    KERNELS,
    DiffusionKernel,
    DitherAlgorithm,
    ErrorDiffusion,
    OrderedMatrix,
    Passthrough,
    RandomOrdered,
    ThresholdMap,
    build_bayer_matrix,
    error_diffuse,
    lcg_noise_tile,
    ordered_dither,
    random_ordered,
    threshold_map,
)
from .palette import PRESET_PALETTES, Palette, get_palette, resolve_palette
from .quantize import palette_map
from .registry import DEFAULT_REGISTRY, TransformRegistry

__all__ = [
    "KERNELS",
    "DiffusionKernel",
    "DitherAlgorithm",
    "ErrorDiffusion",
    "OrderedMatrix",
    "Passthrough",
    "RandomOrdered",
    "ThresholdMap",
    "build_bayer_matrix",
    "error_diffuse",
    "lcg_noise_tile",
    "ordered_dither",
    "random_ordered",
    "threshold_map",
    "PRESET_PALETTES",
    "Palette",
    "get_palette",
    "resolve_palette",
    "palette_map",
    "DEFAULT_REGISTRY",
    "TransformRegistry",
]
