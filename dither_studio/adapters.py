"""Hooks for compositing steps the package does not implement itself.

Text overlays and background masks come from the host application as plain
callables of the form ``adapter(buffer, region) -> buffer``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .buffer import ImageBuffer
from .errors import ParameterError
from .infrastructure.cache import AdapterCache


TEXT_OVERLAY = "textOverlay"
BACKGROUND_MASK = "backgroundMask"
ADAPTER_KEYS = (TEXT_OVERLAY, BACKGROUND_MASK)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def full(cls, buf: ImageBuffer) -> "Region":
        return cls(0, 0, buf.width, buf.height)

    def clip(self, buf: ImageBuffer) -> "Region":
        left = min(max(self.x, 0), buf.width)
        top = min(max(self.y, 0), buf.height)
        right = min(max(self.x + self.width, left), buf.width)
        bottom = min(max(self.y + self.height, top), buf.height)
        return Region(left, top, right - left, bottom - top)

    @property
    def empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


Adapter = Callable[[ImageBuffer, Region], ImageBuffer]


def region_from_params(params: Mapping[str, Any], buf: ImageBuffer) -> Region:
    """Read the ``region`` param (``{x, y, width, height}``), clipped to ``buf``.

    Missing keys fall back to the full frame.
    """
    spec = params.get("region")
    if spec is None:
        return Region.full(buf)
    if not isinstance(spec, Mapping):
        raise ParameterError(f"Parameter 'region' must be an object, got {spec!r}")
    try:
        region = Region(
            int(spec.get("x", 0)),
            int(spec.get("y", 0)),
            int(spec.get("width", buf.width)),
            int(spec.get("height", buf.height)),
        )
    except (TypeError, ValueError):
        raise ParameterError(f"Region values must be integers, got {dict(spec)!r}") from None
    if region.width < 0 or region.height < 0:
        raise ParameterError(f"Region size must not be negative, got {region.width}x{region.height}")
    return region.clip(buf)


def call_adapter(adapter: Adapter, buf: ImageBuffer, region: Region) -> ImageBuffer:
    result = adapter(buf, region)
    if not isinstance(result, ImageBuffer):
        raise TypeError(f"Adapter returned {type(result).__name__}, expected ImageBuffer")
    return result


class CachedAdapter:
    """Memoize an adapter by input content and region."""

    def __init__(self, adapter: Adapter, cache: AdapterCache, name: Optional[str] = None) -> None:
        self._adapter = adapter
        self._cache = cache
        self.name = name or getattr(adapter, "__name__", "adapter")

    def __call__(self, buf: ImageBuffer, region: Region) -> ImageBuffer:
        key = (self.name, buf.digest(), region)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Adapter %s cache hit for %s", self.name, region)
            return cached
        result = call_adapter(self._adapter, buf, region)
        self._cache.put(key, result)
        return result
