from __future__ import annotations

import time
from typing import Callable, Dict, Hashable, Optional, Tuple

from ..buffer import ImageBuffer
from ..config import SETTINGS


CacheEntry = Tuple[float, ImageBuffer]


class AdapterCache:
    """Time-bounded memo of adapter results, owned by whoever builds it.

    Nothing in the package shares an instance behind the caller's back; pass
    the same cache to several ``CachedAdapter`` wrappers to share results.
    """

    def __init__(
        self,
        ttl: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = SETTINGS.adapter_cache_ttl if ttl is None else ttl
        self.max_entries = SETTINGS.adapter_cache_size if max_entries is None else max_entries
        if self.max_entries < 1:
            raise ValueError(f"Cache size must be at least 1, got {self.max_entries}")
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Optional[ImageBuffer]:
        entry = self._entries.get(key)
        if not entry:
            return None
        timestamp, buf = entry
        if self._clock() - timestamp > self.ttl:
            self._entries.pop(key, None)
            return None
        return buf

    def put(self, key: Hashable, buf: ImageBuffer) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries.items(), key=lambda item: item[1][0])[0]
            self._entries.pop(oldest, None)
        self._entries[key] = (self._clock(), buf)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
