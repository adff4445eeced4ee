"""Method debug info cache keyed on method identity and reuse span."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from .method_info import MethodDebugInfo, read_method_debug_info
from .symbols import SymbolProvider

CacheKey = Tuple[int, int, bool]


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0


@dataclass
class MethodDebugInfoCache:
    """Reuses decoded debug info while the IL offset stays inside its reuse span.

    Entries are keyed on (token, version, is_visual_basic); a new method
    version is a new key, never a stale hit.
    """

    reader: Any
    provider: Optional[SymbolProvider] = None
    loader: Callable[..., MethodDebugInfo] = read_method_debug_info
    entries: Dict[CacheKey, MethodDebugInfo] = field(default_factory=dict)
    stats: CacheStats = field(default_factory=CacheStats)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def query(self, method_token: int, method_version: int, il_offset: int, *, is_visual_basic: bool = False) -> MethodDebugInfo:
        key = (method_token, method_version, is_visual_basic)
        with self._lock:
            cached = self.entries.get(key)
            if cached is not None and cached.reuse_span.contains(il_offset):
                self.stats.hits += 1
                return cached
            self.stats.misses += 1
        info = self.loader(self.reader, self.provider, method_token, method_version, il_offset, is_visual_basic)
        with self._lock:
            self.entries[key] = info
        return info

    def lookup(self, method_token: int, method_version: int, *, is_visual_basic: bool = False) -> Optional[MethodDebugInfo]:
        with self._lock:
            return self.entries.get((method_token, method_version, is_visual_basic))

    def invalidate_method(self, method_token: int) -> None:
        with self._lock:
            for key in [key for key in self.entries if key[0] == method_token]:
                self.entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self.entries.clear()


__all__ = ["CacheStats", "MethodDebugInfoCache"]
