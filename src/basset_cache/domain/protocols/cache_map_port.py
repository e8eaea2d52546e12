from __future__ import annotations

from typing import Protocol

from basset_cache.domain.models.cache_entry import CacheEntry


class CacheMapPort(Protocol):
    def get(self, key: str, fingerprint: str | None = None) -> CacheEntry | None: ...

    def put(self, entry: CacheEntry) -> None: ...

    def remove(self, key: str) -> bool: ...

    def save(self, force: bool = False) -> bool: ...
