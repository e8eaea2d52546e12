from __future__ import annotations

from enum import StrEnum


class AssetStatus(StrEnum):
    IN_CACHE = "in-cache"
    INTERNALIZED = "internalized"
    UNCACHED = "uncached"
    FALLBACK = "fallback"
    INVALID = "invalid"

    @property
    def is_cached(self) -> bool:
        return self in {AssetStatus.IN_CACHE, AssetStatus.INTERNALIZED}
