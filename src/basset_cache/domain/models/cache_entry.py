from __future__ import annotations

from dataclasses import dataclass

from basset_cache.domain.models.asset_reference import AssetKind


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    source: str
    kind: AssetKind
    artifact_path: str
    source_fingerprint: str
    created_at: str
    size_bytes: int
    minified: bool = False
