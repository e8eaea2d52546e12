from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from basset_cache.domain.models.asset_reference import AssetKind
from basset_cache.domain.models.cache_entry import CacheEntry

CACHE_MAP_VERSION = 1


class CacheEntryRecord(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    source: str
    kind: AssetKind
    artifact_path: str = Field(min_length=1)
    source_fingerprint: str = ""
    created_at: str = ""
    size_bytes: int = Field(default=0, ge=0)
    minified: bool = False

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> CacheEntryRecord:
        return cls(
            source=entry.source,
            kind=entry.kind,
            artifact_path=entry.artifact_path,
            source_fingerprint=entry.source_fingerprint,
            created_at=entry.created_at,
            size_bytes=entry.size_bytes,
            minified=entry.minified,
        )

    def to_entry(self, key: str) -> CacheEntry:
        return CacheEntry(
            key=key,
            source=self.source,
            kind=self.kind,
            artifact_path=self.artifact_path,
            source_fingerprint=self.source_fingerprint,
            created_at=self.created_at,
            size_bytes=self.size_bytes,
            minified=self.minified,
        )


class CacheMapDocument(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    version: int = CACHE_MAP_VERSION
    entries: dict[str, CacheEntryRecord] = Field(default_factory=dict)
