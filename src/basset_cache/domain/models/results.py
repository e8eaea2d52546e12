from __future__ import annotations

from dataclasses import dataclass

from basset_cache.domain.models.asset_key import AssetKey
from basset_cache.domain.models.asset_status import AssetStatus


@dataclass(frozen=True, slots=True)
class Resolution:
    reference: str
    status: AssetStatus
    key: AssetKey | None = None


@dataclass(frozen=True, slots=True)
class CheckReport:
    entries: int
    missing_artifacts: tuple[str, ...]
    size_mismatches: tuple[str, ...]
    orphaned_artifacts: tuple[str, ...]
    disk_writable: bool
    repaired: int = 0

    @property
    def ok(self) -> bool:
        return self.disk_writable and not (
            self.missing_artifacts or self.size_mismatches or self.orphaned_artifacts
        )


@dataclass(frozen=True, slots=True)
class WarmResult:
    resolved: int
    cached: int
    failed: tuple[str, ...]
