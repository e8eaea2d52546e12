from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LoaderStats:
    total_calls: int = 0
    total_loading_time_ns: int = 0
    hits: int = 0
    misses: int = 0
    fallbacks: int = 0
    transform_failures: int = 0
    store_failures: int = 0

    @property
    def total_loading_time_seconds(self) -> float:
        return self.total_loading_time_ns / 1_000_000_000
