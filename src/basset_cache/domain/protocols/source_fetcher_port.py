from __future__ import annotations

from typing import Protocol


class SourceFetcherPort(Protocol):
    def fetch(self, source: str) -> bytes: ...
