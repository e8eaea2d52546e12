from __future__ import annotations

from typing import Protocol


class TransformerPort(Protocol):
    def transform(self, data: bytes, suffix: str) -> bytes: ...
