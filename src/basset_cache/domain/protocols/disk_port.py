from __future__ import annotations

from typing import Protocol


class DiskPort(Protocol):
    def put(self, path: str, data: bytes) -> None: ...

    def get(self, path: str) -> bytes: ...

    def exists(self, path: str) -> bool: ...

    def url(self, path: str) -> str: ...

    def delete(self, path: str) -> bool: ...

    def files(self, directory: str) -> list[str]: ...
