from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import ClassVar, final, override
from urllib.parse import quote

from basset_cache.domain.protocols.disk_port import DiskPort


@final
class LocalDisk(DiskPort):
    _MODES: ClassVar[dict[str, int]] = {"public": 0o644, "private": 0o600}

    def __init__(self, root: Path, url: str, visibility: str = "public") -> None:
        if visibility not in self._MODES:
            raise ValueError(f"Unsupported disk visibility: {visibility!r}")
        self._root = root
        self._url = url.rstrip("/")
        self._mode = self._MODES[visibility]

    @property
    def root(self) -> Path:
        return self._root

    def _full_path(self, path: str) -> Path:
        relative = PurePosixPath(str(path or "").strip().lstrip("/"))
        if not relative.parts or ".." in relative.parts:
            raise ValueError(f"Invalid disk path: {path!r}")
        return self._root.joinpath(*relative.parts)

    @override
    def put(self, path: str, data: bytes) -> None:
        target = self._full_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=".part"
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as stream:
                _ = stream.write(data)
            tmp.chmod(self._mode)
            _ = tmp.replace(target)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    @override
    def get(self, path: str) -> bytes:
        return self._full_path(path).read_bytes()

    @override
    def exists(self, path: str) -> bool:
        try:
            return self._full_path(path).is_file()
        except ValueError:
            return False

    @override
    def url(self, path: str) -> str:
        relative = str(PurePosixPath(str(path or "").strip().lstrip("/")))
        return f"{self._url}/{quote(relative)}"

    @override
    def delete(self, path: str) -> bool:
        target = self._full_path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True

    @override
    def files(self, directory: str) -> list[str]:
        base = self._full_path(directory)
        if not base.is_dir():
            return []
        found: list[str] = []
        for candidate in base.rglob("*"):
            if not candidate.is_file() or candidate.name.startswith("."):
                continue
            found.append(candidate.relative_to(self._root).as_posix())
        return sorted(found)

    def prune_empty_dirs(self, directory: str) -> None:
        base = self._full_path(directory)
        if not base.is_dir():
            return
        for candidate in sorted(base.rglob("*"), key=lambda item: len(item.parts), reverse=True):
            if candidate.is_dir() and not any(candidate.iterdir()):
                candidate.rmdir()
