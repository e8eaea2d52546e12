from __future__ import annotations

import logging
from typing import final, override

from basset_cache.application.repositories.local_disk import LocalDisk
from basset_cache.domain.errors import StoreWriteFailed
from basset_cache.domain.models.asset_key import AssetKey
from basset_cache.domain.protocols.artifact_store_port import ArtifactStorePort


@final
class ArtifactStore(ArtifactStorePort):
    """Owns the transformed bytes on disk.

    Artifact paths are relative to the disk root, sharded by the key digest
    and suffixed with a prefix of the source fingerprint, so a changed source
    never reuses a public URL that browsers may already hold.
    """

    _PROBE_NAME = "basset-write-probe.txt"
    _FINGERPRINT_CHARS = 8

    def __init__(self, disk: LocalDisk, base_path: str, logger: logging.Logger) -> None:
        self._disk = disk
        self._base_path = base_path.strip("/")
        self._logger = logger

    @property
    def base_path(self) -> str:
        return self._base_path

    @override
    def path_for(self, key: AssetKey, fingerprint: str = "") -> str:
        version = fingerprint[: self._FINGERPRINT_CHARS]
        name = f"{key.digest}-{version}" if version else key.digest
        return f"{self._base_path}/{key.digest[:2]}/{name}{key.suffix}"

    @override
    def write(self, key: AssetKey, data: bytes, fingerprint: str = "") -> str:
        artifact_path = self.path_for(key, fingerprint)
        try:
            self._disk.put(artifact_path, data)
        except OSError as exc:
            raise StoreWriteFailed(f"Failed to write {artifact_path}: {exc}") from exc
        return artifact_path

    @override
    def exists(self, artifact_path: str) -> bool:
        return self._disk.exists(artifact_path)

    @override
    def read(self, artifact_path: str) -> bytes:
        return self._disk.get(artifact_path)

    @override
    def delete(self, artifact_path: str) -> bool:
        try:
            return self._disk.delete(artifact_path)
        except OSError as exc:
            self._logger.warning("Failed to delete artifact %s: %s", artifact_path, exc)
            return False

    @override
    def resolve_public_reference(self, artifact_path: str) -> str:
        return self._disk.url(artifact_path)

    def size_of(self, artifact_path: str) -> int | None:
        try:
            return len(self._disk.get(artifact_path))
        except (OSError, ValueError):
            return None

    def list_artifacts(self) -> list[str]:
        return [
            path
            for path in self._disk.files(self._base_path)
            if not path.endswith(self._PROBE_NAME)
        ]

    def delete_all(self) -> int:
        removed = 0
        for artifact_path in self.list_artifacts():
            if self.delete(artifact_path):
                removed += 1
        self._disk.prune_empty_dirs(self._base_path)
        return removed

    def probe_writable(self) -> bool:
        probe = f"{self._base_path}/{self._PROBE_NAME}"
        try:
            self._disk.put(probe, b"basset")
            _ = self._disk.delete(probe)
        except OSError as exc:
            self._logger.warning("Artifact disk is not writable: %s", exc)
            return False
        return True
