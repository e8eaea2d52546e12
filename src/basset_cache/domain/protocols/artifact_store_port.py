from __future__ import annotations

from typing import Protocol

from basset_cache.domain.models.asset_key import AssetKey


class ArtifactStorePort(Protocol):
    def path_for(self, key: AssetKey, fingerprint: str = "") -> str: ...

    def write(self, key: AssetKey, data: bytes, fingerprint: str = "") -> str: ...

    def exists(self, artifact_path: str) -> bool: ...

    def read(self, artifact_path: str) -> bytes: ...

    def delete(self, artifact_path: str) -> bool: ...

    def resolve_public_reference(self, artifact_path: str) -> str: ...
