from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from basset_cache.config.settings_models import UserSettings


@dataclass(frozen=True)
class RuntimePaths:
    app_root: Path
    storage_dir: Path
    disk_root: Path
    artifact_dir: Path
    cache_map_path: Path
    cache_map_lock_path: Path
    logs_dir: Path
    asset_root: Path
    view_paths: tuple[Path, ...]
    settings_path: Path


@dataclass(frozen=True)
class AppConfig:
    user: UserSettings
    paths: RuntimePaths

    @property
    def disk_url(self) -> str:
        configured = str(self.user.basset_disk_url or "").strip()
        if configured:
            return configured.rstrip("/")
        return f"{self.user.app_url.rstrip('/')}/storage"

    @property
    def basset_path(self) -> str:
        return self.user.basset_path.strip("/")
