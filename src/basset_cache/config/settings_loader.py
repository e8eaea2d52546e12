from __future__ import annotations

from pathlib import Path
from typing import ClassVar, final

from basset_cache.config.settings_models import UserSettings
from basset_cache.domain.models.app_config import AppConfig, RuntimePaths


@final
class SettingsLoader:
    _KEY_MAP: ClassVar[dict[str, str]] = {
        "LOG_LEVEL": "log_level",
        "APP_URL": "app_url",
        "BASSET_DISK_DRIVER": "basset_disk_driver",
        "BASSET_DISK_ROOT": "basset_disk_root",
        "BASSET_DISK_URL": "basset_disk_url",
        "BASSET_DISK_VISIBILITY": "basset_disk_visibility",
        "BASSET_PATH": "basset_path",
        "ASSET_ROOT": "asset_root",
        "VIEW_PATHS": "view_paths",
        "MINIFY": "minify",
        "CHECK_FINGERPRINTS": "check_fingerprints",
        "LOG_EXECUTION_TIME": "log_execution_time",
        "FETCH_TIMEOUT_SECONDS": "fetch_timeout_seconds",
        "FETCH_RETRIES": "fetch_retries",
        "PERSIST_TIMEOUT_SECONDS": "persist_timeout_seconds",
        "USER_AGENT": "user_agent",
    }
    _INT_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"fetch_timeout_seconds", "fetch_retries", "persist_timeout_seconds"}
    )
    _BOOL_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"minify", "check_fingerprints", "log_execution_time"}
    )

    @staticmethod
    def _parse_key_value_file(path: Path) -> dict[str, str]:
        data: dict[str, str] = {}
        if not path.exists():
            return data

        for raw_line in path.read_text("utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[7:].strip()
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            data[key.strip()] = value.strip().strip('"').strip("'")
        return data

    @staticmethod
    def _parse_bool(value: str) -> bool:
        return str(value or "").strip().lower() in {"1", "true", "yes", "on"}

    @classmethod
    def _to_user_settings(cls, raw: dict[str, str]) -> UserSettings:
        mapped: dict[str, object] = {}
        for key, value in raw.items():
            target = cls._KEY_MAP.get(key)
            if not target:
                continue
            text = str(value or "").strip()
            if not text:
                continue
            if target in cls._INT_FIELDS:
                try:
                    mapped[target] = int(text)
                except ValueError:
                    continue
                continue
            if target in cls._BOOL_FIELDS:
                mapped[target] = cls._parse_bool(text)
                continue
            if target == "view_paths":
                paths: list[str] = []
                for item in text.split(","):
                    normalized = item.strip()
                    if normalized and normalized not in paths:
                        paths.append(normalized)
                if paths:
                    mapped[target] = tuple(paths)
                continue

            mapped[target] = text

        return UserSettings.model_validate(mapped)

    @staticmethod
    def _anchor(app_root: Path, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else app_root / path

    @classmethod
    def _build_paths(
        cls, app_root: Path, settings_path: Path, user: UserSettings
    ) -> RuntimePaths:
        storage_dir = app_root / "storage"
        disk_root = cls._anchor(app_root, user.basset_disk_root)
        artifact_dir = disk_root / user.basset_path.strip("/")
        return RuntimePaths(
            app_root=app_root,
            storage_dir=storage_dir,
            disk_root=disk_root,
            artifact_dir=artifact_dir,
            cache_map_path=storage_dir / "framework" / ".basset",
            cache_map_lock_path=storage_dir / "framework" / ".basset.lock",
            logs_dir=storage_dir / "logs",
            asset_root=cls._anchor(app_root, user.asset_root),
            view_paths=tuple(cls._anchor(app_root, item) for item in user.view_paths),
            settings_path=settings_path,
        )

    @classmethod
    def load(cls, settings_path: Path | None = None) -> AppConfig:
        app_root = Path.cwd()
        resolved_settings = settings_path or app_root / "configs" / "settings.ini"
        raw = cls._parse_key_value_file(resolved_settings)
        user = cls._to_user_settings(raw)
        paths = cls._build_paths(app_root, resolved_settings, user)
        return AppConfig(user=user, paths=paths)
