from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class UserSettings(BaseModel):
    log_level: str = Field(default="info")
    app_url: str = Field(default="http://localhost")
    basset_disk_driver: str = Field(default="local")
    basset_disk_root: str = Field(default="storage/app/public")
    basset_disk_url: str | None = Field(default=None)
    basset_disk_visibility: str = Field(default="public")
    basset_path: str = Field(default="basset", min_length=1)
    asset_root: str = Field(default="resources")
    view_paths: tuple[str, ...] = Field(default=("resources/views",))
    minify: bool = Field(default=True)
    check_fingerprints: bool = Field(default=True)
    log_execution_time: bool = Field(default=False)
    fetch_timeout_seconds: int = Field(default=10, ge=1)
    fetch_retries: int = Field(default=2, ge=0, le=10)
    persist_timeout_seconds: int = Field(default=5, ge=0)
    user_agent: str = Field(default="basset-cache/0.1")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = str(value or "").strip().lower()
        if normalized not in {"debug", "info", "warn", "warning", "error"}:
            raise ValueError("LOG_LEVEL must be one of: debug, info, warn, error")
        return "warning" if normalized == "warn" else normalized

    @field_validator("basset_disk_driver")
    @classmethod
    def _validate_driver(cls, value: str) -> str:
        normalized = str(value or "").strip().lower()
        if normalized != "local":
            raise ValueError("BASSET_DISK_DRIVER must be: local")
        return normalized

    @field_validator("basset_disk_visibility")
    @classmethod
    def _validate_visibility(cls, value: str) -> str:
        normalized = str(value or "").strip().lower()
        if normalized not in {"public", "private"}:
            raise ValueError("BASSET_DISK_VISIBILITY must be one of: public, private")
        return normalized
