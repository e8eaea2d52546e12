import sys
import threading
from collections.abc import Callable
from pathlib import Path

root = Path(__file__).resolve().parents[1]
src = root / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

import pytest

from basset_cache.config.settings_loader import SettingsLoader
from basset_cache.domain.errors import SourceUnavailable
from basset_cache.domain.models.app_config import AppConfig


class FakeRemoteFetcher:
    """Serves canned payloads by URL and records every fetch."""

    def __init__(self, payloads: dict[str, bytes] | None = None) -> None:
        self.payloads: dict[str, bytes] = dict(payloads or {})
        self.calls: list[str] = []
        self.gate: threading.Event | None = None
        self._lock = threading.Lock()

    def fetch(self, source: str) -> bytes:
        with self._lock:
            self.calls.append(source)
        if self.gate is not None:
            _ = self.gate.wait(timeout=5)
        payload = self.payloads.get(source)
        if payload is None:
            raise SourceUnavailable(source, "HTTP 404")
        return payload


@pytest.fixture()
def temp_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir(parents=True, exist_ok=True)
    (tmp_path / "resources" / "views").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def load_config(temp_workspace: Path) -> Callable[..., AppConfig]:
    def _load(settings: str = "") -> AppConfig:
        settings_path = temp_workspace / "configs" / "settings.ini"
        _ = settings_path.write_text(settings, encoding="utf-8")
        return SettingsLoader.load(settings_path)

    return _load


@pytest.fixture()
def remote_fetcher() -> FakeRemoteFetcher:
    return FakeRemoteFetcher()
