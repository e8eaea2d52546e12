from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from basset_cache.application.manager import AssetManager
from basset_cache.domain.models.app_config import AppConfig
from basset_cache.domain.models.asset_reference import AssetType
from basset_cache.domain.models.asset_status import AssetStatus
from conftest import FakeRemoteFetcher

_CSS_URL = "https://cdn.test/site.css"
_JS_URL = "https://cdn.test/app.js"


def _fetcher() -> FakeRemoteFetcher:
    return FakeRemoteFetcher({_CSS_URL: b".a { color: red; }", _JS_URL: b"app();"})


def _map_document(config: AppConfig) -> dict[str, object]:
    return json.loads(config.paths.cache_map_path.read_text("utf-8"))


def test_manager_given_resolved_asset_when_persisted_then_next_process_serves_from_cache(
    load_config: Callable[..., AppConfig],
) -> None:
    config = load_config()
    first_fetcher = _fetcher()
    manager = AssetManager(config, remote_fetcher=first_fetcher)

    url = manager.resolve(_CSS_URL)
    assert url.startswith("http://localhost/storage/basset/")
    assert manager.persist() is True
    assert len(_map_document(config)["entries"]) == 1  # pyright: ignore[reportArgumentType]

    second_fetcher = _fetcher()
    restarted = AssetManager(config, remote_fetcher=second_fetcher)
    resolution = restarted.resolve_result(_CSS_URL)

    assert resolution.status is AssetStatus.IN_CACHE
    assert resolution.reference == url
    assert second_fetcher.calls == []
    assert restarted.stats().hits == 1


def test_manager_given_open_context_when_exited_then_persists_map(
    load_config: Callable[..., AppConfig],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    config = load_config()
    fetcher = _fetcher()
    original_init = AssetManager.__init__

    def _init_with_fake(self: AssetManager, cfg: AppConfig) -> None:
        original_init(self, cfg, remote_fetcher=fetcher)

    monkeypatch.setattr(AssetManager, "__init__", _init_with_fake)

    with AssetManager.open(config) as manager:
        _ = manager.resolve(_JS_URL)

    assert config.paths.cache_map_path.exists()
    assert len(_map_document(config)["entries"]) == 1  # pyright: ignore[reportArgumentType]


def test_manager_given_execution_time_logging_when_terminated_then_logs_totals_once(
    load_config: Callable[..., AppConfig],
    caplog: pytest.LogCaptureFixture,
) -> None:
    config = load_config("LOG_EXECUTION_TIME=true\n")
    manager = AssetManager(config, remote_fetcher=_fetcher())
    _ = manager.resolve(_CSS_URL)
    _ = manager.resolve(_CSS_URL)

    with caplog.at_level(logging.INFO, logger="basset_cache.manager"):
        manager.terminate()
        manager.terminate()

    messages = [record.getMessage() for record in caplog.records if "Basset run" in record.getMessage()]
    assert len(messages) == 1
    assert messages[0].startswith("Basset run 2 times, with an execution time of ")
    assert config.paths.cache_map_path.exists()


def test_manager_given_invalid_reference_when_resolved_then_returns_invalid_and_counts_call(
    load_config: Callable[..., AppConfig],
) -> None:
    manager = AssetManager(load_config(), remote_fetcher=_fetcher())

    resolution = manager.resolve_result("   ")

    assert resolution.status is AssetStatus.INVALID
    assert resolution.reference == "   "
    stats = manager.stats()
    assert stats.total_calls == 1
    assert stats.fallbacks == 1


def test_manager_given_minify_disabled_in_settings_when_resolved_then_stores_raw_bytes(
    load_config: Callable[..., AppConfig],
) -> None:
    config = load_config("MINIFY=false\n")
    manager = AssetManager(config, remote_fetcher=_fetcher())

    _ = manager.resolve(_CSS_URL)

    entry = manager.entries()[0]
    assert entry.minified is False
    assert manager.artifact_store.read(entry.artifact_path) == b".a { color: red; }"


def test_manager_given_cached_assets_when_clear_all_then_removes_entries_and_artifacts(
    load_config: Callable[..., AppConfig],
) -> None:
    config = load_config()
    manager = AssetManager(config, remote_fetcher=_fetcher())
    _ = manager.resolve(_CSS_URL)
    _ = manager.resolve(_JS_URL)

    assert manager.clear_all() == 2

    assert manager.entries() == []
    assert manager.artifact_store.list_artifacts() == []
    assert _map_document(config) == {"version": 1, "entries": {}}


def test_manager_given_cached_asset_when_clear_one_then_only_that_asset_is_removed(
    load_config: Callable[..., AppConfig],
) -> None:
    manager = AssetManager(load_config(), remote_fetcher=_fetcher())
    _ = manager.resolve(_CSS_URL)
    _ = manager.resolve(_CSS_URL, minify=False)
    _ = manager.resolve(_JS_URL)

    assert manager.clear_one(_CSS_URL) is True
    assert manager.clear_one(_CSS_URL) is False
    assert manager.clear_one("") is False

    assert [entry.source for entry in manager.entries()] == [_JS_URL]
    assert len(manager.artifact_store.list_artifacts()) == 1


def test_manager_given_consistent_cache_when_check_then_reports_ok(
    load_config: Callable[..., AppConfig],
) -> None:
    manager = AssetManager(load_config(), remote_fetcher=_fetcher())
    _ = manager.resolve(_CSS_URL)

    report = manager.check()

    assert report.ok is True
    assert report.entries == 1
    assert report.disk_writable is True


def test_manager_given_broken_cache_when_check_with_fix_then_repairs_it(
    load_config: Callable[..., AppConfig],
) -> None:
    config = load_config()
    manager = AssetManager(config, remote_fetcher=_fetcher())
    _ = manager.resolve(_CSS_URL)
    _ = manager.resolve(_JS_URL)
    js_entry, css_entry = sorted(manager.entries(), key=lambda entry: entry.source)
    assert manager.artifact_store.delete(js_entry.artifact_path) is True
    _ = (config.paths.disk_root / css_entry.artifact_path).write_bytes(b"tampered and longer")
    stray = config.paths.artifact_dir / "zz" / "stray.css"
    stray.parent.mkdir(parents=True, exist_ok=True)
    _ = stray.write_text("x{}", encoding="utf-8")

    report = manager.check()
    assert report.ok is False
    assert report.missing_artifacts == (js_entry.key,)
    assert report.size_mismatches == (css_entry.key,)
    assert report.orphaned_artifacts == (f"{config.basset_path}/zz/stray.css",)

    fixed = manager.check(fix=True)

    assert fixed.repaired == 3
    assert manager.entries() == []
    assert not stray.exists()
    assert manager.check().ok is True


def test_manager_given_bundle_with_unreachable_member_when_resolved_then_falls_back(
    load_config: Callable[..., AppConfig],
) -> None:
    manager = AssetManager(load_config(), remote_fetcher=_fetcher())

    resolution = manager.bundle("site", [_CSS_URL, "https://cdn.test/gone.css"], AssetType.STYLE)
    empty = manager.bundle("nothing", [], AssetType.STYLE)

    assert resolution.status is AssetStatus.FALLBACK
    assert resolution.reference == ""
    assert empty.status is AssetStatus.INVALID


def test_manager_given_inline_block_when_resolved_then_serves_cached_artifact(
    load_config: Callable[..., AppConfig],
) -> None:
    manager = AssetManager(load_config(), remote_fetcher=_fetcher())

    first = manager.block(".hero { margin: 0; }", AssetType.STYLE)
    second = manager.block(".hero { margin: 0; }", AssetType.STYLE)

    assert first.status is AssetStatus.INTERNALIZED
    assert second.status is AssetStatus.IN_CACHE
    assert first.reference.endswith(".css")


def test_manager_given_relative_local_reference_when_resolved_then_reads_from_asset_root(
    load_config: Callable[..., AppConfig],
    temp_workspace: Path,
) -> None:
    _ = (temp_workspace / "resources" / "site.css").write_text("b { }", encoding="utf-8")
    manager = AssetManager(load_config(), remote_fetcher=_fetcher())

    resolution = manager.resolve_result("site.css")
    missing = manager.resolve_result("absent.css")

    assert resolution.status is AssetStatus.INTERNALIZED
    assert missing.status is AssetStatus.FALLBACK
    assert missing.reference == "absent.css"


def test_manager_given_edited_local_file_when_resolved_again_then_serves_a_new_url(
    load_config: Callable[..., AppConfig],
    temp_workspace: Path,
) -> None:
    source = temp_workspace / "resources" / "app.css"
    _ = source.write_text("a { color: red; }", encoding="utf-8")
    config = load_config()
    manager = AssetManager(config, remote_fetcher=_fetcher())

    red = manager.resolve("app.css")
    _ = source.write_text("a { color: blue; }", encoding="utf-8")
    blue = manager.resolve("app.css")

    assert red != blue
    assert manager.artifact_store.list_artifacts() == [manager.entries()[0].artifact_path]
    assert manager.clear_one("app.css") is True
    assert manager.artifact_store.list_artifacts() == []

    assert manager.persist() is True
    assert config.paths.cache_map_path.exists()
    assert not config.paths.cache_map_path.is_relative_to(config.paths.disk_root)
