from __future__ import annotations

from pathlib import Path

import pytest

from basset_cache.config.settings_loader import SettingsLoader


def test_settings_loader_given_settings_ini_when_load_then_parses_expected_fields(
    temp_workspace: Path,
):
    settings = temp_workspace / "configs" / "settings.ini"
    _ = settings.write_text(
        "\n".join(
            [
                "# asset cache",
                "LOG_LEVEL=warn",
                "export APP_URL=\"https://shop.example.test\"",
                "BASSET_PATH=/assets/",
                "VIEW_PATHS=templates, resources/views, templates",
                "MINIFY=false",
                "CHECK_FINGERPRINTS=no",
                "LOG_EXECUTION_TIME=yes",
                "FETCH_TIMEOUT_SECONDS=3",
                "FETCH_RETRIES=4",
                "USER_AGENT=test-agent/1.0",
            ]
        ),
        encoding="utf-8",
    )

    config = SettingsLoader.load(settings)

    assert config.user.log_level == "warning"
    assert config.user.app_url == "https://shop.example.test"
    assert config.user.minify is False
    assert config.user.check_fingerprints is False
    assert config.user.log_execution_time is True
    assert config.user.fetch_timeout_seconds == 3
    assert config.user.fetch_retries == 4
    assert config.user.user_agent == "test-agent/1.0"
    assert config.basset_path == "assets"
    assert config.disk_url == "https://shop.example.test/storage"
    assert config.paths.view_paths == (
        Path.cwd() / "templates",
        Path.cwd() / "resources" / "views",
    )
    assert config.paths.artifact_dir == Path.cwd() / "storage" / "app" / "public" / "assets"
    assert config.paths.cache_map_path.name == ".basset"
    assert config.paths.cache_map_path.parent == Path.cwd() / "storage" / "framework"
    assert not config.paths.cache_map_path.is_relative_to(config.paths.disk_root)
    assert config.paths.cache_map_lock_path.parent == config.paths.cache_map_path.parent
    assert config.paths.logs_dir == Path.cwd() / "storage" / "logs"


def test_settings_loader_given_missing_file_when_load_then_uses_defaults(
    temp_workspace: Path,
):
    config = SettingsLoader.load(temp_workspace / "configs" / "absent.ini")

    assert config.user.log_level == "info"
    assert config.user.minify is True
    assert config.user.check_fingerprints is True
    assert config.user.fetch_retries == 2
    assert config.user.persist_timeout_seconds == 5
    assert config.disk_url == "http://localhost/storage"
    assert config.paths.asset_root == Path.cwd() / "resources"
    assert config.paths.view_paths == (Path.cwd() / "resources" / "views",)


def test_settings_loader_given_blank_and_invalid_ints_when_load_then_keeps_defaults(
    temp_workspace: Path,
):
    settings = temp_workspace / "configs" / "settings.ini"
    _ = settings.write_text(
        "FETCH_RETRIES=many\nFETCH_TIMEOUT_SECONDS=\nBASSET_DISK_URL=\n", encoding="utf-8"
    )

    config = SettingsLoader.load(settings)

    assert config.user.fetch_retries == 2
    assert config.user.fetch_timeout_seconds == 10
    assert config.user.basset_disk_url is None


def test_settings_loader_given_explicit_disk_url_when_load_then_strips_trailing_slash(
    temp_workspace: Path,
):
    settings = temp_workspace / "configs" / "settings.ini"
    _ = settings.write_text(
        "BASSET_DISK_URL=https://cdn.example.test/static/\nBASSET_DISK_ROOT=/srv/public\n",
        encoding="utf-8",
    )

    config = SettingsLoader.load(settings)

    assert config.disk_url == "https://cdn.example.test/static"
    assert config.paths.disk_root == Path("/srv/public")


@pytest.mark.parametrize(
    "line",
    [
        "BASSET_DISK_DRIVER=s3",
        "BASSET_DISK_VISIBILITY=world",
        "LOG_LEVEL=verbose",
        "FETCH_RETRIES=50",
    ],
)
def test_settings_loader_given_invalid_value_when_load_then_raises(
    temp_workspace: Path,
    line: str,
):
    settings = temp_workspace / "configs" / "settings.ini"
    _ = settings.write_text(line + "\n", encoding="utf-8")

    with pytest.raises(ValueError):
        _ = SettingsLoader.load(settings)


def test_settings_loader_given_no_path_when_load_then_reads_default_location(
    temp_workspace: Path,
):
    _ = (temp_workspace / "configs" / "settings.ini").write_text(
        "BASSET_PATH=cached\n", encoding="utf-8"
    )

    config = SettingsLoader.load()

    assert config.basset_path == "cached"
    assert config.paths.settings_path == Path.cwd() / "configs" / "settings.ini"
