from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import replace
from pathlib import Path
from typing import final

from basset_cache.application.manager import AssetManager
from basset_cache.application.template_scanner import TemplateScanner
from basset_cache.config.logging_setup import configure_logging
from basset_cache.config.settings_loader import SettingsLoader
from basset_cache.domain.models.app_config import AppConfig
from basset_cache.domain.models.asset_reference import AssetKind, AssetReference
from basset_cache.domain.models.asset_status import AssetStatus
from basset_cache.domain.models.results import CheckReport, WarmResult

ManagerFactory = Callable[[AppConfig], AbstractContextManager[AssetManager]]

_COMMANDS = ("cache", "clear", "check", "install", "fresh", "internalize", "resolve")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="basset-cache",
        description="Maintain the local cache of internalized CSS and JS assets.",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    _ = commands.add_parser("cache", help="Pre-warm every asset referenced by the views")
    _ = commands.add_parser("clear", help="Delete every cached artifact and the cache map")
    check = commands.add_parser("check", help="Verify the cache map against the disk")
    _ = check.add_argument(
        "--fix", action="store_true", help="Drop broken entries and orphaned artifacts"
    )
    _ = commands.add_parser("install", help="Create the storage layout and verify it")
    _ = commands.add_parser("fresh", help="Clear the cache, then pre-warm it again")
    _ = commands.add_parser("internalize", help="Re-download every remote asset")
    resolve = commands.add_parser("resolve", help="Resolve one reference and print its URL")
    _ = resolve.add_argument("reference")
    return parser


@final
class BassetConsole:
    def __init__(
        self,
        config: AppConfig,
        manager_factory: ManagerFactory | None = None,
    ) -> None:
        self._config = config
        self._manager_factory: ManagerFactory = manager_factory or AssetManager.open
        self._log = logging.getLogger("basset_cache.console")
        self._scanner = TemplateScanner(
            view_paths=config.paths.view_paths,
            logger=logging.getLogger("basset_cache.templates"),
        )

    @classmethod
    def run_from_env(cls, argv: Sequence[str] | None = None) -> int:
        args = build_parser().parse_args(argv)
        settings_file = os.getenv("SETTINGS_FILE")
        config = SettingsLoader.load(Path(settings_file) if settings_file else None)
        configure_logging(config.user.log_level, config.paths.logs_dir / "basset_errors.log")
        return cls(config).run(args)

    def run(self, args: argparse.Namespace) -> int:
        command = str(args.command)
        if command not in _COMMANDS:
            raise ValueError(f"Unknown command: {command}")
        if command == "check":
            return 0 if self.check(fix=bool(args.fix)).ok else 1
        if command == "resolve":
            reference = self.resolve(str(args.reference))
            print(reference)
            return 0 if reference else 1
        if command == "clear":
            _ = self.clear()
            return 0
        if command == "install":
            return 0 if self.install().ok else 1

        handlers: dict[str, Callable[[], WarmResult]] = {
            "cache": self.cache,
            "fresh": self.fresh,
            "internalize": self.internalize,
        }
        result = handlers[command]()
        return 0 if not result.failed else 1

    def _known_references(self, manager: AssetManager) -> list[str]:
        references = self._scanner.scan()
        seen: set[str] = set()
        for ref in references:
            try:
                seen.add(AssetReference.parse(ref, self._config.paths.asset_root).source)
            except ValueError:
                continue
        for entry in manager.entries():
            if entry.kind not in {AssetKind.REMOTE, AssetKind.LOCAL}:
                continue
            if entry.source in seen:
                continue
            seen.add(entry.source)
            references.append(entry.source)
        return references

    def _warm(self, manager: AssetManager, force_remote: bool) -> WarmResult:
        cached = 0
        failed: list[str] = []
        references = self._known_references(manager)
        for ref in references:
            force = False
            if force_remote:
                try:
                    force = AssetReference.parse(ref, self._config.paths.asset_root).is_remote
                except ValueError:
                    force = False
            resolution = manager.resolve_result(ref, force=force)
            if resolution.status.is_cached:
                cached += 1
            elif resolution.status in {AssetStatus.FALLBACK, AssetStatus.INVALID}:
                failed.append(ref)

        result = WarmResult(resolved=len(references), cached=cached, failed=tuple(failed))
        self._log.info(
            "Assets warmed: resolved: %d, cached: %d, failed: %d",
            result.resolved,
            result.cached,
            len(result.failed),
        )
        for ref in result.failed:
            self._log.warning("Asset could not be cached: %s", ref)
        return result

    def cache(self) -> WarmResult:
        with self._manager_factory(self._config) as manager:
            return self._warm(manager, force_remote=False)

    def internalize(self) -> WarmResult:
        with self._manager_factory(self._config) as manager:
            return self._warm(manager, force_remote=True)

    def clear(self) -> int:
        with self._manager_factory(self._config) as manager:
            return manager.clear_all()

    def fresh(self) -> WarmResult:
        with self._manager_factory(self._config) as manager:
            _ = manager.clear_all()
            return self._warm(manager, force_remote=False)

    def check(self, fix: bool = False) -> CheckReport:
        with self._manager_factory(self._config) as manager:
            report = manager.check(fix=fix)
            if fix and report.repaired:
                report = replace(manager.check(), repaired=report.repaired)
        self._log_report(report)
        return report

    def install(self) -> CheckReport:
        paths = self._config.paths
        paths.artifact_dir.mkdir(parents=True, exist_ok=True)
        paths.logs_dir.mkdir(parents=True, exist_ok=True)
        with self._manager_factory(self._config) as manager:
            if not paths.cache_map_path.exists():
                if manager.cache_map.save(force=True):
                    self._log.info("Cache map created: %s", paths.cache_map_path)
            report = manager.check()
        self._log_report(report)
        return report

    def resolve(self, ref: str) -> str:
        with self._manager_factory(self._config) as manager:
            resolution = manager.resolve_result(ref)
        self._log.info("Resolved %s (%s)", ref, resolution.status)
        return resolution.reference

    def _log_report(self, report: CheckReport) -> None:
        self._log.info(
            "Cache check: entries: %d, missing: %d, size mismatches: %d, orphans: %d, repaired: %d",
            report.entries,
            len(report.missing_artifacts),
            len(report.size_mismatches),
            len(report.orphaned_artifacts),
            report.repaired,
        )
        if not report.disk_writable:
            self._log.warning("Asset disk is not writable: %s", self._config.paths.artifact_dir)
        for key in report.missing_artifacts:
            self._log.warning("Cache entry %s has no artifact", key)
        for key in report.size_mismatches:
            self._log.warning("Cache entry %s does not match its artifact size", key)
        for path in report.orphaned_artifacts:
            self._log.warning("Orphaned artifact: %s", path)
