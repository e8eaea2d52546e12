from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import final

from basset_cache.application.gateways.http_source_gateway import HttpSourceGateway
from basset_cache.application.gateways.local_source_gateway import LocalSourceGateway
from basset_cache.application.repositories.artifact_store import ArtifactStore
from basset_cache.application.repositories.json_cache_map_repository import (
    JsonCacheMapRepository,
)
from basset_cache.application.repositories.local_disk import LocalDisk
from basset_cache.application.transformers.minifier import Minifier
from basset_cache.domain.models.app_config import AppConfig
from basset_cache.domain.models.asset_key import AssetKey
from basset_cache.domain.models.asset_reference import AssetReference, AssetType
from basset_cache.domain.models.cache_entry import CacheEntry
from basset_cache.domain.models.loader_stats import LoaderStats
from basset_cache.domain.models.results import CheckReport, Resolution
from basset_cache.domain.protocols.source_fetcher_port import SourceFetcherPort
from basset_cache.domain.workflows.asset_loader import AssetLoader


@final
class AssetManager:
    """Process-scoped owner of the cache map, artifact store and loader.

    Construct one per process (``AssetManager.open`` is the usual entry
    point) and pass it to whatever renders templates. ``terminate`` must run
    before exit so that new cache map entries are persisted.
    """

    def __init__(
        self,
        config: AppConfig,
        remote_fetcher: SourceFetcherPort | None = None,
        local_fetcher: SourceFetcherPort | None = None,
    ) -> None:
        self._config = config
        self._log = logging.getLogger("basset_cache.manager")
        self._terminated = False

        self._disk = LocalDisk(
            root=config.paths.disk_root,
            url=config.disk_url,
            visibility=config.user.basset_disk_visibility,
        )
        self.artifact_store = ArtifactStore(
            disk=self._disk,
            base_path=config.basset_path,
            logger=logging.getLogger("basset_cache.artifacts"),
        )
        self.cache_map = JsonCacheMapRepository(
            map_path=config.paths.cache_map_path,
            lock_path=config.paths.cache_map_lock_path,
            artifact_store=self.artifact_store,
            logger=logging.getLogger("basset_cache.cache_map"),
            persist_timeout_seconds=config.user.persist_timeout_seconds,
        )
        self.loader = AssetLoader(
            cache_map=self.cache_map,
            artifact_store=self.artifact_store,
            remote_fetcher=remote_fetcher
            or HttpSourceGateway(
                logger=logging.getLogger("basset_cache.http"),
                timeout_seconds=config.user.fetch_timeout_seconds,
                retries=config.user.fetch_retries,
                user_agent=config.user.user_agent,
            ),
            local_fetcher=local_fetcher or LocalSourceGateway(),
            transformer=Minifier(),
            logger=logging.getLogger("basset_cache.loader"),
            minify=config.user.minify,
            check_fingerprints=config.user.check_fingerprints,
        )

    @classmethod
    @contextmanager
    def open(cls, config: AppConfig) -> Iterator[AssetManager]:
        manager = cls(config)
        try:
            yield manager
        finally:
            manager.terminate()

    @property
    def config(self) -> AppConfig:
        return self._config

    def _parse(self, raw: str) -> AssetReference:
        return AssetReference.parse(raw, self._config.paths.asset_root)

    def resolve_result(
        self, ref: str, minify: bool | None = None, force: bool = False
    ) -> Resolution:
        try:
            reference = self._parse(ref)
        except ValueError as exc:
            return self.loader.reject(ref, str(exc))
        return self.loader(reference, minify=minify, force=force)

    def resolve(self, ref: str, minify: bool | None = None) -> str:
        return self.resolve_result(ref, minify=minify).reference

    def block(
        self, content: str, asset_type: AssetType, minify: bool | None = None
    ) -> Resolution:
        return self.loader(AssetReference.inline(content, asset_type), minify=minify)

    def bundle(
        self,
        name: str,
        refs: Sequence[str],
        asset_type: AssetType,
        minify: bool | None = None,
    ) -> Resolution:
        try:
            members = tuple(self._parse(ref) for ref in refs)
            reference = AssetReference.bundle(name, members, asset_type)
        except ValueError as exc:
            return self.loader.reject(name, str(exc))
        return self.loader(reference, minify=minify)

    def stats(self) -> LoaderStats:
        return self.loader.stats()

    def entries(self) -> list[CacheEntry]:
        return self.cache_map.entries()

    def persist(self) -> bool:
        return self.cache_map.save()

    def clear_all(self) -> int:
        removed = self.cache_map.clear()
        deleted = self.artifact_store.delete_all()
        _ = self.cache_map.save(force=True)
        self._log.info("Cache cleared: entries: %d, artifacts: %d", removed, deleted)
        return removed

    def clear_one(self, ref: str) -> bool:
        try:
            reference = self._parse(ref)
        except ValueError:
            return False

        cleared = False
        for minify in (True, False):
            digest = AssetKey.derive(reference, minify).digest
            entry = self.cache_map.get(digest)
            removed_entry = self.cache_map.remove(digest)
            removed_file = entry is not None and self.artifact_store.delete(entry.artifact_path)
            cleared = cleared or removed_entry or removed_file
        if cleared:
            self._log.info("Asset cleared from cache: %s", reference.source)
        return cleared

    def check(self, fix: bool = False) -> CheckReport:
        entries = self.cache_map.entries()
        referenced: set[str] = set()
        missing: list[str] = []
        mismatched: list[str] = []
        for entry in entries:
            referenced.add(entry.artifact_path)
            size = self.artifact_store.size_of(entry.artifact_path)
            if size is None:
                missing.append(entry.key)
            elif size != entry.size_bytes:
                mismatched.append(entry.key)

        orphans = [
            path for path in self.artifact_store.list_artifacts() if path not in referenced
        ]
        writable = self.artifact_store.probe_writable()

        repaired = 0
        if fix:
            broken = {entry.key: entry for entry in entries if entry.key in {*missing, *mismatched}}
            for key, entry in broken.items():
                _ = self.cache_map.remove(key)
                _ = self.artifact_store.delete(entry.artifact_path)
                repaired += 1
            for path in orphans:
                if self.artifact_store.delete(path):
                    repaired += 1
            _ = self.cache_map.save()

        return CheckReport(
            entries=len(entries),
            missing_artifacts=tuple(missing),
            size_mismatches=tuple(mismatched),
            orphaned_artifacts=tuple(orphans),
            disk_writable=writable,
            repaired=repaired,
        )

    def terminate(self) -> None:
        if self._terminated:
            return
        self._terminated = True

        if self._config.user.log_execution_time:
            stats = self.loader.stats()
            self._log.info(
                "Basset run %d times, with an execution time of %.6fs",
                stats.total_calls,
                stats.total_loading_time_seconds,
            )
        _ = self.persist()
