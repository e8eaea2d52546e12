from __future__ import annotations

import hashlib
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from datetime import UTC, datetime
from typing import final

from basset_cache.domain.errors import SourceUnavailable, StoreWriteFailed, TransformFailed
from basset_cache.domain.models.asset_key import AssetKey
from basset_cache.domain.models.asset_reference import AssetKind, AssetReference, AssetType
from basset_cache.domain.models.asset_status import AssetStatus
from basset_cache.domain.models.cache_entry import CacheEntry
from basset_cache.domain.models.loader_stats import LoaderStats
from basset_cache.domain.models.results import Resolution
from basset_cache.domain.protocols.artifact_store_port import ArtifactStorePort
from basset_cache.domain.protocols.cache_map_port import CacheMapPort
from basset_cache.domain.protocols.source_fetcher_port import SourceFetcherPort
from basset_cache.domain.protocols.transformer_port import TransformerPort


def fingerprint_bytes(data: bytes) -> str:
    return hashlib.blake2b(data, digest_size=16).hexdigest()


_BUNDLE_SEPARATORS: dict[AssetType | None, bytes] = {
    AssetType.SCRIPT: b";\n",
    AssetType.STYLE: b"\n",
}


@final
class AssetLoader:
    """Resolves an asset reference to a public URL, caching the artifact.

    A call walks check-cache, fetch-or-read, transform and store. No failure
    escapes: an unreachable source yields the original reference, a failed
    transform caches the raw bytes as an unminified entry, and a failed write
    serves the asset uncached. Concurrent misses on one key share a single
    in-flight load.
    """

    def __init__(
        self,
        cache_map: CacheMapPort,
        artifact_store: ArtifactStorePort,
        remote_fetcher: SourceFetcherPort,
        local_fetcher: SourceFetcherPort,
        transformer: TransformerPort,
        logger: logging.Logger,
        minify: bool = True,
        check_fingerprints: bool = True,
        clock: Callable[[], int] = time.perf_counter_ns,
    ) -> None:
        self._cache_map = cache_map
        self._artifact_store = artifact_store
        self._remote_fetcher = remote_fetcher
        self._local_fetcher = local_fetcher
        self._transformer = transformer
        self._logger = logger
        self._minify = minify
        self._check_fingerprints = check_fingerprints
        self._clock = clock

        self._inflight_lock = threading.Lock()
        self._inflight: dict[str, Future[Resolution]] = {}

        self._stats_lock = threading.Lock()
        self._total_calls = 0
        self._total_loading_time_ns = 0
        self._hits = 0
        self._misses = 0
        self._fallbacks = 0
        self._transform_failures = 0
        self._store_failures = 0

    def __call__(
        self,
        reference: AssetReference,
        minify: bool | None = None,
        force: bool = False,
    ) -> Resolution:
        started = self._clock()
        status: AssetStatus | None = None
        try:
            resolution = self._resolve(
                reference, self._minify if minify is None else minify, force
            )
            status = resolution.status
            return resolution
        finally:
            self._record_call(started, status)

    def reject(self, raw: str, reason: str) -> Resolution:
        started = self._clock()
        self._logger.warning("Invalid asset reference %r: %s", raw, reason)
        self._record_call(started, AssetStatus.INVALID)
        return Resolution(str(raw or ""), AssetStatus.INVALID)

    def stats(self) -> LoaderStats:
        with self._stats_lock:
            return LoaderStats(
                total_calls=self._total_calls,
                total_loading_time_ns=self._total_loading_time_ns,
                hits=self._hits,
                misses=self._misses,
                fallbacks=self._fallbacks,
                transform_failures=self._transform_failures,
                store_failures=self._store_failures,
            )

    def get_total_calls(self) -> int:
        with self._stats_lock:
            return self._total_calls

    def get_loading_time(self) -> float:
        with self._stats_lock:
            return self._total_loading_time_ns / 1_000_000_000

    def _record_call(self, started_ns: int, status: AssetStatus | None) -> None:
        elapsed = max(0, self._clock() - started_ns)
        with self._stats_lock:
            self._total_calls += 1
            self._total_loading_time_ns += elapsed
            if status is AssetStatus.IN_CACHE:
                self._hits += 1
            else:
                self._misses += 1
            if status in {AssetStatus.FALLBACK, AssetStatus.INVALID}:
                self._fallbacks += 1

    def _count_failure(self, failure: type[Exception]) -> None:
        with self._stats_lock:
            if failure is TransformFailed:
                self._transform_failures += 1
            elif failure is StoreWriteFailed:
                self._store_failures += 1

    def _resolve(self, reference: AssetReference, minify: bool, force: bool) -> Resolution:
        key = AssetKey.derive(reference, minify)
        if not force:
            entry = self._cache_map.get(key.digest, self._live_fingerprint(reference))
            if entry is not None:
                self._logger.debug("Asset served from cache: %s", self._label(reference))
                return Resolution(
                    self._artifact_store.resolve_public_reference(entry.artifact_path),
                    AssetStatus.IN_CACHE,
                    key,
                )
        return self._single_flight(key, lambda: self._load(reference, key, minify))

    def _single_flight(self, key: AssetKey, load: Callable[[], Resolution]) -> Resolution:
        with self._inflight_lock:
            pending = self._inflight.get(key.digest)
            owner = pending is None
            if pending is None:
                pending = Future()
                self._inflight[key.digest] = pending

        if not owner:
            return pending.result()

        try:
            resolution = load()
        except BaseException as exc:
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(resolution)
            return resolution
        finally:
            with self._inflight_lock:
                _ = self._inflight.pop(key.digest, None)

    def _fetcher_for(self, reference: AssetReference) -> SourceFetcherPort:
        if reference.kind is AssetKind.REMOTE:
            return self._remote_fetcher
        return self._local_fetcher

    def _read_raw(self, reference: AssetReference) -> bytes:
        if reference.kind is AssetKind.INLINE:
            return reference.source.encode("utf-8")
        if reference.kind is AssetKind.BUNDLE:
            separator = _BUNDLE_SEPARATORS.get(reference.asset_type, b"\n")
            return separator.join(self._read_raw(member) for member in reference.members)
        return self._fetcher_for(reference).fetch(reference.source)

    @staticmethod
    def _is_locally_readable(reference: AssetReference) -> bool:
        if reference.kind is AssetKind.BUNDLE:
            return all(AssetLoader._is_locally_readable(item) for item in reference.members)
        return reference.kind is AssetKind.LOCAL

    def _live_fingerprint(self, reference: AssetReference) -> str | None:
        if not self._check_fingerprints or not self._is_locally_readable(reference):
            return None
        try:
            return fingerprint_bytes(self._read_raw(reference))
        except SourceUnavailable:
            # An unreadable source cannot invalidate what was already cached.
            return None

    @staticmethod
    def _label(reference: AssetReference) -> str:
        if reference.kind is AssetKind.INLINE:
            return f"inline {reference.asset_type or 'asset'} block"
        if reference.kind is AssetKind.BUNDLE:
            return f"bundle {reference.source}"
        return reference.source

    @staticmethod
    def _map_source(reference: AssetReference) -> str:
        if reference.kind is AssetKind.INLINE:
            return "inline"
        return reference.source

    @staticmethod
    def _direct_reference(reference: AssetReference) -> str:
        if reference.kind is AssetKind.REMOTE:
            return reference.source
        if reference.kind is AssetKind.LOCAL:
            return reference.original
        return ""

    def _load(self, reference: AssetReference, key: AssetKey, minify: bool) -> Resolution:
        label = self._label(reference)
        try:
            raw = self._read_raw(reference)
        except SourceUnavailable as exc:
            self._logger.warning("Serving original reference, %s", exc)
            return Resolution(self._direct_reference(reference), AssetStatus.FALLBACK, key)

        fingerprint = fingerprint_bytes(raw)
        minified = minify
        data = raw
        if minify:
            try:
                data = self._transformer.transform(raw, reference.suffix)
            except TransformFailed as exc:
                self._count_failure(TransformFailed)
                self._logger.warning("Transform failed for %s, storing it as is: %s", label, exc)
                data = raw
                minified = False

        try:
            artifact_path = self._artifact_store.write(key, data, fingerprint)
        except StoreWriteFailed as exc:
            self._count_failure(StoreWriteFailed)
            self._logger.warning("Serving %s uncached: %s", label, exc)
            return Resolution(self._direct_reference(reference), AssetStatus.UNCACHED, key)

        previous = self._cache_map.get(key.digest)
        self._cache_map.put(
            CacheEntry(
                key=key.digest,
                source=self._map_source(reference),
                kind=reference.kind,
                artifact_path=artifact_path,
                source_fingerprint=fingerprint,
                created_at=datetime.now(UTC).replace(microsecond=0).isoformat(),
                size_bytes=len(data),
                minified=minified,
            )
        )
        if previous is not None and previous.artifact_path != artifact_path:
            _ = self._artifact_store.delete(previous.artifact_path)
        self._logger.info("Asset internalized: %s -> %s", label, artifact_path)
        return Resolution(
            self._artifact_store.resolve_public_reference(artifact_path),
            AssetStatus.INTERNALIZED,
            key,
        )
