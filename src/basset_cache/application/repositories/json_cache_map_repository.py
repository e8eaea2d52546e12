from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import ClassVar, cast, final, override

from filelock import FileLock, Timeout
from pydantic import ValidationError

from basset_cache.application.repositories.cache_map_contract import (
    CACHE_MAP_VERSION,
    CacheEntryRecord,
    CacheMapDocument,
)
from basset_cache.domain.errors import CacheMapCorrupt
from basset_cache.domain.models.cache_entry import CacheEntry
from basset_cache.domain.protocols.artifact_store_port import ArtifactStorePort
from basset_cache.domain.protocols.cache_map_port import CacheMapPort


@final
class JsonCacheMapRepository(CacheMapPort):
    """In-memory asset map persisted as a single JSON document.

    The map is read once on construction and written back by ``save``. Reads
    and writes of the in-memory dict are serialised by a re-entrant lock;
    ``save`` additionally takes a file lock so that several processes sharing
    one storage directory never interleave their writes.
    """

    _KEY_RE: ClassVar[re.Pattern[str]] = re.compile(r"^[0-9a-f]{32}$")

    def __init__(
        self,
        map_path: Path,
        lock_path: Path,
        artifact_store: ArtifactStorePort,
        logger: logging.Logger,
        persist_timeout_seconds: float = 5.0,
    ) -> None:
        self._map_path = map_path
        self._file_lock = FileLock(str(lock_path))
        self._artifact_store = artifact_store
        self._logger = logger
        self._persist_timeout_seconds = max(0.0, float(persist_timeout_seconds))
        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}
        self._dirty = False
        self.dropped_records = 0
        self.load()

    def _read_document(self) -> Mapping[str, object]:
        try:
            raw_obj = cast(object, json.loads(self._map_path.read_text("utf-8")))
        except (OSError, ValueError) as exc:
            raise CacheMapCorrupt(f"Unreadable cache map {self._map_path}: {exc}") from exc
        if not isinstance(raw_obj, dict):
            raise CacheMapCorrupt(f"Cache map must be a JSON object: {self._map_path}")
        return cast(dict[str, object], raw_obj)

    def _parse_records(self, raw: Mapping[str, object]) -> tuple[dict[str, CacheEntry], int]:
        records_obj = raw.get("entries")
        if not isinstance(records_obj, dict):
            raise CacheMapCorrupt(f"Cache map has no entries object: {self._map_path}")

        entries: dict[str, CacheEntry] = {}
        dropped = 0
        for key_obj, record_obj in cast(dict[object, object], records_obj).items():
            key = str(key_obj)
            if not self._KEY_RE.match(key):
                dropped += 1
                continue
            try:
                record = CacheEntryRecord.model_validate(record_obj)
            except ValidationError:
                dropped += 1
                continue
            entries[key] = record.to_entry(key)
        return entries, dropped

    def load(self) -> int:
        entries: dict[str, CacheEntry] = {}
        dropped = 0
        if self._map_path.exists():
            try:
                entries, dropped = self._parse_records(self._read_document())
            except CacheMapCorrupt as exc:
                self._logger.warning("%s; starting with an empty cache map", exc)

        if dropped:
            self._logger.warning(
                "Dropped %d unreadable cache map record(s) from %s", dropped, self._map_path
            )

        with self._lock:
            self._entries = entries
            self._dirty = False
            self.dropped_records = dropped
        return len(entries)

    @override
    def get(self, key: str, fingerprint: str | None = None) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._artifact_store.exists(entry.artifact_path):
            self._logger.debug("Cached artifact missing, treating as miss: %s", entry.artifact_path)
            return None
        if fingerprint is not None and fingerprint != entry.source_fingerprint:
            self._logger.debug("Source changed since caching, treating as miss: %s", entry.source)
            return None
        return entry

    @override
    def put(self, entry: CacheEntry) -> None:
        with self._lock:
            if self._entries.get(entry.key) == entry:
                return
            self._entries[entry.key] = entry
            self._dirty = True

    @override
    def remove(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            self._dirty = True
        return True

    def clear(self) -> int:
        with self._lock:
            removed = list(self._entries.values())
            self._entries = {}
            self._dirty = True
        for entry in removed:
            _ = self._artifact_store.delete(entry.artifact_path)
        return len(removed)

    def entries(self) -> list[CacheEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda entry: entry.key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def _serialize(self) -> str:
        with self._lock:
            document = CacheMapDocument(
                version=CACHE_MAP_VERSION,
                entries={
                    key: CacheEntryRecord.from_entry(entry)
                    for key, entry in self._entries.items()
                },
            )
            self._dirty = False
        data = cast(dict[str, object], document.model_dump(mode="json"))
        return json.dumps(data, ensure_ascii=True, indent=2, sort_keys=True) + "\n"

    def _write_atomic(self, payload: str) -> None:
        self._map_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._map_path.parent, prefix=f"{self._map_path.name}.", suffix=".tmp"
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                _ = stream.write(payload)
            _ = tmp.replace(self._map_path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    @override
    def save(self, force: bool = False) -> bool:
        if not force and not self.is_dirty:
            return True

        self._map_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            _ = self._file_lock.acquire(timeout=self._persist_timeout_seconds)
        except Timeout:
            self._logger.warning(
                "Cache map not saved: lock %s busy for %.1fs",
                self._file_lock.lock_file,
                self._persist_timeout_seconds,
            )
            return False

        try:
            payload = self._serialize()
            try:
                self._write_atomic(payload)
            except OSError as exc:
                with self._lock:
                    self._dirty = True
                self._logger.warning("Failed to save cache map %s: %s", self._map_path, exc)
                return False
        finally:
            _ = self._file_lock.release()

        self._logger.debug("Cache map saved: %s (%d entries)", self._map_path, len(self))
        return True
