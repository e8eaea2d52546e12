from __future__ import annotations

from pathlib import Path
from typing import final, override

from basset_cache.domain.errors import SourceUnavailable
from basset_cache.domain.protocols.source_fetcher_port import SourceFetcherPort


@final
class LocalSourceGateway(SourceFetcherPort):
    @override
    def fetch(self, source: str) -> bytes:
        path = Path(source)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise SourceUnavailable(source, "file not found") from exc
        except OSError as exc:
            raise SourceUnavailable(source, exc.strerror or str(exc)) from exc
