from __future__ import annotations


class BassetError(Exception):
    """Base class for recoverable asset pipeline failures."""


class SourceUnavailable(BassetError):
    def __init__(self, source: str, reason: str, retryable: bool = False) -> None:
        super().__init__(f"Source unavailable: {source}: {reason}")
        self.source = source
        self.reason = reason
        self.retryable = retryable


class TransformFailed(BassetError):
    pass


class StoreWriteFailed(BassetError):
    pass


class CacheMapCorrupt(BassetError):
    pass
