from __future__ import annotations

import logging
import urllib.error
import urllib.request
from http.client import HTTPResponse
from typing import ClassVar, cast, final, override

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from basset_cache.domain.errors import SourceUnavailable
from basset_cache.domain.protocols.source_fetcher_port import SourceFetcherPort


class _TransientFetchError(Exception):
    pass


@final
class HttpSourceGateway(SourceFetcherPort):
    """Downloads remote assets with a bounded timeout and bounded retries.

    Only transient failures (connection errors, timeouts, 408/425/429 and 5xx
    responses) are retried. Anything else, a 404 for instance, fails on the
    first attempt.
    """

    _TRANSIENT_STATUS: ClassVar[frozenset[int]] = frozenset(
        {408, 425, 429, 500, 502, 503, 504}
    )

    def __init__(
        self,
        logger: logging.Logger,
        timeout_seconds: int = 10,
        retries: int = 2,
        user_agent: str = "basset-cache/0.1",
        retry_wait_seconds: float = 0.5,
    ) -> None:
        self._logger = logger
        self._timeout_seconds = max(1, int(timeout_seconds))
        self._retries = max(0, int(retries))
        self._user_agent = user_agent
        self._retry_wait_seconds = max(0.0, float(retry_wait_seconds))

    def _fetch_once(self, url: str) -> bytes:
        request = urllib.request.Request(url, headers={"User-Agent": self._user_agent})
        try:
            response_obj = cast(
                HTTPResponse,
                urllib.request.urlopen(request, timeout=self._timeout_seconds),
            )
            with response_obj as response:
                status = int(response.status)
                if status in self._TRANSIENT_STATUS:
                    raise _TransientFetchError(f"HTTP {status}")
                if status >= 400:
                    raise SourceUnavailable(url, f"HTTP {status}")
                return response.read()
        except urllib.error.HTTPError as exc:
            if exc.code in self._TRANSIENT_STATUS:
                raise _TransientFetchError(f"HTTP {exc.code}") from exc
            raise SourceUnavailable(url, f"HTTP {exc.code}") from exc
        except urllib.error.URLError as exc:
            raise _TransientFetchError(str(exc.reason)) from exc
        except (TimeoutError, ConnectionError) as exc:
            raise _TransientFetchError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise SourceUnavailable(url, str(exc)) from exc

    def _log_retry(self, state: RetryCallState) -> None:
        outcome = state.outcome
        error = outcome.exception() if outcome is not None else None
        self._logger.debug(
            "Retrying download (attempt %d of %d): %s",
            state.attempt_number + 1,
            self._retries + 1,
            error,
        )

    @override
    def fetch(self, source: str) -> bytes:
        retrying = Retrying(
            reraise=True,
            stop=stop_after_attempt(self._retries + 1),
            wait=wait_exponential(
                multiplier=self._retry_wait_seconds, max=self._retry_wait_seconds * 8
            ),
            retry=retry_if_exception_type(_TransientFetchError),
            before_sleep=self._log_retry,
        )
        try:
            return retrying(self._fetch_once, source)
        except _TransientFetchError as exc:
            raise SourceUnavailable(source, str(exc), retryable=True) from exc
