"""Service for executing metadata queries with pacing and bounded retries.

Every query consults the shared RateLimitGovernor before dispatch: it waits
out any recovery cooldown, then applies avoidance throttling. Hard rate limit
rejections are retried up to `max_attempts` dispatches; every other failure
propagates immediately.
"""

import logging
import threading
import time
from typing import List, Optional, Tuple

from gamemeta.domain.events.api_events import (
    ApiCallFailed, ApiCallSucceeded, EventSink, QueryDeferred, RetryScheduled,
    make_dispatcher,
)
from gamemeta.domain.exceptions import BackendError, RateLimitExhausted, RateLimitRejected
from gamemeta.domain.interfaces.metadata_backend import MetadataBackend
from gamemeta.domain.models.common import (
    Endpoint, QueryFields, QueryFilter, ResultMapper, build_query_body,
)
from gamemeta.domain.models.metadata import DEFAULT_MAX_ATTEMPTS, MetadataSource, RetryState
from gamemeta.infrastructure.resilience.rate_governor import RateLimitGovernor

logger = logging.getLogger(__name__)


class MetadataQueryClient:
    """Dispatches typed queries to the active metadata backend."""

    def __init__(
        self,
        governor: RateLimitGovernor,
        backend: Optional[MetadataBackend] = None,
        source: MetadataSource = MetadataSource.NONE,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the MetadataQueryClient.

        Args:
            governor: Shared rate limit governor. Its tuning is reset to `source`.
            backend: Backend for `source`; None when no source is configured.
            source: The active metadata source.
            max_attempts: Dispatch budget per logical query under hard rate limiting.
            event_sink: Optional receiver for query events.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.governor = governor
        self.max_attempts = max_attempts
        self._dispatch = make_dispatcher(event_sink, logger)
        self._config_lock = threading.Lock()
        self._source = MetadataSource.NONE
        self._backend: Optional[MetadataBackend] = None
        self.switch_source(source, backend)

    @property
    def source(self) -> MetadataSource:
        return self._source

    def switch_source(self, source: MetadataSource, backend: Optional[MetadataBackend]) -> None:
        """Installs a new source/backend pair and resets the governor's tuning."""
        if source is not MetadataSource.NONE and backend is None:
            raise ValueError(f"A backend is required for metadata source '{source.value}'.")
        with self._config_lock:
            previous = self._backend
            self._source = source
            self._backend = backend if source is not MetadataSource.NONE else None
        self.governor.configure(source)
        if previous is not None and previous is not backend:
            previous.close()
        logger.info(f"MetadataQueryClient using source '{source.value}'.")

    def _active(self) -> Tuple[MetadataSource, Optional[MetadataBackend]]:
        with self._config_lock:
            return self._source, self._backend

    def query(
        self,
        endpoint: Endpoint,
        fields: QueryFields,
        query_filter: QueryFilter,
        result_type: Optional[ResultMapper] = None,
    ) -> List:
        """Runs one logical query.

        Args:
            endpoint: API endpoint segment (e.g. 'games').
            fields: Field selection fragment (e.g. 'fields name,slug').
            query_filter: Selection fragment (e.g. 'where id = 1942').
            result_type: Optional callable mapping each raw record to a typed result.

        Returns:
            The (optionally mapped) records. Empty when no source is configured.

        Raises:
            RateLimitExhausted: If every dispatch in the budget was rate limited.
            BackendError: For any other failure. Not retried.
        """
        source, backend = self._active()
        if source is MetadataSource.NONE or backend is None:
            logger.debug(f"No metadata source configured; skipping query to '{endpoint}'.")
            return []

        query_body = build_query_body(fields, query_filter)
        retry = RetryState(max_attempts=self.max_attempts)
        logger.debug(f"Accessing API for endpoint: {endpoint}")

        while True:
            self._wait_for_permission(endpoint, retry)

            start_time = time.perf_counter()
            try:
                records = backend.query(endpoint, query_body)
            except RateLimitRejected as e:
                retry.attempts += 1
                self.governor.enter_recovery(e.retry_after)
                if retry.exhausted:
                    logger.warning(
                        f"Rate limiter attempts expired for endpoint '{endpoint}' "
                        f"after {retry.attempts} attempts. Aborting."
                    )
                    self._dispatch(ApiCallFailed(endpoint=endpoint, error_type="RateLimitExhausted", error_message=str(e)))
                    raise RateLimitExhausted(endpoint, retry.attempts, e) from e
                logger.info(
                    f"API rate limit hit while accessing endpoint '{endpoint}'. "
                    f"Attempt {retry.attempts} of {retry.max_attempts}."
                )
                self._dispatch(RetryScheduled(endpoint=endpoint, attempt_number=retry.attempts, max_attempts=retry.max_attempts))
                continue
            except BackendError as e:
                logger.warning(f"Exception when accessing endpoint '{endpoint}': {e}")
                self._dispatch(ApiCallFailed(endpoint=endpoint, error_type=type(e).__name__, error_message=str(e)))
                raise
            except Exception as e:
                logger.warning(f"Unexpected exception when accessing endpoint '{endpoint}': {e}", exc_info=True)
                self._dispatch(ApiCallFailed(endpoint=endpoint, error_type=type(e).__name__, error_message=str(e)))
                raise BackendError(endpoint, f"{type(e).__name__}: {e}") from e

            self.governor.record_call()
            latency_ms = (time.perf_counter() - start_time) * 1000
            self._dispatch(ApiCallSucceeded(endpoint=endpoint, latency_ms=latency_ms, result_count=len(records)))

            if result_type is None:
                return list(records)
            try:
                return [result_type(record) for record in records]
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Could not map records from endpoint '{endpoint}': {e}")
                raise BackendError(endpoint, f"unexpected record shape: {e}") from e

    def _wait_for_permission(self, endpoint: Endpoint, retry: RetryState) -> None:
        """Blocks through any recovery cooldown, then applies avoidance throttling."""
        waiting, wait_ms = self.governor.should_wait_for_recovery()
        if waiting:
            logger.info(
                f"Rate limit cooldown active. Pausing API communications for {wait_ms:.0f}ms. "
                f"Attempt {retry.attempts} of {retry.max_attempts} retries."
            )
            self._dispatch(QueryDeferred(endpoint=endpoint, wait_ms=wait_ms, reason="recovery"))
            self.governor.pause(wait_ms)

        if self.governor.should_avoidance_throttle():
            wait_ms = self.governor.avoidance_wait_ms
            self._dispatch(QueryDeferred(endpoint=endpoint, wait_ms=wait_ms, reason="avoidance"))
            self.governor.pause(wait_ms)

    def close(self) -> None:
        _, backend = self._active()
        if backend is not None:
            backend.close()
