"""Rate limit governor shared by every query against one external quota.

Two mechanisms:
  * avoidance: once more than `avoidance_threshold` calls land inside the
    current `avoidance_period_sec` window, each call is delayed by
    `avoidance_wait_ms`. The window resets when the period elapses.
  * recovery: after a hard rejection, no call is attempted until
    `resume_at` (now + `recovery_wait_ms`).
"""

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Optional, Tuple

from gamemeta.domain.events.api_events import (
    DomainEvent, EventSink, RecoveryCooldownStarted, ThrottleModeEntered,
    ThrottleModeExited, make_dispatcher,
)
from gamemeta.domain.models.metadata import (
    MetadataSource, RateLimitState, RateLimitTuning, tuning_for,
)

logger = logging.getLogger(__name__)

# Communications start with no cooldown pending
INITIAL_RESUME_OFFSET_SECONDS = 5 * 60


class RateLimitGovernor:
    """Thread-safe avoidance window plus recovery deadline."""

    def __init__(
        self,
        source: MetadataSource = MetadataSource.NONE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the governor.

        Args:
            source: Active metadata source; selects the tuning parameters.
            clock: Monotonic time source in seconds (injectable for tests).
            sleep: Blocking sleep in seconds (injectable for tests).
            event_sink: Optional receiver for throttle/recovery events.
        """
        self._clock = clock
        self._sleep = sleep
        self._dispatch = make_dispatcher(event_sink, logger)
        self._lock = threading.Lock()
        now = clock()
        self._state = RateLimitState(
            window_start=now,
            resume_at=now - INITIAL_RESUME_OFFSET_SECONDS,
        )
        self.source = source
        self.tuning: RateLimitTuning = tuning_for(source)
        logger.info(
            f"RateLimitGovernor initialized for source '{source.value}': "
            f"threshold={self.tuning.avoidance_threshold} calls/{self.tuning.avoidance_period_sec}s, "
            f"avoidance wait={self.tuning.avoidance_wait_ms}ms, recovery wait={self.tuning.recovery_wait_ms}ms"
        )

    def configure(self, source: MetadataSource) -> None:
        """Switches tuning to `source` immediately."""
        with self._lock:
            self.source = source
            self.tuning = tuning_for(source)
        logger.info(f"Rate limit tuning reset for source '{source.value}': {self.tuning}")

    # --- Avoidance ---

    def should_avoidance_throttle(self) -> bool:
        """Decides whether the next call should be delayed.

        Resets the window if the period has elapsed. Mode transitions are
        reported once per change, not on every call.
        """
        event: Optional[DomainEvent] = None
        with self._lock:
            now = self._clock()
            state = self._state
            tuning = self.tuning
            if state.window_start + tuning.avoidance_period_sec <= now:
                state.window_start = now
                state.call_count = 0
                # avoidance_active is left as-is; the next in-window check reports the exit
                return False

            if state.call_count > tuning.avoidance_threshold:
                if not state.avoidance_active:
                    state.avoidance_active = True
                    event = ThrottleModeEntered(
                        call_count=state.call_count,
                        threshold=tuning.avoidance_threshold,
                        wait_ms=tuning.avoidance_wait_ms,
                    )
                throttle = True
            else:
                if state.avoidance_active:
                    state.avoidance_active = False
                    event = ThrottleModeExited()
                throttle = False

        if isinstance(event, ThrottleModeEntered):
            logger.info(
                f"Entered rate limit avoidance period, API calls will be throttled by "
                f"{event.wait_ms} milliseconds."
            )
        elif isinstance(event, ThrottleModeExited):
            logger.info("Exited rate limit avoidance period, API call rate is returned to full speed.")
        if event is not None:
            self._dispatch(event)
        return throttle

    def record_call(self) -> None:
        """Counts one successful dispatch against the current window."""
        with self._lock:
            self._state.call_count += 1

    # --- Recovery ---

    def enter_recovery(self, retry_after: Optional[float] = None) -> None:
        """Starts the cooldown after a hard rate limit rejection.

        Args:
            retry_after: Seconds the server asked us to wait, if it said. The
                cooldown is never shorter than the configured recovery wait.
        """
        with self._lock:
            wait_ms = self.tuning.recovery_wait_ms
            if retry_after is not None and retry_after * 1000.0 > wait_ms:
                wait_ms = int(retry_after * 1000.0)
            self._state.resume_at = self._clock() + wait_ms / 1000.0
        logger.info(f"Rate limit hit. Pausing API communications for {wait_ms} milliseconds.")
        self._dispatch(RecoveryCooldownStarted(wait_ms=wait_ms))

    def should_wait_for_recovery(self) -> Tuple[bool, float]:
        """Returns (True, remaining_ms) while the cooldown is active."""
        with self._lock:
            remaining = self._state.resume_at - self._clock()
        if remaining > 0:
            return True, remaining * 1000.0
        return False, 0.0

    # --- Blocking helpers (never called while holding the lock) ---

    def pause(self, wait_ms: float) -> None:
        if wait_ms > 0:
            self._sleep(wait_ms / 1000.0)

    @property
    def avoidance_wait_ms(self) -> int:
        return self.tuning.avoidance_wait_ms

    def snapshot(self) -> RateLimitState:
        """Copy of the current state, for status display and tests."""
        with self._lock:
            return replace(self._state)
