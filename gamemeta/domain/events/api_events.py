"""Domain Events related to API calls, rate limiting and image fetches.

Examples include events for when calls are deferred, retried, fail, or succeed.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Rate limit governor events ---

@dataclass
class ThrottleModeEntered(DomainEvent):
    """Call volume passed the avoidance threshold; calls are now delayed."""
    call_count: int
    threshold: int
    wait_ms: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ThrottleModeExited(DomainEvent):
    """Call rate is back to full speed."""
    timestamp: float = field(default_factory=time.time)


@dataclass
class RecoveryCooldownStarted(DomainEvent):
    """A hard rejection was received; calls pause until resume_at."""
    wait_ms: int
    timestamp: float = field(default_factory=time.time)


# --- Query client events ---

@dataclass
class QueryDeferred(DomainEvent):
    """A query is being held back (recovery cooldown or avoidance throttling)."""
    endpoint: str
    wait_ms: float
    reason: str  # 'recovery' or 'avoidance'
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """A query hit the rate limit and will be attempted again."""
    endpoint: str
    attempt_number: int
    max_attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    endpoint: str
    latency_ms: float
    result_count: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """A query failed definitively (after retries, or a non-retryable error)."""
    endpoint: str
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


# --- Image cache events ---

@dataclass
class ImageFallbackTriggered(DomainEvent):
    """The requested size was not found upstream; alternate sizes follow."""
    image_id: str
    requested_size: str
    fallback_sizes: Any
    timestamp: float = field(default_factory=time.time)


EventSink = Callable[[DomainEvent], None]


def make_dispatcher(sink: Optional[EventSink], logger) -> EventSink:
    """Returns a dispatcher that forwards to `sink`, or logs at debug level."""
    def dispatch_event(event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if sink is not None:
            sink(event)
    return dispatch_event
