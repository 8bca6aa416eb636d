"""Metadata source selection, rate limit tuning and light record types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class MetadataSource(str, Enum):
    """Which metadata backend is active. Exactly one at a time."""

    NONE = "None"
    IGDB = "IGDB"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MetadataSource":
        """Case-insensitive lookup; empty values mean NONE."""
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.NONE
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        raise ValueError(f"Unknown metadata source: {value!r}")


@dataclass(frozen=True)
class RateLimitTuning:
    """Rate limit parameters. A pure function of the active MetadataSource."""

    avoidance_wait_ms: int = 2000       # delay inserted while throttling
    avoidance_threshold: int = 80       # calls per period before throttling
    avoidance_period_sec: int = 60      # sliding window length
    recovery_wait_ms: int = 10000       # cooldown after a hard rejection


DEFAULT_TUNING = RateLimitTuning()

SOURCE_TUNING: Dict[MetadataSource, RateLimitTuning] = {
    # IGDB allows 4 requests per second
    MetadataSource.IGDB: RateLimitTuning(
        avoidance_wait_ms=1500,
        avoidance_threshold=3,
        avoidance_period_sec=1,
        recovery_wait_ms=10000,
    ),
}


def tuning_for(source: MetadataSource) -> RateLimitTuning:
    return SOURCE_TUNING.get(source, DEFAULT_TUNING)


DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class RetryState:
    """Per logical query retry counter. Discarded once the query resolves."""

    attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


# --- Light record types ---
# The backend schema is large; these carry only what the library commonly reads.

@dataclass
class Game:
    id: int
    name: str = ""
    slug: Optional[str] = None
    summary: Optional[str] = None
    cover: Optional[int] = None
    platforms: List[int] = field(default_factory=list)
    first_release_date: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Game":
        known = {"id", "name", "slug", "summary", "cover", "platforms", "first_release_date"}
        return cls(
            id=record["id"],
            name=record.get("name", ""),
            slug=record.get("slug"),
            summary=record.get("summary"),
            cover=record.get("cover"),
            platforms=list(record.get("platforms") or []),
            first_release_date=record.get("first_release_date"),
            extra={k: v for k, v in record.items() if k not in known},
        )


@dataclass
class Platform:
    id: int
    name: str = ""
    slug: Optional[str] = None
    abbreviation: Optional[str] = None
    platform_logo: Optional[int] = None

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Platform":
        return cls(
            id=record["id"],
            name=record.get("name", ""),
            slug=record.get("slug"),
            abbreviation=record.get("abbreviation"),
            platform_logo=record.get("platform_logo"),
        )


@dataclass
class Cover:
    id: int
    image_id: str
    game: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Cover":
        return cls(
            id=record["id"],
            image_id=record["image_id"],
            game=record.get("game"),
            width=record.get("width"),
            height=record.get("height"),
        )


@dataclass
class RateLimitState:
    """Shared call-volume window and cooldown deadline. Not persisted."""

    window_start: float
    call_count: int = 0
    avoidance_active: bool = False
    resume_at: float = 0.0
