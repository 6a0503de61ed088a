"""
System Constants & Invariants
==============================
Immutable domain constants: named rate-limit policies, cache durations,
content validation bounds and the prompt creation cap.
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# RATE LIMIT POLICIES
# =============================================================================


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named fixed-window budget."""

    name: str
    max_requests: int
    window_ms: int
    message: str


_MINUTE_MS: Final = 60 * 1000
_HOUR_MS: Final = 60 * _MINUTE_MS


@dataclass(frozen=True)
class RateLimits:
    """Independent budgets per action."""

    GLOBAL: RateLimitPolicy = RateLimitPolicy(
        name="global",
        max_requests=1000,
        window_ms=15 * _MINUTE_MS,
        message="Too many API requests from this IP, please try again later",
    )
    AUTH: RateLimitPolicy = RateLimitPolicy(
        name="auth",
        max_requests=5,
        window_ms=15 * _MINUTE_MS,
        message="Too many authentication attempts, please try again later",
    )
    SOCIAL: RateLimitPolicy = RateLimitPolicy(
        name="social",
        max_requests=30,
        window_ms=_MINUTE_MS,
        message="Too many social actions, please slow down",
    )
    UPLOAD: RateLimitPolicy = RateLimitPolicy(
        name="upload",
        max_requests=50,
        window_ms=_HOUR_MS,
        message="Too many uploads, please try again later",
    )
    SEARCH: RateLimitPolicy = RateLimitPolicy(
        name="search",
        max_requests=60,
        window_ms=_MINUTE_MS,
        message="Too many search requests, please slow down",
    )
    COMMENT: RateLimitPolicy = RateLimitPolicy(
        name="comment",
        max_requests=10,
        window_ms=5 * _MINUTE_MS,
        message="Too many comments, please slow down",
    )
    CREATION: RateLimitPolicy = RateLimitPolicy(
        name="creation",
        max_requests=5,
        window_ms=_HOUR_MS,
        message="Too many creation requests, please try again later",
    )


RATE_LIMITS: Final = RateLimits()


@dataclass(frozen=True)
class PromptCreationCap:
    """Business rule: rolling lookback over persisted creation timestamps."""

    MAX_PROMPTS: int = 3
    LOOKBACK_HOURS: int = 12

    @property
    def period_label(self) -> str:
        return f"{self.LOOKBACK_HOURS} hours"

    @property
    def error_message(self) -> str:
        return (
            f"You can only create {self.MAX_PROMPTS} prompts per {self.period_label}. "
            "Please try again later."
        )


PROMPT_CREATION_CAP: Final = PromptCreationCap()


# =============================================================================
# CACHE DURATIONS (seconds)
# =============================================================================


@dataclass(frozen=True)
class CacheDurations:
    SHORT: int = 300
    MEDIUM: int = 1800
    LONG: int = 3600
    VERY_LONG: int = 86400
    WEEK: int = 604800


CACHE_DURATIONS: Final = CacheDurations()


# =============================================================================
# CONTENT VALIDATION BOUNDS
# =============================================================================


@dataclass(frozen=True)
class ContentLimits:
    TITLE_MIN: int = 3
    TITLE_MAX: int = 200
    DESCRIPTION_MAX: int = 1000
    PROMPT_TEXT_MIN: int = 10
    TAGS_MAX: int = 10
    TAG_MIN_LENGTH: int = 2
    TAG_MAX_LENGTH: int = 30
    COMMENT_MAX: int = 1000
    REPLY_PREVIEW: int = 5
    RATING_MIN: int = 1
    RATING_MAX: int = 5


CONTENT_LIMITS: Final = ContentLimits()


# =============================================================================
# PAGINATION
# =============================================================================

DEFAULT_PAGE_SIZE: Final = 10
MAX_PAGE_SIZE: Final = 100
