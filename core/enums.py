"""
Domain Enumerations & Type Taxonomy
====================================
Type-safe enumerations for domain modeling. String enums serialize
directly to JSON and database columns without integer mapping fragility.
"""

from enum import Enum, IntEnum


class PrivacyLevel(str, Enum):
    """Who may see a prompt's detail view."""

    PUBLIC = "public"
    PRIVATE = "private"
    FOLLOWERS = "followers"


class PromptCategory(str, Enum):
    ART_AND_DESIGN = "Art & Design"
    MARKETING = "Marketing"
    WRITING = "Writing"
    CODE = "Code"
    MUSIC = "Music"
    VIDEO = "Video"
    VOICE = "Voice"
    BUSINESS = "Business"
    OTHER = "Other"


class ProofType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"


class AIPlatform(str, Enum):
    """Model or tool a prompt was written for."""

    CHATGPT = "ChatGPT"
    CLAUDE = "Claude"
    MIDJOURNEY = "Midjourney"
    DALL_E = "DALL-E"
    STABLE_DIFFUSION = "Stable Diffusion"
    GEMINI = "Gemini"
    PERPLEXITY = "Perplexity"
    OTHER = "Other"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ModerationAction(str, Enum):
    BLOCK = "block"
    UNBLOCK = "unblock"


class PromptStat(str, Enum):
    """Engagement counters that are incremented atomically in storage."""

    VIEWS = "views"
    COPIES = "copies"
    LIKES = "likes"
    COMMENTS = "comments"
    SHARES = "shares"

    @property
    def column(self) -> str:
        return f"stats_{self.value}"


class ErrorKind(str, Enum):
    """
    Failure categories carried by `core.result.Err`.

    Each kind maps to exactly one exception type and HTTP status.
    """

    VALIDATION = "validation"
    AUTHENTICATION_REQUIRED = "authentication_required"
    ACCESS_DENIED = "access_denied"
    MONETIZATION_NOT_UNLOCKED = "monetization_not_unlocked"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    DECRYPTION_FAILURE = "decryption_failure"
    INTERNAL = "internal"


class ConnectionState(str, Enum):
    """Lifecycle of an injected store client."""

    NOT_CONFIGURED = "not_configured"
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSED = "closed"

    @property
    def is_usable(self) -> bool:
        return self is ConnectionState.CONNECTED


class RateLimitOutcome(str, Enum):
    """Label values for rate-limit decision metrics."""

    ALLOWED = "allowed"
    BLOCKED = "blocked"
    FAIL_OPEN = "fail_open"


class ErrorSeverity(IntEnum):
    """
    Error classification by impact severity.

    Determines alerting and logging level.
    """

    CRITICAL = 5  # Data integrity incident
    ERROR = 4
    WARNING = 3  # Degraded, still serving
    INFO = 2  # Expected client error
    DEBUG = 1
