"""
Domain Data Models
==================
Pydantic v2 schema definitions for prompts, users, social records and
rate-limit decisions.

The public `Prompt` model has no `prompt_text` attribute at all. Only
`PromptInDB` (ciphertext envelope, repository-internal) and `PromptCopy`
(decrypted, copy endpoint only) carry it.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from config.constants import CONTENT_LIMITS, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.enums import AIPlatform, PrivacyLevel, PromptCategory, ProofType, UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# CONFIGURATION
# =============================================================================


class BaseModelConfig(BaseModel):
    """Base configuration for all models."""

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=False,
        from_attributes=True,
        extra="ignore",
    )


# =============================================================================
# FIELD VALIDATION HELPERS
# =============================================================================

_URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)
_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")


def _check_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Title is required")
    if not CONTENT_LIMITS.TITLE_MIN <= len(v) <= CONTENT_LIMITS.TITLE_MAX:
        raise ValueError(
            f"Title must be between {CONTENT_LIMITS.TITLE_MIN} and "
            f"{CONTENT_LIMITS.TITLE_MAX} characters"
        )
    return v


def _check_description(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Description is required")
    if len(v) > CONTENT_LIMITS.DESCRIPTION_MAX:
        raise ValueError(
            f"Description cannot exceed {CONTENT_LIMITS.DESCRIPTION_MAX} characters"
        )
    return v


def _check_prompt_text(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Prompt text is required")
    if len(v.strip()) < CONTENT_LIMITS.PROMPT_TEXT_MIN:
        raise ValueError(
            f"Prompt text must be at least {CONTENT_LIMITS.PROMPT_TEXT_MIN} characters long"
        )
    return v


def _check_category(v: Any) -> Any:
    if v is None or (isinstance(v, str) and not v.strip()):
        raise ValueError("Category is required")
    allowed = [c.value for c in PromptCategory]
    if isinstance(v, str) and v not in allowed:
        raise ValueError(f"Category must be one of: {', '.join(allowed)}")
    return v


def _check_tags(v: Any) -> list[str]:
    if not isinstance(v, list):
        raise ValueError("Tags must be an array")
    if len(v) > CONTENT_LIMITS.TAGS_MAX:
        raise ValueError(f"Maximum {CONTENT_LIMITS.TAGS_MAX} tags allowed")
    problems = []
    cleaned = []
    for index, tag in enumerate(v, start=1):
        tag = str(tag).strip().lower()
        if not CONTENT_LIMITS.TAG_MIN_LENGTH <= len(tag) <= CONTENT_LIMITS.TAG_MAX_LENGTH:
            problems.append(
                f"Tag {index} must be between {CONTENT_LIMITS.TAG_MIN_LENGTH} and "
                f"{CONTENT_LIMITS.TAG_MAX_LENGTH} characters"
            )
        cleaned.append(tag)
    if problems:
        raise ValueError("; ".join(problems))
    return cleaned


def _check_proof_images(v: list[str]) -> list[str]:
    for url in v:
        if not _URL_PATTERN.match(url):
            raise ValueError("Proof images must be valid http(s) URLs")
    return v


def _check_price(v: float) -> float:
    if v < 0 or math.isnan(v):
        raise ValueError("Price must be a positive number")
    return v


# =============================================================================
# PROMPT MODELS
# =============================================================================


class PromptStats(BaseModelConfig):
    views: int = Field(default=0, ge=0)
    copies: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)


class RatingAggregate(BaseModelConfig):
    average: float = Field(default=0.0, ge=0.0, le=5.0)
    count: int = Field(default=0, ge=0)

    @classmethod
    def from_values(cls, values: list[int]) -> "RatingAggregate":
        """Recompute the aggregate from every stored rating."""
        if not values:
            return cls()
        return cls(average=round(sum(values) / len(values), 2), count=len(values))


class Prompt(BaseModelConfig):
    """
    Prompt as exposed by list and detail reads.

    Deliberately has no protected text field.
    """

    id: UUID = Field(default_factory=uuid4)
    title: str
    description: str
    category: PromptCategory
    tags: list[str] = Field(default_factory=list)
    proof_images: list[str] = Field(default_factory=list)
    proof_type: ProofType = ProofType.TEXT
    ai_platform: Optional[AIPlatform] = None
    creator_id: UUID
    stats: PromptStats = Field(default_factory=PromptStats)
    ratings: RatingAggregate = Field(default_factory=RatingAggregate)
    privacy: PrivacyLevel = PrivacyLevel.PUBLIC
    is_paid: bool = False
    price: float = Field(default=0.0, ge=0.0)
    is_approved: bool = True
    is_featured: bool = False
    is_active: bool = True
    moderation_reason: Optional[str] = None
    moderated_by: Optional[UUID] = None
    moderated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PromptInDB(Prompt):
    """Repository-internal row including the stored ciphertext envelope."""

    prompt_text: str

    def public(self) -> Prompt:
        return Prompt.model_validate(self.model_dump(exclude={"prompt_text"}))


class PromptCopy(Prompt):
    """Copy response: the only model that carries decrypted text."""

    prompt_text: str


class PromptCreate(BaseModelConfig):
    title: str
    description: str
    prompt_text: str
    category: PromptCategory
    tags: list[str] = Field(default_factory=list)
    proof_images: list[str] = Field(default_factory=list)
    proof_type: ProofType = ProofType.TEXT
    ai_platform: Optional[AIPlatform] = None
    privacy: PrivacyLevel = PrivacyLevel.PUBLIC
    is_paid: bool = False
    price: float = 0.0

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _check_description(v)

    @field_validator("prompt_text")
    @classmethod
    def validate_prompt_text(cls, v: str) -> str:
        return _check_prompt_text(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Any:
        return _check_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> list[str]:
        return _check_tags(v)

    @field_validator("proof_images")
    @classmethod
    def validate_proof_images(cls, v: list[str]) -> list[str]:
        return _check_proof_images(v)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: float) -> float:
        return _check_price(v)


class PromptUpdate(BaseModelConfig):
    """
    Partial update. Only the fields declared here can change; anything
    else in the request body is ignored.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    prompt_text: Optional[str] = None
    category: Optional[PromptCategory] = None
    tags: Optional[list[str]] = None
    proof_images: Optional[list[str]] = None
    proof_type: Optional[ProofType] = None
    ai_platform: Optional[AIPlatform] = None
    privacy: Optional[PrivacyLevel] = None
    is_paid: Optional[bool] = None
    price: Optional[float] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _check_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _check_description(v)

    @field_validator("prompt_text")
    @classmethod
    def validate_prompt_text(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _check_prompt_text(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> Any:
        if v is not None and isinstance(v, str) and not v.strip():
            raise ValueError("Category cannot be empty")
        return v if v is None else _check_category(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> Any:
        return v if v is None else _check_tags(v)

    @field_validator("proof_images")
    @classmethod
    def validate_proof_images(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return v if v is None else _check_proof_images(v)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Optional[float]) -> Optional[float]:
        return v if v is None else _check_price(v)

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent."""
        return self.model_dump(mode="json", exclude_unset=True)


class PromptFilters(BaseModelConfig):
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    creator_id: Optional[UUID] = None
    featured: bool = False
    trending: bool = False
    search: Optional[str] = None
    privacy: Optional[PrivacyLevel] = PrivacyLevel.PUBLIC
    active_only: bool = True
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    current_page: int = Field(serialization_alias="currentPage")
    total_pages: int = Field(serialization_alias="totalPages")
    total_items: int = Field(serialization_alias="totalItems")
    items_per_page: int = Field(serialization_alias="itemsPerPage")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            items_per_page=limit,
        )


class PromptPage(BaseModel):
    items: list[Prompt]
    pagination: Pagination


# =============================================================================
# USER MANAGEMENT MODELS
# =============================================================================


class UserCreate(BaseModelConfig):
    username: str
    email: str
    password: str = Field(..., max_length=128)
    full_name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not _USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must be 3-30 characters long and contain only letters, "
                "numbers, and underscores"
            )
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_PATTERN.match(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return v


class User(BaseModelConfig):
    """Public user model without sensitive data."""

    id: UUID = Field(default_factory=uuid4)
    email: str
    username: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True
    monetization_unlocked: bool = False
    stats_total_prompts: int = 0
    stats_total_copies: int = 0
    pinned_prompt_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


class UserInDB(User):
    hashed_password: str

    def public(self) -> User:
        return User.model_validate(self.model_dump(exclude={"hashed_password", "is_admin"}))


# =============================================================================
# SOCIAL MODELS
# =============================================================================


class CommentCreate(BaseModelConfig):
    content: str
    parent_comment_id: Optional[UUID] = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment content is required")
        if len(v) > CONTENT_LIMITS.COMMENT_MAX:
            raise ValueError(f"Comment cannot exceed {CONTENT_LIMITS.COMMENT_MAX} characters")
        return v


class Comment(BaseModelConfig):
    id: UUID = Field(default_factory=uuid4)
    prompt_id: UUID
    user_id: UUID
    content: str
    parent_comment_id: Optional[UUID] = None
    is_deleted: bool = Field(default=False, exclude=True)
    created_at: datetime = Field(default_factory=utcnow)
    replies: list["Comment"] = Field(default_factory=list)
    replies_count: int = 0


class RatingCreate(BaseModelConfig):
    rating: int
    review: str = Field(default="", max_length=500)

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v: int) -> int:
        if not CONTENT_LIMITS.RATING_MIN <= v <= CONTENT_LIMITS.RATING_MAX:
            raise ValueError("Rating must be a whole number between 1 and 5")
        return v


class RatingUpdate(BaseModelConfig):
    rating: Optional[int] = None
    review: Optional[str] = Field(default=None, max_length=500)

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not CONTENT_LIMITS.RATING_MIN <= v <= CONTENT_LIMITS.RATING_MAX:
            raise ValueError("Rating must be a whole number between 1 and 5")
        return v


class Rating(BaseModelConfig):
    id: UUID = Field(default_factory=uuid4)
    prompt_id: UUID
    user_id: UUID
    rating: int
    review: str = ""
    helpful_votes: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class SaveRequest(BaseModelConfig):
    collection_name: str = Field(default="Saved", min_length=1, max_length=100)
    notes: str = Field(default="", max_length=500)


# =============================================================================
# RATE LIMITING
# =============================================================================


class RateLimitDecision(BaseModel):
    """Outcome of one fixed-window check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    count: int = 0
    fail_open: bool = False

    @property
    def reset_at_seconds(self) -> int:
        return math.ceil(self.reset_at_ms / 1000)

    def retry_after(self, now_ms: int) -> int:
        return max(0, math.ceil((self.reset_at_ms - now_ms) / 1000))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at_seconds),
        }
