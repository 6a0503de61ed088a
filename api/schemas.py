"""
API Schemas: Request/Response Models

Request bodies specific to the HTTP layer and the success envelope.
Domain input models (PromptCreate, UserCreate, ...) live in `core.models`
and are used directly as request bodies.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.enums import ModerationAction


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """`{success: true, message?, data}`; `data` must already be JSON-ready."""
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = data
    return body


class ModerationRequest(BaseModel):
    """Command: block or unblock a prompt or a user."""

    action: ModerationAction
    reason: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={"example": {"action": "block", "reason": "Spam content"}}
    )


class MonetizationRequest(BaseModel):
    enable: bool


class RateLimitResetRequest(BaseModel):
    """Command: drop every window of `action` for `principal` (user id or IP)."""

    action: str = Field(..., min_length=1, max_length=50)
    principal: str = Field(..., min_length=1, max_length=100)


class HealthCheckResponse(BaseModel):
    """System health status."""

    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]
