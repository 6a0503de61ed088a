"""
Integration Tests for the error envelope.

A bare FastAPI app with only the exception handlers installed raises each
error family and checks the JSON body and headers a client receives.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.exceptions import add_exception_handlers
from config.constants import PROMPT_CREATION_CAP
from core.exceptions import DecryptionError, RateLimitExceededError
from core.models import PromptCreate

pytestmark = pytest.mark.integration


def envelope_app() -> FastAPI:
    app = FastAPI()
    add_exception_handlers(app)

    @app.get("/cap")
    async def cap():
        raise RateLimitExceededError(
            "Rate limit exceeded",
            errors=[PROMPT_CREATION_CAP.error_message],
            data={"limit": 3, "period": "12 hours", "current": 3},
        )

    @app.get("/window")
    async def window():
        raise RateLimitExceededError("Too many comments, please slow down", retry_after=42)

    @app.get("/decrypt")
    async def decrypt():
        raise DecryptionError("Authentication tag verification failed for key abc")

    @app.post("/validate")
    async def validate(body: PromptCreate):
        return {"ok": True}

    return app


class TestErrorEnvelope:
    @pytest.fixture
    def client(self):
        return TestClient(envelope_app())

    def test_creation_cap_carries_data(self, client):
        response = client.get("/cap")
        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["data"] == {"limit": 3, "period": "12 hours", "current": 3}
        assert body["errors"] == [
            "You can only create 3 prompts per 12 hours. Please try again later."
        ]

    def test_window_limit_carries_retry_after(self, client):
        response = client.get("/window")
        assert response.status_code == 429
        assert response.json()["retryAfter"] == 42
        assert response.headers["Retry-After"] == "42"

    def test_decryption_details_never_reach_the_client(self, client):
        response = client.get("/decrypt")
        assert response.status_code == 500
        assert response.json()["message"] == "Failed to decrypt prompt"
        assert "abc" not in response.json()["message"]

    def test_validation_errors_are_collected(self, client):
        response = client.post(
            "/validate",
            json={"title": "x", "description": "", "prompt_text": "short", "category": "Code"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert len(body["errors"]) >= 3
        assert not any(e.startswith("Value error") for e in body["errors"])

    def test_stack_only_outside_production(self, client):
        body = client.get("/decrypt").json()
        assert "stack" in body
