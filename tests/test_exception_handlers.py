"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from webguard.core.errors import (
    AppError,
    ConfigurationAppError,
    DatabaseAppError,
    RateLimitAppError,
    ValidationAppError,
)
from webguard.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


@pytest.mark.parametrize(
    "error, status_code",
    [
        (ValidationAppError(code="bad_input", message="Bad input"), 400),
        (ConfigurationAppError(code="missing_env_vars", message="Missing"), 500),
        (DatabaseAppError(code="database_request_failed", message="Upstream failed"), 502),
        (RateLimitAppError(code="rate_limit_exceeded", message="Slow down"), 429),
    ],
)
def test_app_errors_map_to_status(
    client: TestClient, app_with_handlers: FastAPI, error: AppError, status_code: int
) -> None:
    @app_with_handlers.get("/boom")
    async def boom():
        raise error

    resp = client.get("/boom")

    assert resp.status_code == status_code
    data = resp.json()
    assert data["error"]["code"] == error.code
    assert data["error"]["message"] == error.message
    assert "request_id" in data["error"]
    assert "details" not in data["error"]


def test_details_are_included(client: TestClient, app_with_handlers: FastAPI) -> None:
    @app_with_handlers.get("/details")
    async def details():
        raise ConfigurationAppError(
            code="missing_env_vars",
            message="Missing required environment variables: DATABASE_URL",
            details={"missing": ["DATABASE_URL"]},
        )

    data = client.get("/details").json()

    assert data["error"]["details"]["missing"] == ["DATABASE_URL"]


def test_rate_limit_error_sets_retry_after(client: TestClient, app_with_handlers: FastAPI) -> None:
    @app_with_handlers.get("/limited")
    async def limited():
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message="Slow down",
            details={"retry_after": 12.0, "limit": 10, "remaining": 0, "reset_at": 1700000012},
        )

    resp = client.get("/limited")

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "12"
    assert resp.headers["X-RateLimit-Limit"] == "10"
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert resp.headers["X-RateLimit-Reset"] == "1700000012"


def test_unexpected_exception_is_generic_500(client: TestClient, app_with_handlers: FastAPI) -> None:
    @app_with_handlers.get("/crash")
    async def crash():
        raise RuntimeError("connection string postgres://secret")

    resp = client.get("/crash")

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_server_error"
    assert "secret" not in resp.text


def test_general_exception_handler_never_leaks_stack_trace() -> None:
    request = AsyncMock()
    request.url.path = "/test"
    request.method = "GET"

    response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

    text = bytes(response.body).decode()
    assert "Traceback" not in text
    assert "ValueError" not in text


def test_setup_registers_handlers(app_with_handlers: FastAPI) -> None:
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers


def test_app_error_str_is_message() -> None:
    assert str(ValidationAppError(code="x", message="readable")) == "readable"
