"""Tests for the process-wide throttle helpers and the 429 dependency."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from webguard.core import rate_limit
from webguard.core.config import settings
from webguard.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def tight_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_enabled", True)
    monkeypatch.setattr(settings.app, "rate_limit_requests", 2)
    monkeypatch.setattr(settings.app, "rate_limit_window_ms", 60_000)
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", True)
    monkeypatch.setattr(settings.app, "trust_forwarded_for", False)


def test_module_functions_share_one_registry() -> None:
    assert rate_limit.remaining_quota("user:1", 3, 1000) == 3
    assert rate_limit.try_admit("user:1", 3, 1000) is True
    assert rate_limit.get_request_throttle().remaining_quota("user:1", 3, 1000) == 2

    rate_limit.clear("user:1")
    assert rate_limit.remaining_quota("user:1", 3, 1000) == 3


def test_clear_all_resets_every_identifier() -> None:
    rate_limit.try_admit("a", 1)
    rate_limit.try_admit("b", 1)

    rate_limit.clear_all()

    assert rate_limit.remaining_quota("a", 1) == 1
    assert rate_limit.remaining_quota("b", 1) == 1


def test_throttle_is_cached_until_eviction_config_changes(monkeypatch: pytest.MonkeyPatch) -> None:
    first = rate_limit.get_request_throttle()
    assert rate_limit.get_request_throttle() is first

    monkeypatch.setattr(settings.app, "rate_limit_max_entries", 5)
    rebuilt = rate_limit.get_request_throttle()
    assert rebuilt is not first
    assert rebuilt.max_entries == 5


def test_client_identifier_ignores_forwarded_for_by_default() -> None:
    request = Mock()
    request.headers = {"x-forwarded-for": "203.0.113.7"}
    request.client.host = "198.51.100.4"

    assert rate_limit.client_identifier(request) == "ip:198.51.100.4"


def test_client_identifier_uses_forwarded_for_when_trusted(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "trust_forwarded_for", True)
    request = Mock()
    request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}

    assert rate_limit.client_identifier(request) == "ip:203.0.113.7"


def test_client_identifier_falls_back_to_peer_then_unknown() -> None:
    request = Mock()
    request.headers = {}
    request.client.host = "198.51.100.4"
    assert rate_limit.client_identifier(request) == "ip:198.51.100.4"

    request.client = None
    assert rate_limit.client_identifier(request) == "ip:unknown"


def test_hash_identifier_hides_address() -> None:
    digest = rate_limit.hash_identifier("ip:198.51.100.4")
    assert len(digest) == 16
    assert "198.51" not in digest


def test_route_reports_remaining_quota(client: TestClient, tight_limit: None) -> None:
    resp = client.get("/api/rate-limit")

    assert resp.status_code == 200
    assert resp.json() == {"limit": 2, "remaining": 1, "window_ms": 60_000}


def test_route_returns_429_in_error_format(client: TestClient, tight_limit: None) -> None:
    assert client.get("/api/rate-limit").status_code == 200
    assert client.get("/api/rate-limit").status_code == 200

    resp = client.get("/api/rate-limit", headers={"X-Request-ID": "req-429"})

    assert resp.status_code == 429
    error = resp.json()["error"]
    assert error["code"] == "rate_limit_exceeded"
    assert error["request_id"] == "req-429"
    assert error["details"]["limit"] == 2
    assert error["details"]["remaining"] == 0
    assert resp.headers["X-RateLimit-Limit"] == "2"
    assert resp.headers["X-RateLimit-Remaining"] == "0"
    assert int(resp.headers["Retry-After"]) > 0
    assert "X-RateLimit-Reset" in resp.headers


def test_zero_limit_always_returns_429(client: TestClient, tight_limit: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_requests", 0)

    resp = client.get("/api/rate-limit")

    assert resp.status_code == 429
    assert "error" in resp.json()


def test_429_omits_headers_when_disabled(
    client: TestClient, tight_limit: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_include_headers", False)
    client.get("/api/rate-limit")
    client.get("/api/rate-limit")

    resp = client.get("/api/rate-limit")

    assert resp.status_code == 429
    assert "Retry-After" not in resp.headers
    assert "X-RateLimit-Limit" not in resp.headers


def test_rotating_forwarded_for_is_still_throttled(client: TestClient, tight_limit: None) -> None:
    statuses = [
        client.get("/api/rate-limit", headers={"X-Forwarded-For": f"10.9.9.{i}"}).status_code
        for i in range(20)
    ]

    assert statuses[:2] == [200, 200]
    assert set(statuses[2:]) == {429}
    assert len(rate_limit.get_request_throttle()) == 1


def test_trusted_forwarded_clients_are_limited_separately(
    client: TestClient, tight_limit: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.app, "trust_forwarded_for", True)
    for _ in range(2):
        client.get("/api/rate-limit", headers={"X-Forwarded-For": "203.0.113.1"})

    blocked = client.get("/api/rate-limit", headers={"X-Forwarded-For": "203.0.113.1"})
    other = client.get("/api/rate-limit", headers={"X-Forwarded-For": "203.0.113.2"})

    assert blocked.status_code == 429
    assert other.status_code == 200


def test_disabled_rate_limit_never_blocks(client: TestClient, tight_limit: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.app, "rate_limit_enabled", False)

    statuses = {client.get("/api/rate-limit").status_code for _ in range(5)}

    assert statuses == {200}
