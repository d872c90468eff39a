from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from spinbook import rate_limiter
from spinbook.rate_limiter import check_rate_limit, client_ip, rate_limit_dependency


def _redis(count, ttl):
    client = MagicMock()
    client.pipeline.return_value.execute.return_value = [count, ttl]
    return client


def test_first_hit_sets_window_expiry():
    client = _redis(1, -1)
    allowed, count, ttl = check_rate_limit("booking:1.2.3.4", 10, 3600, client)
    assert (allowed, count, ttl) == (True, 1, 3600)
    client.expire.assert_called_once_with("booking:1.2.3.4", 3600)


def test_over_limit():
    client = _redis(11, 1200)
    allowed, count, ttl = check_rate_limit("booking:1.2.3.4", 10, 3600, client)
    assert allowed is False
    assert ttl == 1200
    client.expire.assert_not_called()


def test_client_ip_prefers_forwarded_for():
    request = MagicMock()
    request.headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
    assert client_ip(request) == "203.0.113.7"


async def test_dependency_rejects_over_limit(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limiter, "get_redis_client", lambda: _redis(6, 900))
    request = MagicMock()
    request.headers = {}
    request.client.host = "198.51.100.2"

    with pytest.raises(HTTPException) as exc:
        await rate_limit_dependency(request, limit=5, window_seconds=3600, key_prefix="waitlist")

    assert exc.value.status_code == 429
    assert exc.value.headers == {"Retry-After": "900"}


async def test_dependency_fails_closed_without_redis(monkeypatch):
    def unavailable():
        raise ConnectionError("redis down")

    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(rate_limiter, "get_redis_client", unavailable)
    request = MagicMock()
    request.headers = {}

    with pytest.raises(HTTPException) as exc:
        await rate_limit_dependency(request, limit=5, window_seconds=60)

    assert exc.value.status_code == 503


async def test_dependency_disabled(monkeypatch):
    monkeypatch.setattr(rate_limiter, "RATE_LIMIT_ENABLED", False)
    assert await rate_limit_dependency(MagicMock(), limit=1, window_seconds=60) is None
