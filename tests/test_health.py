"""
Isobel Dashboard - Health Tests
===============================

Tests for the web server health check and the bot health proxy.
"""

import asyncio

import aiohttp
import pytest
from fastapi.testclient import TestClient

from isobel.api.app import create_app
from isobel.api.config import APIConfig
from isobel.api.errors import ERROR_STATUS_CODES, ErrorKind
from isobel.api.services import bot_health
from isobel.api.services.bot_health import fetch_bot_health, normalize_health_url


# =============================================================================
# Fake HTTP
# =============================================================================

class FakeResponse:
    """Minimal aiohttp response stand-in."""

    def __init__(self, status=200, data=None, text="", reason="OK"):
        self.status = status
        self.reason = reason
        self._data = data
        self._text = text

    async def json(self, content_type="application/json"):
        if self._data is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._data

    async def text(self):
        return self._text


class FakeRequest:
    """Async context manager returned by http_session.get."""

    def __init__(self, response=None, error=None):
        self._response = response
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self._response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


@pytest.fixture
def fake_bot(monkeypatch):
    """Replace outbound GETs. Returns a setter and the list of requested URLs."""
    calls = []
    timeouts = []
    state = {}

    def fake_get(url, **kwargs):
        calls.append(url)
        timeouts.append(kwargs.get("timeout"))
        return FakeRequest(state.get("response"), state.get("error"))

    def answer(response=None, error=None):
        state["response"] = response
        state["error"] = error

    monkeypatch.setattr(bot_health.http_session, "get", fake_get)
    answer.calls = calls
    answer.timeouts = timeouts
    return answer


# =============================================================================
# URL Normalization
# =============================================================================

class TestNormalizeHealthUrl:
    """Tests for normalize_health_url."""

    @pytest.mark.parametrize("base, expected", [
        ("http://bot:8080", "http://bot:8080/health"),
        ("http://bot:8080/", "http://bot:8080/health"),
        ("http://bot:8080/health", "http://bot:8080/health"),
        (" http://bot:8080 ", "http://bot:8080/health"),
        ("http://bot:8080/status", "http://bot:8080/status/health"),
    ])
    def test_normalize(self, base, expected):
        assert normalize_health_url(base) == expected


# =============================================================================
# Proxy
# =============================================================================

class TestFetchBotHealth:
    """Tests for fetch_bot_health."""

    @pytest.mark.asyncio
    async def test_passthrough(self, fake_bot):
        """Test a healthy bot's report is returned verbatim."""
        report = {"status": "ok", "ready": True, "guilds": 12, "players": {"active": 3}}
        fake_bot(FakeResponse(200, report))

        result = await fetch_bot_health("http://bot:8080")

        assert result.status == 200
        assert result.payload == report
        assert fake_bot.calls == ["http://bot:8080/health"]

    @pytest.mark.asyncio
    async def test_non_2xx_keeps_status(self, fake_bot):
        fake_bot(FakeResponse(502, text="bad gateway", reason="Bad Gateway"))

        result = await fetch_bot_health("http://bot:8080")

        assert result.status == 502
        assert result.payload["status"] == "error"
        assert result.payload["ready"] is False
        assert "502" in result.payload["error"]
        assert result.payload["url"] == "http://bot:8080/health"

    @pytest.mark.asyncio
    async def test_timeout(self, fake_bot):
        fake_bot(error=asyncio.TimeoutError())

        result = await fetch_bot_health("http://bot:8080")

        assert result.status == 503
        assert result.status == ERROR_STATUS_CODES[ErrorKind.UPSTREAM_UNAVAILABLE]
        assert result.payload["errorName"] == "TimeoutError"
        assert result.payload["ready"] is False

    @pytest.mark.asyncio
    async def test_connection_refused(self, fake_bot):
        fake_bot(error=aiohttp.ClientConnectionError("Connection refused"))

        result = await fetch_bot_health("http://bot:8080")

        assert result.status == 503
        assert result.payload["errorName"] == "ClientConnectionError"
        assert "Connection refused" in result.payload["error"]

    @pytest.mark.asyncio
    async def test_invalid_json(self, fake_bot):
        fake_bot(FakeResponse(200, data=None, text="<html>"))

        result = await fetch_bot_health("http://bot:8080")

        assert result.status == 503
        assert result.payload["status"] == "error"


# =============================================================================
# HTTP Endpoints
# =============================================================================

class TestHealthEndpoints:
    """Tests for /health and /api/health."""

    def test_web_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "isobel-web"
        assert data["uptime"] >= 0
        assert "timestamp" in data

    def test_bot_health_passthrough(self, client, fake_bot):
        fake_bot(FakeResponse(200, {"status": "ok", "ready": True}))

        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "ready": True}
        assert fake_bot.calls == ["http://localhost:8080/health"]

    def test_bot_down(self, client, fake_bot):
        fake_bot(error=asyncio.TimeoutError())

        response = client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["errorName"] == "TimeoutError"

    def test_bot_health_uses_configured_timeout(self, auth_handler, fake_bot):
        """Test the proxy call is bounded by the app's health_timeout."""
        fake_bot(FakeResponse(200, {"status": "ok"}))
        client = TestClient(create_app(APIConfig(health_timeout=1.5)), raise_server_exceptions=False)

        assert client.get("/api/health").status_code == 200
        [timeout] = fake_bot.timeouts
        assert timeout.total == 1.5

    def test_health_not_rate_limited(self, client, fake_bot):
        fake_bot(FakeResponse(200, {"status": "ok"}))

        statuses = {client.get("/api/health").status_code for _ in range(110)}

        assert statuses == {200}
