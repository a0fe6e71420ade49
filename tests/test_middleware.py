"""Tests for middleware and the error boundary — headers, request IDs, envelopes."""

import pytest
from httpx import ASGITransport, AsyncClient

from mediahub.auth.dependencies import get_current_user


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_user_routes_not_cacheable(client):
    r = await client.post("/api/v1/users/refresh-token")
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/v1/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/v1/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    r = await client.get("/api/v1/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Not Found"}


@pytest.mark.asyncio
async def test_malformed_json_is_400(client):
    r = await client.post(
        "/api/v1/users/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_unexpected_error_hides_details(app):
    """Any unhandled exception becomes a bare 500 envelope."""

    def _boom():
        raise RuntimeError("secret detail")

    app.dependency_overrides[get_current_user] = _boom
    # The server error middleware re-raises after responding
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/api/v1/users/current-user")

    assert r.status_code == 500
    assert r.json() == {"success": False, "message": "Something went wrong"}
    assert "secret detail" not in r.text
