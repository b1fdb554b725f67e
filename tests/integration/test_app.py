"""
Application-level tests: health checks, authentication and error shape.
"""

from unittest.mock import AsyncMock

from shopcart.api.errors import AuthenticationError, UpstreamServiceError
from shopcart.clients import ClerkUser


def test_root(client):
    body = client.get("/").json()

    assert body["name"]
    assert body["endpoints"]["sitemap"] == "/sitemap.xml"


def test_health_and_liveness(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/live").json()["status"] == "alive"


def test_ready_pings_sanity(client, sanity):
    body = client.get("/ready").json()

    assert body["status"] == "ready"
    assert body["cache"] == "disabled"
    sanity.ping.assert_awaited_once()


def test_not_ready_when_sanity_fails(client, sanity):
    sanity.ping.side_effect = UpstreamServiceError("Sanity", "timeout")

    body = client.get("/ready").json()

    assert body["status"] == "not_ready"
    assert "timeout" in body["reason"]


def test_metrics_count_tracked_requests(client):
    client.get("/")
    client.get("/health")

    body = client.get("/metrics").json()

    assert body["requests"]["total"] == 1
    assert set(body["latency"]) == {"p50_ms", "p95_ms", "p99_ms", "mean_ms", "min_ms", "max_ms"}


def test_cache_stats(client):
    assert client.get("/cache/stats").json()["cache"]["enabled"] is False


def test_responses_carry_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-1"})

    assert response.headers["X-Request-ID"] == "trace-1"
    assert "X-Response-Time" in response.headers


def test_missing_session_is_401(client, sign_in):
    sign_in(None)

    response = client.get("/api/addresses")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_bearer_token_is_verified_with_clerk(client, clerk, sign_in):
    sign_in(None)
    clerk.verify_session_token = AsyncMock(return_value={"sub": "user_1"})
    clerk.get_user.return_value = ClerkUser(id="user_1", email="jane@shop.test")

    response = client.get("/api/addresses", headers={"Authorization": "Bearer tok"})

    assert response.status_code == 200
    clerk.verify_session_token.assert_awaited_once_with("tok")


def test_session_cookie_is_accepted(client, clerk, sign_in):
    sign_in(None)
    clerk.verify_session_token = AsyncMock(return_value={"sub": "user_1"})
    clerk.get_user.return_value = ClerkUser(id="user_1", email="jane@shop.test")
    client.cookies.set("__session", "cookie-token")

    assert client.get("/api/addresses").status_code == 200
    clerk.verify_session_token.assert_awaited_once_with("cookie-token")


def test_invalid_token_is_401(client, clerk, sign_in):
    sign_in(None)
    clerk.verify_session_token = AsyncMock(side_effect=AuthenticationError("Token has expired"))

    response = client.get("/api/addresses", headers={"Authorization": "Bearer old"})

    assert response.status_code == 401
    assert response.json()["error"] == "Token has expired"


def test_upstream_failure_is_502(client, sanity):
    sanity.fetch.side_effect = UpstreamServiceError("Sanity", "boom", 500)

    response = client.get("/api/addresses")

    assert response.status_code == 502
    assert response.json()["error"] == "Sanity request failed: boom"
    assert response.json()["details"]["service"] == "Sanity"


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_validation_error_shape(client):
    response = client.get("/api/orders", params={"page": 0})

    assert response.status_code == 422
    assert response.json()["error"] == "Request validation failed"
