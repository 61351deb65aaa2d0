"""
Tests for the guest registration rate limit.
"""

from app.core.rate_limit import GUEST_REGISTER_MESSAGE

from conftest import register


def test_eleventh_guest_registration_is_limited(client):
    for _ in range(10):
        assert client.post("/api/auth/guest-register").status_code == 201

    response = client.post("/api/auth/guest-register")

    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "RATE_LIMIT_EXCEEDED"
    assert body["message"] == GUEST_REGISTER_MESSAGE
    assert int(response.headers["Retry-After"]) > 0


def test_other_endpoints_are_not_limited(client):
    for _ in range(10):
        client.post("/api/auth/guest-register")

    assert register(client, email="after@example.com").status_code == 201
    assert client.get("/api/health").status_code == 200
