"""Rate limiting through the HTTP middleware, with an in-memory counter."""

import pytest
from fastapi.testclient import TestClient

from services.api.app import create_app
from utils.ratelimit import AUTH_RULE, RateLimiter


class CountingRedis:
    def __init__(self):
        self.counts = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        return True

    async def ttl(self, key):
        return 900

    async def aclose(self):
        pass


@pytest.fixture
def limited_client(store):
    counter = CountingRedis()
    app = create_app(store=store, rate_limiter=RateLimiter(client=counter))
    with TestClient(app) as client:
        yield client, counter


def test_login_attempts_are_limited(limited_client):
    client, counter = limited_client
    login = {"email": "nobody@example.com", "password": "Secret123"}

    statuses = [client.post("/api/users/login", json=login).status_code for _ in range(AUTH_RULE.max_requests + 1)]
    assert statuses[:-1] == [401] * AUTH_RULE.max_requests
    assert statuses[-1] == 429

    response = client.post("/api/users/login", json=login)
    assert response.json()["message"] == AUTH_RULE.message
    assert response.headers["RateLimit-Remaining"] == "0"
    assert any(key.startswith("ratelimit:auth:") for key in counter.counts)


def test_general_api_counts_separately(limited_client):
    client, counter = limited_client
    response = client.get("/api/products")
    assert response.status_code == 200
    assert int(response.headers["RateLimit-Remaining"]) > 0
    assert any(key.startswith("ratelimit:api:") for key in counter.counts)


def test_health_is_not_limited(limited_client):
    client, _ = limited_client
    assert "RateLimit-Limit" not in client.get("/health").headers
