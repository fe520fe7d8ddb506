import pytest

from conftest import register
from core.config import settings
from core.exceptions import RateLimitError
from utils.rate_limiter import RateLimiter, rate_limiter


@pytest.fixture
async def limiter(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    await rate_limiter.reset_all()
    yield rate_limiter
    await rate_limiter.reset_all()


async def test_disabled_limiter_always_allows(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    limiter = RateLimiter()

    for _ in range(10):
        assert await limiter.check_rate_limit("login:1.2.3.4", max_attempts=1, window_minutes=1)


async def test_memory_window_counts_attempts(limiter):
    results = [await limiter.check_rate_limit("login:1.2.3.4", 3, 15) for _ in range(4)]
    assert results == [True, True, True, False]

    # separate keys are tracked independently
    assert await limiter.check_rate_limit("login:5.6.7.8", 3, 15)
    assert await limiter.check_rate_limit("login:1.2.3.4", 3, 15, identifier="other@example.com")


async def test_reset_rate_limit_forgets_attempts(limiter):
    assert await limiter.check_rate_limit("contact:ip", 1, 60)
    assert not await limiter.check_rate_limit("contact:ip", 1, 60)

    await limiter.reset_rate_limit("contact:ip")

    assert await limiter.check_rate_limit("contact:ip", 1, 60)


async def test_enforce_raises_with_message(limiter):
    await limiter.enforce("register:ip", max_attempts=1, window_minutes=60)

    with pytest.raises(RateLimitError, match="Slow down"):
        await limiter.enforce("register:ip", max_attempts=1, window_minutes=60, message="Slow down")


async def test_login_endpoint_returns_429(client, limiter):
    await register(client)
    credentials = {"email": "alice@example.com", "password": "wrong-password"}

    statuses = [(await client.post("/api/users/login", json=credentials)).status_code for _ in range(6)]

    assert statuses == [401] * 5 + [429]
    response = await client.post("/api/users/login", json=credentials)
    assert response.json() == {
        "error": "rate_limited",
        "message": "Too many login attempts. Please try again later.",
    }
