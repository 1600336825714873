"""
Unit Tests - Rate Limiter
"""
from types import SimpleNamespace

from fastapi import Response

from webhub.serving.api import middleware
from webhub.serving.api.middleware import RateLimitMiddleware


def request_from(host):
    return SimpleNamespace(client=SimpleNamespace(host=host))


async def ok(request):
    return Response()


class TestRateLimitMiddleware:
    """Tests for the sliding-window limiter"""

    async def test_limit_per_client(self):
        limiter = RateLimitMiddleware(app=None, max_requests=2, window_seconds=60)

        statuses = [(await limiter.dispatch(request_from("10.0.0.1"), ok)).status_code for _ in range(3)]
        other = await limiter.dispatch(request_from("10.0.0.2"), ok)

        assert statuses == [200, 200, 429]
        assert other.status_code == 200

    def test_sweep_drops_idle_clients(self):
        limiter = RateLimitMiddleware(app=None, max_requests=2, window_seconds=60)
        now = 1_000_000.0
        limiter._requests["10.0.0.1"] = [now - 120]
        limiter._requests["10.0.0.2"] = [now - 5]
        limiter._requests["10.0.0.3"] = []

        limiter._sweep(now)

        assert list(limiter._requests) == ["10.0.0.2"]

    async def test_idle_clients_forgotten_after_a_window(self, monkeypatch):
        clock = SimpleNamespace(now=1_000_000.0)
        monkeypatch.setattr(middleware.time, "time", lambda: clock.now)
        limiter = RateLimitMiddleware(app=None, max_requests=5, window_seconds=60)

        for host in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
            await limiter.dispatch(request_from(host), ok)
        clock.now += 61
        await limiter.dispatch(request_from("10.0.0.4"), ok)

        assert list(limiter._requests) == ["10.0.0.4"]
