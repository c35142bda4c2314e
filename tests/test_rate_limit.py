"""
Fixed-window rate limiter and its middleware.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from confreview.utils.rate_limit import TOO_MANY_REQUESTS, FixedWindowLimiter, RateLimitMiddleware


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_blocks_after_max_requests_in_window():
    clock = FakeClock()
    limiter = FixedWindowLimiter(window_seconds=10, max_requests=3, clock=clock)
    assert [limiter.hit("a") for _ in range(4)] == [True, True, True, False]
    assert limiter.remaining("a") == 0
    # other clients have their own window
    assert limiter.hit("b")


def test_window_resets_after_expiry():
    clock = FakeClock()
    limiter = FixedWindowLimiter(window_seconds=10, max_requests=1, clock=clock)
    assert limiter.hit("a")
    assert not limiter.hit("a")
    clock.advance(10)
    assert limiter.hit("a")
    assert limiter.remaining("a") == 0


def test_evict_expired_drops_only_old_windows():
    clock = FakeClock()
    limiter = FixedWindowLimiter(window_seconds=10, max_requests=5, clock=clock)
    limiter.hit("old")
    clock.advance(6)
    limiter.hit("new")
    clock.advance(5)
    assert limiter.evict_expired() == 1
    assert len(limiter) == 1
    assert limiter.remaining("new") == 4


def test_tracked_clients_are_bounded():
    clock = FakeClock()
    limiter = FixedWindowLimiter(window_seconds=10, max_requests=5, max_clients=2, clock=clock)
    limiter.hit("a")
    limiter.hit("b")
    limiter.hit("c")
    assert len(limiter) == 2
    # "a" opened its window first and was evicted, so it starts fresh
    assert limiter.remaining("a") == 5
    assert limiter.remaining("c") == 4


def _app(limiter):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def test_middleware_answers_429():
    limiter = FixedWindowLimiter(window_seconds=60, max_requests=2)
    client = TestClient(_app(limiter))
    assert client.get("/ping").status_code == 200
    assert client.get("/ping").status_code == 200
    resp = client.get("/ping")
    assert resp.status_code == 429
    assert resp.json() == {"error": TOO_MANY_REQUESTS}


def test_health_is_exempt():
    limiter = FixedWindowLimiter(window_seconds=60, max_requests=1)
    client = TestClient(_app(limiter))
    for _ in range(3):
        assert client.get("/health").status_code == 200
