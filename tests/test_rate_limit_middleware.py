from fastapi.testclient import TestClient

from app.ip_allowlist import AllowedHomeIP
from app.main import create_app
from app.middleware.rate_limit_middleware import RateLimitMiddleware

FLY_HEADER = "Fly-Client-IP"


def build_client(**options):
    options.setdefault("enabled", True)
    app = create_app(
        allowed_home_ip=AllowedHomeIP.parse("203.0.113.5"),
        trusted_headers=[FLY_HEADER],
        rate_limit_options=options,
    )
    return TestClient(app)


def test_hit_sliding_window():
    limiter = RateLimitMiddleware(app=None, max_requests=2, window_seconds=10, enabled=True)
    key = ("203.0.113.5", "/api/")

    assert limiter.hit(key, now=100.0) is True
    assert limiter.hit(key, now=101.0) is True
    assert limiter.hit(key, now=105.0) is False
    # The first request falls out of the window
    assert limiter.hit(key, now=110.5) is True


def test_keys_are_independent():
    limiter = RateLimitMiddleware(app=None, max_requests=1, window_seconds=10, enabled=True)

    assert limiter.hit(("203.0.113.5", "/api/"), now=1.0) is True
    assert limiter.hit(("10.0.0.1", "/api/"), now=1.0) is True
    assert limiter.hit(("203.0.113.5", "/api/"), now=2.0) is False


def test_limit_exceeded_returns_429():
    client = build_client(max_requests=2, window_seconds=60)
    headers = {FLY_HEADER: "203.0.113.5"}

    assert client.get("/api/health", headers=headers).status_code == 200
    assert client.get("/api/health", headers=headers).status_code == 200
    response = client.get("/api/health", headers=headers)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert response.json() == {"status": 429, "message": "Too Many Requests.", "data": {}}


def test_other_paths_not_limited():
    client = build_client(max_requests=1, window_seconds=60, path_prefixes=["/api/"])
    headers = {FLY_HEADER: "203.0.113.5"}

    for _ in range(3):
        assert client.get("/other", headers=headers).status_code == 404


def test_disabled():
    client = build_client(enabled=False, max_requests=1, window_seconds=60)
    headers = {FLY_HEADER: "203.0.113.5"}

    for _ in range(3):
        assert client.get("/api/health", headers=headers).status_code == 200


def test_idle_keys_are_evicted():
    limiter = RateLimitMiddleware(app=None, max_requests=5, window_seconds=10, enabled=True)
    idle = ("198.51.100.7", "/api/")
    active = ("203.0.113.5", "/api/")

    limiter.hit(idle, now=100.0)
    limiter.hit(active, now=108.0)
    limiter.hit(active, now=115.0)

    assert idle not in limiter.request_times
    assert limiter.request_times[active] == [108.0, 115.0]


def test_evicted_key_starts_fresh():
    limiter = RateLimitMiddleware(app=None, max_requests=1, window_seconds=10, enabled=True)
    key = ("203.0.113.5", "/api/")

    assert limiter.hit(key, now=100.0) is True
    assert limiter.hit(key, now=105.0) is False
    assert limiter.hit(key, now=120.0) is True
    assert limiter.request_times[key] == [120.0]
