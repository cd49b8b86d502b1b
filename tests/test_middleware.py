from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from leakgate import SharedLimiter, new_store
from leakgate.middleware import RateLimitMiddleware, install


def _app(limiter: SharedLimiter, enabled: bool | None = True) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=limiter, enabled=enabled)

    @app.get("/health")
    def _health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def test_rate_limit_blocks_after_capacity() -> None:
    limiter = SharedLimiter(new_store(2, 1.0), time_fn=lambda: 0.0)

    with TestClient(_app(limiter)) as client:
        first = client.get("/health")
        second = client.get("/health")
        third = client.get("/health")

    assert first.status_code == 200
    assert second.status_code == 200
    assert third.status_code == 429
    assert third.json() == {"detail": "rate limit"}
    assert third.headers["Retry-After"] == "1"


def test_rate_limit_recovers_after_leak() -> None:
    now = 0.0

    def time_fn() -> float:
        return now

    limiter = SharedLimiter(new_store(1, 0.5), time_fn=time_fn)

    with TestClient(_app(limiter)) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/health").status_code == 429
        now = 2.0
        assert client.get("/health").status_code == 200


def test_disabled_middleware_passes_everything() -> None:
    limiter = SharedLimiter(new_store(1, 1.0), time_fn=lambda: 0.0)

    with TestClient(_app(limiter, enabled=False)) as client:
        responses = [client.get("/health") for _ in range(5)]

    assert all(r.status_code == 200 for r in responses)
    assert limiter.active_count() == 0


def test_install_exposes_metrics() -> None:
    app = FastAPI()
    limiter = install(app, SharedLimiter(new_store(5, 1.0), time_fn=lambda: 0.0))

    with TestClient(app) as client:
        response = client.get("/metrics")

    assert response.status_code == 200
    assert b"leakgate_decisions_total" in response.content
    assert b"leakgate_http_requests_total" in response.content
    assert limiter.lookup("testclient") is not None


def test_metrics_router_custom_path() -> None:
    from leakgate.metrics import router

    app = FastAPI()
    app.include_router(router("/internal/limiter-metrics"))

    with TestClient(app) as client:
        response = client.get("/internal/limiter-metrics")

    assert response.status_code == 200
    assert b"leakgate_evictions_total" in response.content
