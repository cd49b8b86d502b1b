"""HTTP middleware that admits requests per client host."""

from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings, store_from_settings
from .logging_setup import init_logging
from .metrics import HTTP_REQS, router as metrics_router
from .shared import SharedLimiter

logger = logging.getLogger("leakgate.middleware")


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: SharedLimiter | None = None, enabled: bool | None = None):
        super().__init__(app)
        self.limiter = limiter or SharedLimiter(store_from_settings())
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        status_code = 500
        try:
            enabled = self.enabled
            if enabled is None:
                enabled = bool(getattr(settings, "RATE_LIMIT_ENABLED", True))
            if enabled:
                key = _client_key(request)
                if not self.limiter.allow(key):
                    bucket = self.limiter.lookup(key)
                    wait = math.ceil(bucket.retry_after()) if bucket is not None else 1
                    response = JSONResponse(
                        {"detail": "rate limit"},
                        status_code=429,
                        headers={"Retry-After": str(max(1, wait))},
                    )
                    status_code = response.status_code
                    logger.info("%s %s rejected for %s", request.method, request.url.path, key)
                    return response
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            HTTP_REQS.labels(str(status_code)).inc()


def install(app: FastAPI, limiter: SharedLimiter | None = None) -> SharedLimiter:
    """Attach the rate limit middleware and the ``/metrics`` route to ``app``."""

    init_logging(settings.LOG_LEVEL)
    limiter = limiter or SharedLimiter(store_from_settings())
    app.add_middleware(RateLimitMiddleware, limiter=limiter)
    app.include_router(metrics_router())
    return limiter
