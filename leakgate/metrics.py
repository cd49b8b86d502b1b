from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

DECISIONS = Counter(
    "leakgate_decisions_total",
    "Admission decisions",
    ["outcome"],
)
EVICTIONS = Counter(
    "leakgate_evictions_total",
    "Bucket entries removed from a store",
    ["reason"],
)
HTTP_REQS = Counter(
    "leakgate_http_requests_total",
    "Requests seen by the rate limit middleware",
    ["status"],
)


def router(path: str = "/metrics") -> APIRouter:
    """Expose the admission and eviction counters for scraping."""

    r = APIRouter()

    @r.get(path, include_in_schema=False)
    def limiter_metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return r
