"""leakgate package initialization."""

from typing import TYPE_CHECKING

from .bucket import Admission, Admitted, Bucket, Rejected
from .errors import InvalidArgument
from .shared import SharedLimiter
from .store import BucketStore, Decision, new_store

__version__ = "0.1.0"

if TYPE_CHECKING:  # pragma: no cover - import-time convenience for type checkers
    from .middleware import RateLimitMiddleware as RateLimitMiddleware

__all__ = [
    "Admission",
    "Admitted",
    "Bucket",
    "BucketStore",
    "Decision",
    "InvalidArgument",
    "RateLimitMiddleware",
    "Rejected",
    "SharedLimiter",
    "new_store",
    "__version__",
]


def __getattr__(name: str):
    if name == "RateLimitMiddleware":
        from .middleware import RateLimitMiddleware as _middleware
        return _middleware
    raise AttributeError(f"module 'leakgate' has no attribute {name!r}")
