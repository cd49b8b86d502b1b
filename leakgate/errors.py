from __future__ import annotations


class InvalidArgument(ValueError):
    """Raised when a caller passes an out-of-range parameter, key or timestamp."""
