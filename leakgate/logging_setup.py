import logging


def init_logging(level: str = "INFO") -> int:
    """Route leakgate's decision and eviction logs to stderr at ``level``."""

    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("leakgate").setLevel(resolved)
    return resolved
