from __future__ import annotations

import os
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .store import BucketStore

load_dotenv()


class Settings(BaseModel):
    LEAKY_CAPACITY: int = Field(default=20, gt=0, description="requests a key may burst")
    LEAKY_LEAK_RATE: float = Field(default=5.0, gt=0, description="units drained per second")
    LEAKY_TTL_SECONDS: float = Field(default=600.0, gt=0)
    LEAKY_MAX_ENTRIES: int = Field(default=10_000, gt=0)
    LEAKY_SWEEP_SECONDS: Optional[float] = Field(default=None, gt=0)
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")


def _env_overrides() -> dict[str, str]:
    return {name: os.environ[name] for name in Settings.model_fields if os.environ.get(name)}


def _load_settings(existing: Settings | None = None) -> Settings:
    base: dict[str, Any] = existing.model_dump() if existing is not None else {}
    try:
        return Settings(**{**base, **_env_overrides()})
    except ValidationError as exc:
        names = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        raise RuntimeError(f"Invalid environment variables: {', '.join(names)}") from exc


settings = _load_settings()


def reload_settings() -> Settings:
    global settings
    fresh = _load_settings(settings)
    settings.__dict__.update(fresh.__dict__)
    return settings


def store_from_settings(cfg: Settings | None = None) -> BucketStore:
    cfg = cfg or settings
    return BucketStore(
        cfg.LEAKY_CAPACITY,
        cfg.LEAKY_LEAK_RATE,
        ttl=cfg.LEAKY_TTL_SECONDS,
        max_entries=cfg.LEAKY_MAX_ENTRIES,
        sweep_interval=cfg.LEAKY_SWEEP_SECONDS,
    )
