"""Immutable leaky bucket value and its pure transitions."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, field_validator

_MIN_WAIT = 1e-6


class Bucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: float = 0.0
    capacity: int
    leak_rate: float
    last_update: float

    @field_validator("level")
    @classmethod
    def _clamp_level(cls, value: float) -> float:
        return max(0.0, value)

    def drain(self, at_time: float) -> "Bucket":
        """Return the bucket leaked up to ``at_time``.

        A timestamp earlier than ``last_update`` leaves the bucket untouched.
        """

        if at_time < self.last_update:
            return self
        elapsed = at_time - self.last_update
        level = max(0.0, self.level - self.leak_rate * elapsed)
        return self.model_copy(update={"level": level, "last_update": at_time})

    def try_admit(self) -> "Admission":
        """Add one unit unless the bucket is already at or over capacity."""

        if self.level >= self.capacity:
            return Rejected(bucket=self)
        return Admitted(bucket=self.model_copy(update={"level": self.level + 1}))

    def can_accept(self) -> bool:
        return self.level < self.capacity

    @property
    def available_capacity(self) -> float:
        return self.capacity - self.level

    def retry_after(self) -> float:
        """Seconds of draining until a request would be admitted.

        Zero when the bucket already accepts; otherwise strictly positive, a
        hair past the point where the level falls back to capacity.
        """

        if self.can_accept():
            return 0.0
        return (self.level - self.capacity) / self.leak_rate + _MIN_WAIT

    def __str__(self) -> str:
        return (
            f"Bucket(level={self.level:.2f}/{self.capacity}, "
            f"leak_rate={self.leak_rate:.2f}/s, last_update={self.last_update:.2f})"
        )


class Admitted(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: Bucket
    admitted: Literal[True] = True


class Rejected(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: Bucket
    admitted: Literal[False] = False


Admission = Union[Admitted, Rejected]
