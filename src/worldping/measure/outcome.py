from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

Millis = Union[int, float]

FAILED = -1


@dataclass(frozen=True)
class MeasurementOutcome:
    """Result of one measurement run against one world."""

    target: str
    label: str
    min: Millis
    max: Millis
    samples: int = 0
    error: Optional[str] = None

    @classmethod
    def failure(cls, target: str, label: str, error: Optional[str] = None) -> "MeasurementOutcome":
        return cls(target=target, label=label, min=FAILED, max=FAILED, error=error)

    @property
    def failed(self) -> bool:
        return self.min == FAILED and self.max == FAILED

    @property
    def range(self) -> Millis:
        return self.max - self.min


class Envelope(NamedTuple):
    """min/max over the samples one algorithm folded in."""

    min: Millis
    max: Millis
    samples: int
