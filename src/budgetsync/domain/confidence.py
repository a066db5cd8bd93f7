"""Confidence score value object."""

from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, Optional

MIN_CONFIDENCE = 0.0
MAX_CONFIDENCE = 1.0
HIGH_THRESHOLD = 0.8
MEDIUM_THRESHOLD = 0.5
# Scores above this are reliable enough to submit without review
RELIABLE_THRESHOLD = 0.7


@total_ordering
@dataclass(frozen=True)
class ConfidenceScore:
    """Certainty of a categorization decision, clamped to [0.0, 1.0].

    Out-of-range inputs are clamped rather than rejected.
    """

    value: float

    def __post_init__(self):
        clamped = max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, float(self.value)))
        object.__setattr__(self, "value", clamped)

    def __float__(self) -> float:
        return self.value

    def __lt__(self, other) -> bool:
        if not isinstance(other, ConfidenceScore):
            return NotImplemented
        return self.value < other.value

    def exceeds(self, threshold: float) -> bool:
        return self.value > threshold

    @property
    def is_high(self) -> bool:
        return self.value >= HIGH_THRESHOLD

    @property
    def is_medium(self) -> bool:
        return MEDIUM_THRESHOLD <= self.value < HIGH_THRESHOLD

    @property
    def is_low(self) -> bool:
        return self.value < MEDIUM_THRESHOLD

    @property
    def level(self) -> str:
        """Named band: "high", "medium" or "low"."""
        if self.is_high:
            return "high"
        if self.is_medium:
            return "medium"
        return "low"

    @classmethod
    def average(cls, scores: Iterable["ConfidenceScore"]) -> Optional["ConfidenceScore"]:
        """Arithmetic mean of scores, or None when there are none."""
        values = [score.value for score in scores]
        if not values:
            return None
        return cls(round(sum(values) / len(values), 10))
