# handwriting/models/rating.py
import math
from enum import Enum
from typing import Iterable, Optional, Tuple

from pydantic import Field

from .base import WireModel, now_ms


class TargetType(str, Enum):
    SAMPLE = "sample"
    WORK = "work"


class Rating(WireModel):
    """One rater's score for one target; unique on (user_id, target_id, target_type)."""
    user_id: str
    target_id: str
    target_type: TargetType
    score: float  # 0..10 inclusive (legacy data may still carry a 100-point value)
    created_at: int = Field(default_factory=now_ms)

    @property
    def key(self) -> Tuple[str, str, TargetType]:
        return (self.user_id, self.target_id, self.target_type)


def mean_score(scores: Iterable[float]) -> Optional[float]:
    """Arithmetic mean rounded half up to one decimal; None for no ratings."""
    values = list(scores)
    if not values:
        return None
    return math.floor(sum(values) / len(values) * 10 + 0.5) / 10
