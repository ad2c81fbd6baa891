"""
Review scoring.

A 360° review rates an employee on four dimensions on a 1..scale_max scale.
The overall score is the (optionally weighted) mean of the ratings mapped
onto 0-100 and rounded half up; each non-overall dimension is also kept as
its own percentage.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from perfhub.core.config import settings

RATING_DIMENSIONS = ("overall", "communication", "teamwork", "technicalSkills")
METRIC_DIMENSIONS = ("communication", "teamwork", "technicalSkills")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ScoringPolicy:
    scale_max: int = 5
    weights: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_settings(cls) -> "ScoringPolicy":
        return cls(scale_max=settings.scoring.scale_max, weights=dict(settings.scoring.weights))

    @property
    def factor(self) -> float:
        return 100 / self.scale_max

    def validate(self, ratings: Dict[str, int]) -> None:
        for name in RATING_DIMENSIONS:
            if name not in ratings:
                raise ValueError(f"Missing rating: {name}")
            if not 1 <= ratings[name] <= self.scale_max:
                raise ValueError(f"Rating {name} must be between 1 and {self.scale_max}")

    def overall_score(self, ratings: Dict[str, int]) -> int:
        self.validate(ratings)
        weights = {name: self.weights.get(name, 1.0) for name in RATING_DIMENSIONS}
        total_weight = sum(weights.values())
        if total_weight <= 0:
            raise ValueError("Rating weights must add up to a positive number")
        mean = sum(ratings[name] * weights[name] for name in RATING_DIMENSIONS) / total_weight
        return round_half_up(mean * self.factor)

    def dimension_scores(self, ratings: Dict[str, int]) -> Dict[str, int]:
        return {name: round_half_up(ratings[name] * self.factor) for name in METRIC_DIMENSIONS}


def display_score(score: Optional[float]) -> str:
    """Score as shown to people: ``N/A`` when unrated (0 counts as unrated)."""
    return "N/A" if not score else f"{score:g}"


def score_percent(score: Optional[float]) -> float:
    """Score as a progress-bar width; unrated shows as 0%."""
    return float(score) if score else 0.0
