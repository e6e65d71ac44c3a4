"""
Comparison of a recording's analysis against its reference.
"""

from pianocoach.comparison.models import (
    ComparisonReport,
    DimensionScore,
    Feedback,
    PitchError,
    ScoreTier,
)
from pianocoach.comparison.engine import ComparisonEngine, create_comparison_engine

__all__ = [
    "ComparisonReport",
    "DimensionScore",
    "Feedback",
    "PitchError",
    "ScoreTier",
    "ComparisonEngine",
    "create_comparison_engine",
]
