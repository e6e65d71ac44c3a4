"""
Comparison data models for PianoCoach.

Immutable records describing how a recording compares with its
reference, ready for the presentation layer via to_dict()/to_json().
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class ScoreTier(Enum):
    """Coarse five-bucket classification of a total score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    NEEDS_WORK = "needs_work"

    @classmethod
    def from_score(cls, score: float) -> "ScoreTier":
        if score >= 90:
            return cls.EXCELLENT
        if score >= 80:
            return cls.GOOD
        if score >= 70:
            return cls.FAIR
        if score >= 60:
            return cls.POOR
        return cls.NEEDS_WORK


@dataclass(frozen=True)
class PitchError:
    """A matched reference/recording pitch pair landing on different notes."""

    time: float
    expected: str
    actual: str
    semitone_difference: int

    @property
    def severity(self) -> int:
        return abs(self.semitone_difference)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time': self.time,
            'expected': self.expected,
            'actual': self.actual,
            'semitone_difference': self.semitone_difference,
        }


@dataclass(frozen=True)
class DimensionScore:
    """Score of one comparison dimension (pitch, rhythm or timbre)."""

    name: str
    score: float  # [0.0, 100.0]
    metrics: Dict[str, float] = field(default_factory=dict)
    issues: Tuple[str, ...] = ()
    details: str = ""
    insufficient_data: bool = False
    pitch_errors: Tuple[PitchError, ...] = ()

    def __post_init__(self) -> None:
        if not (0.0 <= self.score <= 100.0):
            raise ValueError(f"{self.name} score must be in [0, 100], got {self.score}")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'name': self.name,
            'score': self.score,
            'metrics': dict(self.metrics),
            'issues': list(self.issues),
            'details': self.details,
            'insufficient_data': self.insufficient_data,
        }
        if self.pitch_errors:
            data['pitch_errors'] = [e.to_dict() for e in self.pitch_errors]
        return data


@dataclass(frozen=True)
class Feedback:
    """Human-readable feedback selected from fixed message sets."""

    overall: str
    improvements: Tuple[str, ...]
    strengths: Tuple[str, ...]
    specific: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'overall': self.overall,
            'improvements': list(self.improvements),
            'strengths': list(self.strengths),
            'specific': dict(self.specific),
        }


@dataclass(frozen=True)
class ComparisonReport:
    """Graded comparison of a recording against its reference."""

    total_score: int  # [0, 100]
    tier: ScoreTier
    pitch: DimensionScore
    rhythm: DimensionScore
    timbre: DimensionScore
    feedback: Feedback
    confidence_notes: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not (0 <= self.total_score <= 100):
            raise ValueError(f"Total score must be in [0, 100], got {self.total_score}")

    @property
    def is_low_confidence(self) -> bool:
        """True if either analysis relied on a fallback value."""
        return bool(self.confidence_notes)

    @property
    def dimensions(self) -> Tuple[DimensionScore, ...]:
        return (self.pitch, self.rhythm, self.timbre)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'total_score': self.total_score,
            'tier': self.tier.value,
            'pitch': self.pitch.to_dict(),
            'rhythm': self.rhythm.to_dict(),
            'timbre': self.timbre.to_dict(),
            'feedback': self.feedback.to_dict(),
            'confidence_notes': list(self.confidence_notes),
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, allow_nan=False)

    def get_summary(self) -> str:
        """Get human-readable summary."""
        lines = [
            f"Total: {self.total_score}/100 ({self.tier.value.replace('_', ' ')})",
            f"  Pitch:  {self.pitch.score:.1f}",
            f"  Rhythm: {self.rhythm.score:.1f}",
            f"  Timbre: {self.timbre.score:.1f}",
            self.feedback.overall,
        ]
        lines.extend(f"  + {s}" for s in self.feedback.strengths)
        lines.extend(f"  - {i}" for i in self.feedback.improvements)
        if self.is_low_confidence:
            lines.append("Low confidence:")
            lines.extend(f"  ! {note}" for note in self.confidence_notes)
        return "\n".join(lines)
