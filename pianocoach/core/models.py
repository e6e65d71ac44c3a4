"""
Core data models for PianoCoach.

Immutable domain models for sample buffers and per-buffer analysis
results. Everything here is created once and only read afterwards.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

TIMBRE_DESCRIPTOR_LENGTH = 13


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Immutable mono PCM buffer handed to the pipeline by the audio source.

    The sample array is a private read-only copy; extractors borrow it
    without ever writing to it.
    """

    samples: np.ndarray  # Shape: (n_samples,), float32, read-only
    sample_rate: int  # Hz

    @classmethod
    def from_array(cls, samples: Any, sample_rate: int) -> "SampleBuffer":
        """Copy samples into a frozen float32 array."""
        data = np.array(samples, dtype=np.float32, copy=True)
        data.setflags(write=False)
        return cls(samples=data, sample_rate=int(sample_rate))

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the sample data and rate (cache key)."""
        sha256 = hashlib.sha256()
        sha256.update(str(self.sample_rate).encode())
        sha256.update(np.ascontiguousarray(self.samples).tobytes())
        return sha256.hexdigest()

    def __len__(self) -> int:
        return len(self.samples)


@dataclass(frozen=True)
class PitchSample:
    """Fundamental frequency detected in one analysis window."""

    time: float  # seconds
    frequency: float  # Hz, always > 0
    note: str  # e.g. "A4", "C#5"

    def __post_init__(self) -> None:
        validate_time(self.time)
        if not (np.isfinite(self.frequency) and self.frequency > 0):
            raise ValueError(f"Pitch frequency must be positive, got {self.frequency}")

    def to_dict(self) -> Dict[str, Any]:
        return {'time': self.time, 'frequency': self.frequency, 'note': self.note}


@dataclass(frozen=True)
class BeatEvent:
    """A detected beat. The first event of a sequence has no interval."""

    beat_time: float  # seconds
    interval_from_previous: Optional[float] = None  # seconds
    instantaneous_bpm: Optional[float] = None

    def __post_init__(self) -> None:
        validate_time(self.beat_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'beat_time': self.beat_time,
            'interval_from_previous': self.interval_from_previous,
            'instantaneous_bpm': self.instantaneous_bpm,
        }


@dataclass(frozen=True)
class TimbreFrame:
    """Mel-cepstral descriptor of one analysis window."""

    time: float  # seconds
    descriptor: Tuple[float, ...]  # length TIMBRE_DESCRIPTOR_LENGTH

    def __post_init__(self) -> None:
        validate_time(self.time)
        if len(self.descriptor) != TIMBRE_DESCRIPTOR_LENGTH:
            raise ValueError(
                f"Timbre descriptor must have {TIMBRE_DESCRIPTOR_LENGTH} "
                f"coefficients, got {len(self.descriptor)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {'time': self.time, 'descriptor': list(self.descriptor)}


@dataclass(frozen=True)
class LoudnessSample:
    """RMS level of one analysis window."""

    time: float  # seconds
    rms: float  # [0.0, 1.0]
    decibels: float  # (-inf, 0.0]

    def __post_init__(self) -> None:
        validate_time(self.time)
        if not (0.0 <= self.rms <= 1.0):
            raise ValueError(f"RMS must be in [0.0, 1.0], got {self.rms}")

    def to_dict(self) -> Dict[str, Any]:
        # JSON has no -inf; silence serialises as null
        decibels = self.decibels if np.isfinite(self.decibels) else None
        return {'time': self.time, 'rms': self.rms, 'decibels': decibels}


@dataclass(frozen=True)
class DegradedResult:
    """
    Note that a feature fell back to its documented default.

    Not an error: the analysis still completed, with lower confidence.
    """

    feature: str  # "pitch", "rhythm", "timbre", "loudness"
    reason: str
    fallback: str  # description of the substituted value

    def to_dict(self) -> Dict[str, Any]:
        return {'feature': self.feature, 'reason': self.reason, 'fallback': self.fallback}


@dataclass(frozen=True)
class AnalysisResult:
    """Complete feature analysis of one sample buffer."""

    duration_seconds: float
    sample_rate: int
    estimated_tempo_bpm: float
    estimated_key: str
    frequency_range_label: str

    pitch_samples: Tuple[PitchSample, ...] = ()
    beat_events: Tuple[BeatEvent, ...] = ()
    timbre_frames: Tuple[TimbreFrame, ...] = ()
    loudness_samples: Tuple[LoudnessSample, ...] = ()

    degradations: Tuple[DegradedResult, ...] = ()

    # Wall time is not part of the result's identity
    processing_time: float = field(default=0.0, compare=False)

    def __post_init__(self) -> None:
        validate_ordered('pitch_samples', [p.time for p in self.pitch_samples])
        validate_ordered('beat_events', [b.beat_time for b in self.beat_events])
        validate_ordered('timbre_frames', [t.time for t in self.timbre_frames])
        validate_ordered('loudness_samples', [s.time for s in self.loudness_samples])

    @property
    def is_degraded(self) -> bool:
        """True if any feature used a fallback value."""
        return bool(self.degradations)

    @property
    def degraded_features(self) -> Tuple[str, ...]:
        return tuple(d.feature for d in self.degradations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'duration_seconds': self.duration_seconds,
            'sample_rate': self.sample_rate,
            'estimated_tempo_bpm': self.estimated_tempo_bpm,
            'estimated_key': self.estimated_key,
            'frequency_range_label': self.frequency_range_label,
            'pitch_samples': [p.to_dict() for p in self.pitch_samples],
            'beat_events': [b.to_dict() for b in self.beat_events],
            'timbre_frames': [t.to_dict() for t in self.timbre_frames],
            'loudness_samples': [s.to_dict() for s in self.loudness_samples],
            'degradations': [d.to_dict() for d in self.degradations],
            'processing_time': self.processing_time,
        }

    def to_json(self, indent: int = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str, allow_nan=False)

    def get_summary(self) -> str:
        """Get human-readable summary."""
        parts = [
            f"Duration: {self.duration_seconds:.2f}s",
            f"Tempo: {self.estimated_tempo_bpm:.1f} BPM",
            f"Key: {self.estimated_key}",
            f"Range: {self.frequency_range_label}",
            f"Pitches: {len(self.pitch_samples)}",
            f"Beats: {len(self.beat_events)}",
        ]
        if self.is_degraded:
            parts.append(f"Degraded: {', '.join(self.degraded_features)}")
        return " | ".join(parts)


# Validation helpers

def validate_time(time: float) -> None:
    """Validate a timestamp is finite and non-negative."""
    if not (np.isfinite(time) and time >= 0.0):
        raise ValueError(f"Time must be non-negative, got {time}")


def validate_ordered(name: str, times: list) -> None:
    """Validate a time sequence is non-decreasing."""
    for previous, current in zip(times, times[1:]):
        if current < previous:
            raise ValueError(f"{name} must be ordered by time ({current} < {previous})")
