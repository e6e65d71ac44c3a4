"""
Key and register estimation for PianoCoach.

Both are derived from the detected pitch samples rather than the raw
audio, so they are deterministic functions of the pitch series.
"""

from typing import List, Sequence, Tuple

import numpy as np

from pianocoach.core.models import PitchSample
from pianocoach.utils.notes import NOTE_NAMES, frequency_range_label, pitch_class

UNKNOWN_KEY = "Unknown"

# Key profiles (Krumhansl-Schmuckler)
MAJOR_PROFILE = np.array([6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88])
MINOR_PROFILE = np.array([6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17])


def pitch_class_histogram(pitch_samples: Sequence[PitchSample]) -> np.ndarray:
    """
    Normalised 12-bin pitch-class distribution (C = 0).

    All zeros when there are no pitch samples.
    """
    histogram = np.zeros(12, dtype=np.float64)
    for sample in pitch_samples:
        histogram[pitch_class(sample.frequency)] += 1.0

    total = histogram.sum()
    if total > 0:
        histogram /= total
    return histogram


def key_correlations(histogram: np.ndarray) -> List[Tuple[str, float]]:
    """Correlation of the histogram with all 24 rotated key profiles, best first."""
    correlations: List[Tuple[str, float]] = []

    for i, note in enumerate(NOTE_NAMES):
        # Rotate profile to match key
        major_rotated = np.roll(MAJOR_PROFILE, i)
        minor_rotated = np.roll(MINOR_PROFILE, i)

        major_corr = np.corrcoef(histogram, major_rotated)[0, 1]
        minor_corr = np.corrcoef(histogram, minor_rotated)[0, 1]

        correlations.append((f"{note} major", float(major_corr)))
        correlations.append((f"{note} minor", float(minor_corr)))

    # Stable sort: ties keep C major first
    correlations.sort(key=lambda x: x[1], reverse=True)
    return correlations


def estimate_key(pitch_samples: Sequence[PitchSample]) -> str:
    """
    Estimate the musical key of a pitch series.

    Returns:
        str: e.g. "G major", or "Unknown" without usable pitch content
    """
    histogram = pitch_class_histogram(pitch_samples)

    # A flat histogram (none or all twelve classes equally) has no key
    if histogram.max() == histogram.min():
        return UNKNOWN_KEY

    best_key, _ = key_correlations(histogram)[0]
    return best_key


def estimate_frequency_range(pitch_samples: Sequence[PitchSample]) -> str:
    """Lowest and highest detected note, e.g. "C3 - G5"; "N/A" without pitches."""
    if not pitch_samples:
        return "N/A"
    frequencies = [sample.frequency for sample in pitch_samples]
    return frequency_range_label(min(frequencies), max(frequencies))
