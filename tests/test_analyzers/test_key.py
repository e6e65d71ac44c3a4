"""Tests for key and register estimation."""

import numpy as np
import pytest

from pianocoach.analyzers.musical.key import (
    estimate_frequency_range,
    estimate_key,
    key_correlations,
    pitch_class_histogram,
)
from pianocoach.core.models import PitchSample
from pianocoach.utils.notes import note_to_frequency


def samples_for(notes):
    """One PitchSample per (note, count), spaced 10 ms apart."""
    result = []
    for note, count in notes:
        for _ in range(count):
            frequency = note_to_frequency(note)
            result.append(PitchSample(len(result) * 0.01, frequency, note))
    return result


C_MAJOR = [("C4", 6), ("D4", 3), ("E4", 4), ("F4", 4), ("G4", 5), ("A4", 4), ("B4", 3)]


class TestPitchClassHistogram:
    def test_normalised(self):
        histogram = pitch_class_histogram(samples_for([("C4", 3), ("G4", 1)]))
        assert histogram.sum() == pytest.approx(1.0)
        assert histogram[0] == pytest.approx(0.75)
        assert histogram[7] == pytest.approx(0.25)

    def test_octaves_share_a_class(self):
        histogram = pitch_class_histogram(samples_for([("A2", 1), ("A5", 1)]))
        assert histogram[9] == pytest.approx(1.0)

    def test_empty(self):
        assert np.array_equal(pitch_class_histogram([]), np.zeros(12))


class TestEstimateKey:
    def test_c_major_scale(self):
        assert estimate_key(samples_for(C_MAJOR)) == "C major"

    def test_transposed_scale(self):
        g_major = [("G3", 6), ("A3", 3), ("B3", 4), ("C4", 4), ("D4", 5), ("E4", 4), ("F#4", 3)]
        assert estimate_key(samples_for(g_major)) == "G major"

    def test_no_pitches(self):
        assert estimate_key([]) == "Unknown"

    def test_chromatic_is_unknown(self):
        chromatic = [(f"{name}4", 1) for name in ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]]
        assert estimate_key(samples_for(chromatic)) == "Unknown"

    def test_all_keys_ranked(self):
        ranking = key_correlations(pitch_class_histogram(samples_for(C_MAJOR)))
        assert len(ranking) == 24
        assert ranking[0][0] == "C major"


class TestFrequencyRange:
    def test_range(self):
        samples = samples_for([("G5", 1), ("C3", 1), ("E4", 1)])
        assert estimate_frequency_range(samples) == "C3 - G5"

    def test_empty(self):
        assert estimate_frequency_range([]) == "N/A"
