"""Tests for note/frequency conversion."""

import math

import pytest

from pianocoach.utils.notes import (
    NOTE_NAMES,
    frequency_range_label,
    frequency_to_note,
    note_to_frequency,
    pitch_class,
    semitone_difference,
)


class TestFrequencyToNote:
    @pytest.mark.parametrize("frequency, note", [
        (440.0, "A4"),
        (261.63, "C4"),
        (27.5, "A0"),
        (4186.01, "C8"),
        (466.16, "A#4"),
        (445.0, "A4"),
    ])
    def test_known_frequencies(self, frequency, note):
        assert frequency_to_note(frequency) == note

    @pytest.mark.parametrize("frequency", [0.0, -440.0, float('nan'), float('inf'), None])
    def test_invalid_frequency_is_not_available(self, frequency):
        assert frequency_to_note(frequency) == "N/A"


class TestNoteToFrequency:
    def test_a4_is_440(self):
        assert note_to_frequency("A4") == pytest.approx(440.0)

    def test_middle_c(self):
        assert note_to_frequency("C4") == pytest.approx(261.6256, rel=1e-5)

    @pytest.mark.parametrize("label", ["H4", "A", "a4", "", "Bb4", "4A", "C#"])
    def test_invalid_labels_raise(self, label):
        with pytest.raises(ValueError):
            note_to_frequency(label)

    def test_round_trip_all_octaves(self):
        for octave in range(0, 9):
            for name in NOTE_NAMES:
                label = f"{name}{octave}"
                assert frequency_to_note(note_to_frequency(label)) == label


class TestHelpers:
    def test_semitone_difference(self):
        assert semitone_difference(440.0, 880.0) == 12
        assert semitone_difference(440.0, 466.16) == 1
        assert semitone_difference(440.0, 415.30) == -1

    def test_pitch_class(self):
        assert pitch_class(261.63) == 0
        assert pitch_class(440.0) == 9

    def test_frequency_range_label(self):
        assert frequency_range_label(130.81, 783.99) == "C3 - G5"

    def test_frequency_range_label_without_pitch(self):
        assert frequency_range_label(0.0, 0.0) == "N/A"

    def test_semitone_ratio_tolerance(self):
        assert math.isclose(note_to_frequency("A#4") / note_to_frequency("A4"), 2 ** (1 / 12))
