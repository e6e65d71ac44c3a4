"""
Equal-temperament note helpers.

All conversions are referenced to A4 = 440 Hz, with C0 sitting 57
semitones below A4.
"""

import math
import re

import numpy as np

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']

A4_FREQUENCY = 440.0
C0_FREQUENCY = A4_FREQUENCY * 2 ** -4.75

SEMITONE_RATIO = 2 ** (1 / 12)

_NOTE_PATTERN = re.compile(r'^([A-G]#?)(-?\d+)$')


def frequency_to_semitone(frequency: float) -> int:
    """Nearest semitone index above C0 (C0 = 0, A4 = 57)."""
    return int(round(12 * math.log2(frequency / C0_FREQUENCY)))


def frequency_to_note(frequency: float) -> str:
    """
    Convert frequency in Hz to a note label.

    Args:
        frequency: Frequency in Hz

    Returns:
        str: Note label (e.g., "A4", "C#5"), or "N/A" for non-positive input
    """
    if frequency is None or not np.isfinite(frequency) or frequency <= 0:
        return "N/A"

    semitone = frequency_to_semitone(frequency)
    octave = semitone // 12
    return f"{NOTE_NAMES[semitone % 12]}{octave}"


def note_to_frequency(note: str) -> float:
    """
    Convert a note label back to its equal-tempered frequency.

    Raises:
        ValueError: If the label is not of the form "C#4" / "A-1"
    """
    match = _NOTE_PATTERN.match(note.strip()) if isinstance(note, str) else None
    if match is None:
        raise ValueError(f"Invalid note label: {note!r}")

    name, octave = match.group(1), int(match.group(2))
    semitone = octave * 12 + NOTE_NAMES.index(name)
    return C0_FREQUENCY * 2 ** (semitone / 12)


def pitch_class(frequency: float) -> int:
    """Chromatic index 0-11 (C = 0) of the nearest note."""
    return frequency_to_semitone(frequency) % 12


def semitone_difference(reference: float, actual: float) -> int:
    """Signed distance in whole semitones from reference to actual."""
    return int(round(12 * math.log2(actual / reference)))


def frequency_range_label(min_frequency: float, max_frequency: float) -> str:
    """Human-readable range such as "C3 - G5"."""
    if not min_frequency or not max_frequency:
        return "N/A"
    return f"{frequency_to_note(min_frequency)} - {frequency_to_note(max_frequency)}"
