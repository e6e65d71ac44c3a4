"""Shared fixtures: synthetic signals and hand-built analysis results."""

from typing import Callable, Optional, Sequence

import numpy as np
import pytest

from pianocoach.core.models import (
    AnalysisResult,
    BeatEvent,
    DegradedResult,
    LoudnessSample,
    PitchSample,
    SampleBuffer,
    TimbreFrame,
)
from pianocoach.utils.notes import frequency_to_note

SAMPLE_RATE = 22050


# ---------------------------------------------------------------------------
# Synthetic signals
# ---------------------------------------------------------------------------


def sine_wave(frequency: float, duration: float, sample_rate: int = SAMPLE_RATE, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(duration * sample_rate)) / sample_rate
    return amplitude * np.sin(2 * np.pi * frequency * t)


def note_train(
    bpm: float,
    n_notes: int,
    sample_rate: int = SAMPLE_RATE,
    frequency: float = 440.0,
    start: float = 0.25,
    decay: float = 0.1,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Continuous sine re-struck on every beat with an exponential decay."""
    period = 60.0 / bpm
    duration = start + n_notes * period + 0.5
    t = np.arange(int(duration * sample_rate)) / sample_rate

    envelope = np.zeros_like(t)
    for k in range(n_notes):
        onset = start + k * period
        active = t >= onset
        envelope[active] += np.exp(-(t[active] - onset) / decay)

    return amplitude * envelope * np.sin(2 * np.pi * frequency * t)


@pytest.fixture
def make_sine() -> Callable[..., np.ndarray]:
    return sine_wave


@pytest.fixture
def make_note_train() -> Callable[..., np.ndarray]:
    return note_train


@pytest.fixture
def make_buffer() -> Callable[..., SampleBuffer]:
    def _make(samples, sample_rate: int = SAMPLE_RATE) -> SampleBuffer:
        return SampleBuffer.from_array(samples, sample_rate)
    return _make


@pytest.fixture
def tone_buffer() -> SampleBuffer:
    """One second of A4."""
    return SampleBuffer.from_array(sine_wave(440.0, 1.0), SAMPLE_RATE)


# ---------------------------------------------------------------------------
# Hand-built analysis results
# ---------------------------------------------------------------------------


def build_result(
    pitches: Sequence[tuple] = (),
    beat_times: Sequence[float] = (),
    tempo: float = 120.0,
    descriptors: Sequence[tuple] = (),
    loudness: Sequence[tuple] = (),
    degradations: Sequence[DegradedResult] = (),
    duration: float = 4.0,
) -> AnalysisResult:
    """
    AnalysisResult from plain tuples.

    pitches: (time, frequency); descriptors: (time, 13 floats);
    loudness: (time, rms).
    """
    beats = []
    previous: Optional[float] = None
    for beat_time in beat_times:
        if previous is None:
            beats.append(BeatEvent(beat_time=beat_time))
        else:
            interval = beat_time - previous
            beats.append(BeatEvent(beat_time, interval, 60.0 / interval))
        previous = beat_time

    return AnalysisResult(
        duration_seconds=duration,
        sample_rate=SAMPLE_RATE,
        estimated_tempo_bpm=tempo,
        estimated_key="Unknown",
        frequency_range_label="N/A",
        pitch_samples=tuple(PitchSample(t, f, frequency_to_note(f)) for t, f in pitches),
        beat_events=tuple(beats),
        timbre_frames=tuple(TimbreFrame(t, tuple(d)) for t, d in descriptors),
        loudness_samples=tuple(
            LoudnessSample(t, rms, 20 * np.log10(rms) if rms > 0 else float('-inf'))
            for t, rms in loudness
        ),
        degradations=tuple(degradations),
    )


@pytest.fixture
def make_result() -> Callable[..., AnalysisResult]:
    return build_result


@pytest.fixture
def performance() -> AnalysisResult:
    """A small but complete performance: steady A4, beats every 0.5 s."""
    times = [round(0.05 * i, 2) for i in range(40)]
    return build_result(
        pitches=[(t, 440.0) for t in times],
        beat_times=[0.5, 1.0, 1.5, 2.0, 2.5, 3.0],
        tempo=120.0,
        descriptors=[(t, tuple(float(c) for c in np.linspace(-20.0, 5.0, 13) + i % 3)) for i, t in enumerate(times)],
        loudness=[(t, 0.2 + 0.1 * (i % 4)) for i, t in enumerate(times)],
    )
