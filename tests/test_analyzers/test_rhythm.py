"""Tests for the energy envelope and the tempo/beat detector."""

import numpy as np
import pytest

from pianocoach.analyzers.rhythmic.envelope import EnvelopeTracker
from pianocoach.analyzers.rhythmic.tempo_beat import (
    TempoBeatDetector,
    build_beat_events,
    detect_beat_indices,
    estimate_tempo,
    lag_bounds,
)


def impulse_envelope(period: int, n: int) -> np.ndarray:
    envelope = np.full(n, 0.01)
    envelope[::period] = 1.0
    return envelope


class TestEnvelopeTracker:
    def test_constant_signal(self, make_buffer):
        envelope = EnvelopeTracker().extract(make_buffer(np.full(10000, 0.5)))
        assert len(envelope) == 16
        assert np.allclose(envelope, 0.25)

    def test_rms(self, make_buffer):
        rms = EnvelopeTracker().rms(make_buffer(np.full(10000, 0.5)))
        assert np.allclose(rms, 0.5)

    def test_short_buffer(self, make_buffer):
        assert len(EnvelopeTracker().extract(make_buffer(np.ones(100)))) == 0


class TestDetectBeatIndices:
    def test_strict_maxima_above_threshold(self):
        envelope = [0.0, 1.0, 0.0, 0.2, 0.0, 3.0, 0.0]
        assert detect_beat_indices(envelope, 0.3) == [1, 5]

    def test_plateau_is_not_a_beat(self):
        assert detect_beat_indices([0.0, 1.0, 1.0, 0.0]) == []

    def test_endpoints_never_beats(self):
        assert detect_beat_indices([5.0, 1.0, 0.5, 1.0, 5.0]) == []

    def test_silence(self):
        assert detect_beat_indices(np.zeros(100)) == []

    def test_too_short(self):
        assert detect_beat_indices([1.0, 0.0]) == []


class TestBuildBeatEvents:
    def test_intervals_and_bpm(self):
        events = build_beat_events([10, 20, 40], 512, 22050)
        step = 10 * 512 / 22050

        assert events[0].beat_time == pytest.approx(step)
        assert events[0].interval_from_previous is None
        assert events[0].instantaneous_bpm is None
        assert events[1].interval_from_previous == pytest.approx(step)
        assert events[1].instantaneous_bpm == pytest.approx(60.0 / step)
        assert events[2].interval_from_previous == pytest.approx(2 * step)

    def test_empty(self):
        assert build_beat_events([], 512, 22050) == ()


class TestEstimateTempo:
    def test_lag_bounds(self):
        assert lag_bounds(50.0, 60.0, 200.0) == (15, 50)

    def test_periodic_envelope(self):
        # Impulses every 30 frames at 50 frames/s = 0.6 s = 100 BPM
        assert estimate_tempo(impulse_envelope(30, 600), 50.0) == pytest.approx(100.0)

    def test_flat_envelope(self):
        assert estimate_tempo(np.ones(600), 50.0) is None

    def test_too_short_for_band(self):
        assert estimate_tempo(impulse_envelope(5, 10), 50.0) is None

    def test_result_within_band(self):
        rng = np.random.default_rng(11)
        for _ in range(20):
            tempo = estimate_tempo(rng.random(400), 43.07)
            assert tempo is not None
            assert 60.0 <= tempo <= 200.0


class TestTempoBeatDetector:
    def test_note_train(self, make_buffer, make_note_train):
        estimate = TempoBeatDetector().extract(make_buffer(make_note_train(100, 8)))

        assert not estimate.used_default_tempo
        assert len(estimate.beat_events) == 8
        assert 90.0 <= estimate.tempo_bpm <= 110.0
        intervals = [b.interval_from_previous for b in estimate.beat_events[1:]]
        assert np.mean(intervals) == pytest.approx(0.6, abs=0.03)

    def test_single_note_uses_default(self, make_buffer, make_note_train):
        estimate = TempoBeatDetector().extract(make_buffer(make_note_train(100, 1)))

        assert estimate.used_default_tempo
        assert estimate.tempo_bpm == 120.0
        assert len(estimate.beat_events) == 1
        assert "fewer than two beats" in estimate.fallback_reason

    def test_silence_uses_default(self, make_buffer):
        estimate = TempoBeatDetector(default_bpm=90.0).extract(make_buffer(np.zeros(22050)))
        assert estimate.tempo_bpm == 90.0
        assert estimate.beat_events == ()

    def test_envelope_grid_must_match(self):
        with pytest.raises(ValueError):
            TempoBeatDetector(window_size=2048, hop_size=512, envelope=EnvelopeTracker(1024, 256))
