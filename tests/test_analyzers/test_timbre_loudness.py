"""Tests for the mel-cepstral timbre and RMS loudness extractors."""

import math
import threading

import numpy as np
import pytest

from pianocoach.analyzers.loudness.rms_loudness import RmsLoudnessExtractor, rms_to_decibels
from pianocoach.analyzers.timbre.mel_cepstral import MelCepstralExtractor, mel_filter_bank
from pianocoach.utils.errors import ExtractionCancelledError
from pianocoach.utils.stats import correlation


def harmonic_tone(fundamental, duration=1.0, sample_rate=22050, partials=8):
    """Partials k * fundamental at amplitude 1/k, peak-normalised to 0.5."""
    t = np.arange(int(duration * sample_rate)) / sample_rate
    tone = sum(np.sin(2 * np.pi * fundamental * k * t) / k for k in range(1, partials + 1))
    return 0.5 * tone / np.max(np.abs(tone))


class TestMelCepstralExtractor:
    def test_descriptor_shape(self, tone_buffer):
        frames = MelCepstralExtractor().extract(tone_buffer)
        assert len(frames) == 40
        assert all(len(f.descriptor) == 13 for f in frames)
        assert all(np.all(np.isfinite(f.descriptor)) for f in frames)

    def test_deterministic(self, tone_buffer):
        extractor = MelCepstralExtractor()
        assert extractor.extract(tone_buffer) == extractor.extract(tone_buffer)

    def test_similar_sounds_have_closer_descriptors(self, make_buffer, make_sine):
        extractor = MelCepstralExtractor()

        def mean_descriptor(samples):
            frames = extractor.extract(make_buffer(samples))
            return np.mean([f.descriptor for f in frames], axis=0)

        a440 = mean_descriptor(make_sine(440.0, 1.0))
        a445 = mean_descriptor(make_sine(445.0, 1.0))
        noise = mean_descriptor(np.random.default_rng(5).uniform(-0.5, 0.5, 22050))

        assert np.linalg.norm(a440 - a445) < np.linalg.norm(a440 - noise)

    def test_similar_sounds_correlate_frame_by_frame(self, make_buffer, make_sine):
        extractor = MelCepstralExtractor()
        noise = np.random.default_rng(5).uniform(-0.5, 0.5, 22050)

        def mean_correlation(a, b):
            frames_a = extractor.extract(make_buffer(a))
            frames_b = extractor.extract(make_buffer(b))
            return np.mean([
                correlation(x.descriptor, y.descriptor) for x, y in zip(frames_a, frames_b)
            ])

        a440 = make_sine(440.0, 1.0)
        tone_vs_detuned = mean_correlation(a440, make_sine(445.0, 1.0))
        assert tone_vs_detuned > 0.9
        assert tone_vs_detuned > mean_correlation(a440, noise)

        piano_like = harmonic_tone(220.0)
        assert mean_correlation(piano_like, harmonic_tone(222.0)) > mean_correlation(piano_like, noise)

    def test_silence_is_finite(self, make_buffer):
        frames = MelCepstralExtractor().extract(make_buffer(np.zeros(8192)))
        assert frames
        assert all(np.all(np.isfinite(f.descriptor)) for f in frames)

    def test_short_buffer(self, make_buffer):
        assert MelCepstralExtractor().extract(make_buffer(np.zeros(1000))) == ()

    def test_invalid_coefficient_count(self):
        with pytest.raises(ValueError):
            MelCepstralExtractor(n_mfcc=20)
        with pytest.raises(ValueError):
            MelCepstralExtractor(n_mels=10)

    def test_filter_bank_cached_and_read_only(self):
        bank = mel_filter_bank(22050, 2048)
        assert bank.shape == (40, 1025)
        assert mel_filter_bank(22050, 2048) is bank
        assert not bank.flags.writeable

    def test_cancelled(self, tone_buffer):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ExtractionCancelledError):
            MelCepstralExtractor().extract(tone_buffer, cancel)


class TestRmsLoudness:
    def test_decibels(self):
        assert rms_to_decibels(0.5) == pytest.approx(-6.0206, abs=1e-3)
        assert rms_to_decibels(1.0) == 0.0
        assert rms_to_decibels(0.0) == float('-inf')

    def test_constant_signal(self, make_buffer):
        samples = RmsLoudnessExtractor().extract(make_buffer(np.full(10000, 0.5)))
        assert len(samples) == 16
        assert all(s.rms == pytest.approx(0.5) for s in samples)
        assert samples[0].decibels == pytest.approx(-6.0206, abs=1e-3)
        assert samples[2].time == pytest.approx(1024 / 22050)

    def test_silence(self, make_buffer):
        samples = RmsLoudnessExtractor().extract(make_buffer(np.zeros(4096)))
        assert all(s.rms == 0.0 for s in samples)
        assert all(math.isinf(s.decibels) and s.decibels < 0 for s in samples)

    def test_clamped_to_full_scale(self, make_buffer):
        samples = RmsLoudnessExtractor().extract(make_buffer(np.full(4096, 2.0)))
        assert all(s.rms == 1.0 for s in samples)
        assert all(s.decibels == 0.0 for s in samples)
