"""Tests for the shared frame windower."""

import numpy as np
import pytest

from pianocoach.core.windowing import FeatureWindower


class TestFeatureWindower:
    def test_frame_count(self):
        windower = FeatureWindower(np.zeros(10000), 2048, 512, 22050)
        assert len(windower) == 16
        assert len(list(windower)) == 16

    def test_exact_fit_gives_one_frame(self):
        assert len(FeatureWindower(np.zeros(2048), 2048, 512, 22050)) == 1

    def test_short_input_gives_no_frames(self):
        windower = FeatureWindower(np.zeros(100), 2048, 512, 22050)
        assert len(windower) == 0
        assert list(windower) == []
        assert windower.as_matrix().shape == (0, 2048)

    def test_offsets_and_times(self):
        samples = np.arange(5000, dtype=np.float32)
        frames = list(FeatureWindower(samples, 1000, 500, 1000))
        assert [f.offset for f in frames] == [0, 500, 1000, 1500, 2000, 2500, 3000, 3500, 4000]
        assert frames[3].time == pytest.approx(1.5)
        assert frames[3].samples[0] == 1500
        assert len(frames[3].samples) == 1000

    def test_restartable(self):
        windower = FeatureWindower(np.random.default_rng(0).normal(size=6000), 1024, 256, 8000)
        first = [f.offset for f in windower]
        second = [f.offset for f in windower]
        assert first == second

    def test_as_matrix_matches_iteration(self):
        samples = np.random.default_rng(1).normal(size=7000)
        windower = FeatureWindower(samples, 1024, 300, 8000)
        matrix = windower.as_matrix()
        assert matrix.shape == (len(windower), 1024)
        for frame in windower:
            assert np.array_equal(matrix[frame.index], frame.samples)

    def test_frame_rate(self):
        windower = FeatureWindower(np.zeros(10), 4, 2, 100)
        assert windower.frame_rate == 50.0
        assert windower.frame_time(3) == pytest.approx(0.06)

    @pytest.mark.parametrize("window_size, hop_size, sample_rate", [
        (0, 512, 22050),
        (2048, 0, 22050),
        (2048, -1, 22050),
        (2048, 512, 0),
    ])
    def test_invalid_parameters(self, window_size, hop_size, sample_rate):
        with pytest.raises(ValueError):
            FeatureWindower(np.zeros(4096), window_size, hop_size, sample_rate)
