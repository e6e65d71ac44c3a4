"""
YIN pitch estimator for PianoCoach.

Per-window fundamental frequency detection with the cumulative-mean
normalised difference function (de Cheveigne & Kawahara, 2002).
"""

import threading
from typing import List, Optional, Tuple

import numpy as np

from pianocoach.core.extractor_base import BaseExtractor
from pianocoach.core.models import PitchSample, SampleBuffer
from pianocoach.utils.errors import FeatureExtractionError
from pianocoach.utils.notes import frequency_to_note

DEFAULT_THRESHOLD = 0.1
MIN_LAG = 2


def difference_function(window: np.ndarray) -> np.ndarray:
    """
    d(tau) = sum_{i < W/2} (x[i] - x[i + tau])^2 for tau in [0, W/2).

    Expanded as energy(head) + energy(shifted) - 2 * crosscorr and
    computed with one real FFT pair instead of W/2 dot products.
    """
    x = np.asarray(window, dtype=np.float64)
    size = len(x)
    half = size // 2

    squares = np.concatenate(([0.0], np.cumsum(x * x)))
    head_energy = squares[half]
    shifted_energy = squares[half:half + half] - squares[:half]

    # i + tau < size for all i, tau < half, so a size-point FFT never wraps
    spectrum = np.fft.rfft(x, size)
    head_spectrum = np.fft.rfft(x[:half], size)
    cross = np.fft.irfft(spectrum * np.conj(head_spectrum), size)[:half]

    diff = head_energy + shifted_energy - 2.0 * cross
    diff[0] = 0.0
    return np.maximum(diff, 0.0)


def cumulative_mean_normalized(diff: np.ndarray) -> np.ndarray:
    """d'(0) = 1, d'(tau) = d(tau) * tau / sum_{k=1..tau} d(k); 1 where the sum is 0."""
    normalized = np.ones_like(diff)
    if len(diff) < 2:
        return normalized

    running = np.cumsum(diff[1:])
    lags = np.arange(1, len(diff))
    with np.errstate(divide='ignore', invalid='ignore'):
        values = diff[1:] * lags / running
    normalized[1:] = np.where(running > 0, values, 1.0)
    return normalized


def select_lag(normalized: np.ndarray, threshold: float = DEFAULT_THRESHOLD) -> Optional[int]:
    """
    Lag of the first dip of d' below threshold.

    Scans from MIN_LAG to the first lag under the threshold, then follows
    d' downhill to the bottom of that dip. None if no lag qualifies.
    """
    if len(normalized) <= MIN_LAG:
        return None

    below = np.flatnonzero(normalized[MIN_LAG:] < threshold)
    if below.size == 0:
        return None

    tau = int(below[0]) + MIN_LAG
    while tau + 1 < len(normalized) and normalized[tau + 1] < normalized[tau]:
        tau += 1
    return tau


def estimate_pitch(
    window: np.ndarray,
    sample_rate: int,
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[float]:
    """Fundamental frequency of one window in Hz, or None if unvoiced."""
    normalized = cumulative_mean_normalized(difference_function(window))
    tau = select_lag(normalized, threshold)
    if tau is None:
        return None
    return sample_rate / tau


class YinPitchEstimator(BaseExtractor[Tuple[PitchSample, ...]]):
    """
    YIN-based pitch tracking.

    Produces one PitchSample per window whose best lag clears the
    confidence threshold; silent and noisy windows produce nothing.
    """

    def __init__(
        self,
        window_size: int = 2048,
        hop_size: int = 512,
        threshold: float = DEFAULT_THRESHOLD,
    ):
        """
        Args:
            window_size: Window length in samples (lags searched up to W/2)
            hop_size: Hop length in samples
            threshold: Maximum d' accepted as a confident period
        """
        super().__init__("yin_pitch", "1.0.0", window_size, hop_size)
        self.threshold = threshold

    def _extract_impl(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[PitchSample, ...]:
        samples: List[PitchSample] = []

        for frame in self.windower(buffer):
            self.check_cancelled(cancel_event)

            frequency = estimate_pitch(frame.samples, buffer.sample_rate, self.threshold)
            if frequency is None:
                continue
            if not np.isfinite(frequency) or frequency <= 0:
                raise FeatureExtractionError(
                    f"Invalid frequency {frequency} at {frame.time:.3f}s",
                    feature_name="pitch",
                )

            samples.append(PitchSample(
                time=frame.time,
                frequency=float(frequency),
                note=frequency_to_note(frequency),
            ))

        self.logger.debug(f"Detected pitch in {len(samples)} windows")
        return tuple(samples)
