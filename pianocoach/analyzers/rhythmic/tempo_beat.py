"""
Tempo and beat detector for PianoCoach.

Analyzes the energy envelope for:
- Discrete beat events (thresholded strict local maxima)
- Tempo (envelope autocorrelation restricted to a plausible BPM band)
"""

import math
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from pianocoach.analyzers.rhythmic.envelope import EnvelopeTracker
from pianocoach.core.extractor_base import BaseExtractor
from pianocoach.core.models import BeatEvent, SampleBuffer
from pianocoach.utils.errors import FeatureExtractionError

DEFAULT_BPM = 120.0
MIN_BPM = 60.0
MAX_BPM = 200.0


@dataclass(frozen=True)
class RhythmEstimate:
    """Tempo and beats of one buffer; fallback_reason is set when BPM is the default."""

    tempo_bpm: float
    beat_events: Tuple[BeatEvent, ...]
    fallback_reason: Optional[str] = None

    @property
    def used_default_tempo(self) -> bool:
        return self.fallback_reason is not None


def detect_beat_indices(envelope: np.ndarray, threshold_ratio: float = 0.3) -> List[int]:
    """Indices i with env[i] > ratio * max(env) and env[i-1] < env[i] > env[i+1]."""
    env = np.asarray(envelope, dtype=np.float64)
    if env.size < 3:
        return []

    peak = env.max()
    if not np.isfinite(peak) or peak <= 0:
        return []

    centre = env[1:-1]
    is_beat = (centre > peak * threshold_ratio) & (centre > env[:-2]) & (centre > env[2:])
    return [int(i) + 1 for i in np.flatnonzero(is_beat)]


def build_beat_events(indices: List[int], hop_size: int, sample_rate: int) -> Tuple[BeatEvent, ...]:
    """Beat events with intervals and instantaneous BPM from envelope indices."""
    events: List[BeatEvent] = []
    previous: Optional[float] = None

    for index in indices:
        beat_time = index * hop_size / sample_rate
        if previous is None:
            events.append(BeatEvent(beat_time=beat_time))
        else:
            interval = beat_time - previous
            events.append(BeatEvent(
                beat_time=beat_time,
                interval_from_previous=interval,
                instantaneous_bpm=60.0 / interval,
            ))
        previous = beat_time

    return tuple(events)


def lag_bounds(envelope_rate: float, min_bpm: float, max_bpm: float) -> Tuple[int, int]:
    """Envelope lags (in frames) spanning max_bpm .. min_bpm."""
    min_lag = max(1, math.ceil(envelope_rate * 60.0 / max_bpm))
    max_lag = math.floor(envelope_rate * 60.0 / min_bpm)
    return min_lag, max_lag


def estimate_tempo(
    envelope: np.ndarray,
    envelope_rate: float,
    min_bpm: float = MIN_BPM,
    max_bpm: float = MAX_BPM,
) -> Optional[float]:
    """
    BPM from the best-correlated envelope lag, or None if undeterminable.

    The envelope is mean-removed; each lag's correlation is divided by
    its number of overlapping terms and by the zero-lag power, so lags
    of different length compete fairly.
    """
    env = np.asarray(envelope, dtype=np.float64)
    n = env.size
    min_lag, max_lag = lag_bounds(envelope_rate, min_bpm, max_bpm)
    max_lag = min(max_lag, n - 1)
    if n < 2 or min_lag > max_lag:
        return None

    centred = env - env.mean()
    power = np.dot(centred, centred) / n
    if power <= 0 or not np.isfinite(power):
        return None

    # Linear (not circular) autocorrelation via a 2n-point FFT
    spectrum = np.fft.rfft(centred, 2 * n)
    autocorr = np.fft.irfft(spectrum * np.conj(spectrum), 2 * n)[:n]

    lags = np.arange(min_lag, max_lag + 1)
    normalized = autocorr[lags] / (n - lags) / power
    best_lag = int(lags[int(np.argmax(normalized))])

    bpm = 60.0 * envelope_rate / best_lag
    return float(min(max_bpm, max(min_bpm, bpm)))


class TempoBeatDetector(BaseExtractor[RhythmEstimate]):
    """
    Envelope-based rhythm analysis.

    Beats come from the energy envelope's thresholded local maxima; tempo
    comes from its autocorrelation. Fewer than two beats, a flat envelope
    or an envelope too short for the BPM band yields the default tempo
    with a fallback reason (a degraded result, not a failure).
    """

    def __init__(
        self,
        window_size: int = 2048,
        hop_size: int = 512,
        threshold_ratio: float = 0.3,
        tempo_range: Tuple[float, float] = (MIN_BPM, MAX_BPM),
        default_bpm: float = DEFAULT_BPM,
        envelope: Optional[EnvelopeTracker] = None,
    ):
        """
        Args:
            window_size: Window length in samples
            hop_size: Hop length in samples
            threshold_ratio: Beat threshold as a fraction of the envelope peak
            tempo_range: Plausible tempo band (min_bpm, max_bpm)
            default_bpm: Tempo reported when no estimate is possible
            envelope: Envelope tracker (must share window/hop)
        """
        super().__init__("tempo_beat", "1.0.0", window_size, hop_size)
        self.threshold_ratio = threshold_ratio
        self.tempo_range = tempo_range
        self.default_bpm = default_bpm
        self.envelope = envelope or EnvelopeTracker(window_size, hop_size)

        if (self.envelope.window_size, self.envelope.hop_size) != (window_size, hop_size):
            raise ValueError("Envelope tracker must use the same window and hop sizes")

    def _extract_impl(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event],
    ) -> RhythmEstimate:
        envelope = self.envelope.extract(buffer, cancel_event)
        self.check_cancelled(cancel_event)

        if not np.all(np.isfinite(envelope)):
            raise FeatureExtractionError("Envelope contains non-finite values", feature_name="rhythm")

        indices = detect_beat_indices(envelope, self.threshold_ratio)
        beats = build_beat_events(indices, self.hop_size, buffer.sample_rate)

        if len(beats) < 2:
            self.logger.info(f"Only {len(beats)} beat(s) detected, using default tempo")
            return RhythmEstimate(
                tempo_bpm=self.default_bpm,
                beat_events=beats,
                fallback_reason=f"fewer than two beats detected ({len(beats)})",
            )

        tempo = estimate_tempo(envelope, self.windower(buffer).frame_rate, *self.tempo_range)
        if tempo is None:
            self.logger.info("Envelope too short or flat for tempo estimation")
            return RhythmEstimate(
                tempo_bpm=self.default_bpm,
                beat_events=beats,
                fallback_reason="envelope too short or flat for tempo estimation",
            )

        self.logger.debug(f"Tempo {tempo:.1f} BPM from {len(beats)} beats")
        return RhythmEstimate(tempo_bpm=tempo, beat_events=beats)
