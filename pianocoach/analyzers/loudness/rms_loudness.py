"""
RMS loudness extractor for PianoCoach.
"""

import math
import threading
from typing import Optional, Tuple

import numpy as np

from pianocoach.analyzers.rhythmic.envelope import EnvelopeTracker
from pianocoach.core.extractor_base import BaseExtractor
from pianocoach.core.models import LoudnessSample, SampleBuffer


def rms_to_decibels(rms: float) -> float:
    """20 * log10(rms); -inf for silence."""
    if rms <= 0.0:
        return float('-inf')
    return 20.0 * math.log10(rms)


class RmsLoudnessExtractor(BaseExtractor[Tuple[LoudnessSample, ...]]):
    """Per-window RMS level (clamped to [0, 1]) and its dBFS value."""

    def __init__(
        self,
        window_size: int = 2048,
        hop_size: int = 512,
        envelope: Optional[EnvelopeTracker] = None,
    ):
        super().__init__("rms_loudness", "1.0.0", window_size, hop_size)
        self.envelope = envelope or EnvelopeTracker(window_size, hop_size)

    def _extract_impl(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[LoudnessSample, ...]:
        levels = np.clip(self.envelope.rms(buffer, cancel_event), 0.0, 1.0)
        windower = self.windower(buffer)

        return tuple(
            LoudnessSample(
                time=windower.frame_time(index),
                rms=float(level),
                decibels=rms_to_decibels(float(level)),
            )
            for index, level in enumerate(levels)
        )
