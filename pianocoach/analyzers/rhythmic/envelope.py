"""
Energy envelope tracker for PianoCoach.

One energy value per analysis window, on the same window/hop grid as
every other extractor. Feeds beat/tempo detection and loudness.
"""

import threading
from typing import Optional

import numpy as np

from pianocoach.core.extractor_base import BaseExtractor
from pianocoach.core.models import SampleBuffer

# Frames processed per vectorised chunk between cancellation checks
CHUNK_FRAMES = 256


class EnvelopeTracker(BaseExtractor[np.ndarray]):
    """
    Per-window energy envelope.

    extract() returns mean(x^2) per window; rms() returns its square root.
    """

    def __init__(self, window_size: int = 2048, hop_size: int = 512):
        super().__init__("energy_envelope", "1.0.0", window_size, hop_size)

    def _extract_impl(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event],
    ) -> np.ndarray:
        frames = self.windower(buffer).as_matrix()
        envelope = np.zeros(frames.shape[0], dtype=np.float64)

        for start in range(0, frames.shape[0], CHUNK_FRAMES):
            self.check_cancelled(cancel_event)
            chunk = frames[start:start + CHUNK_FRAMES]
            envelope[start:start + len(chunk)] = np.mean(
                np.square(chunk, dtype=np.float64), axis=1
            )

        return envelope

    def rms(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event] = None,
    ) -> np.ndarray:
        """Root-mean-square form of the envelope."""
        return np.sqrt(self.extract(buffer, cancel_event))
