"""
Frame windowing shared by every extractor.

All extractors slice the buffer through the same FeatureWindower so
that frame times line up across pitch, envelope, timbre and loudness
series (time = offset / sample_rate).
"""

from typing import Iterator, NamedTuple

import numpy as np


class Frame(NamedTuple):
    """One analysis window."""

    index: int
    offset: int  # first sample of the window
    time: float  # seconds
    samples: np.ndarray  # read-only view of length window_size


class FeatureWindower:
    """
    Lazy, finite, restartable sequence of overlapping windows.

    Windows start at offsets 0, H, 2H, ... while offset + W <= len(samples).
    Each call to iter() starts again from offset 0; no frame data is
    copied.
    """

    def __init__(
        self,
        samples: np.ndarray,
        window_size: int,
        hop_size: int,
        sample_rate: int,
    ):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        if hop_size <= 0:
            raise ValueError(f"hop_size must be positive, got {hop_size}")
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")

        self.samples = samples
        self.window_size = window_size
        self.hop_size = hop_size
        self.sample_rate = sample_rate

    def __len__(self) -> int:
        n = len(self.samples)
        if n < self.window_size:
            return 0
        return (n - self.window_size) // self.hop_size + 1

    def __iter__(self) -> Iterator[Frame]:
        for index in range(len(self)):
            offset = index * self.hop_size
            yield Frame(
                index=index,
                offset=offset,
                time=offset / self.sample_rate,
                samples=self.samples[offset:offset + self.window_size],
            )

    @property
    def frame_rate(self) -> float:
        """Frames per second (the envelope's effective sample rate)."""
        return self.sample_rate / self.hop_size

    def frame_time(self, index: int) -> float:
        """Start time in seconds of frame index."""
        return index * self.hop_size / self.sample_rate

    def as_matrix(self) -> np.ndarray:
        """All frames stacked as a (n_frames, window_size) strided view."""
        if len(self) == 0:
            return np.empty((0, self.window_size), dtype=self.samples.dtype)
        view = np.lib.stride_tricks.sliding_window_view(self.samples, self.window_size)
        return view[::self.hop_size][:len(self)]
