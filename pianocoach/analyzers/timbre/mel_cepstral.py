"""
Mel-cepstral timbre extractor for PianoCoach.

One 13-coefficient descriptor per analysis window:
Hann window -> power spectrum -> mel filter bank -> log power -> DCT-II.
"""

import threading
from functools import lru_cache
from typing import List, Optional, Tuple

import librosa
import numpy as np

from pianocoach.core.extractor_base import BaseExtractor
from pianocoach.core.models import TIMBRE_DESCRIPTOR_LENGTH, SampleBuffer, TimbreFrame
from pianocoach.utils.errors import FeatureExtractionError

N_MELS = 40
FMIN = 20.0
CHUNK_FRAMES = 128


@lru_cache(maxsize=16)
def mel_filter_bank(
    sample_rate: int,
    n_fft: int,
    n_mels: int = N_MELS,
    fmin: float = FMIN,
    fmax: Optional[float] = None,
) -> np.ndarray:
    """Cached (n_mels, 1 + n_fft // 2) Slaney-normalised mel filter bank."""
    bank = librosa.filters.mel(
        sr=sample_rate, n_fft=n_fft, n_mels=n_mels, fmin=fmin, fmax=fmax
    ).astype(np.float64)
    bank.setflags(write=False)
    return bank


@lru_cache(maxsize=16)
def analysis_window(size: int) -> np.ndarray:
    window = np.hanning(size)
    window.setflags(write=False)
    return window


class MelCepstralExtractor(BaseExtractor[Tuple[TimbreFrame, ...]]):
    """
    Deterministic mel-frequency cepstral descriptors.

    Uses librosa only for the filter bank, dB conversion and DCT, so the
    same buffer always yields bit-identical descriptors.
    """

    def __init__(
        self,
        window_size: int = 2048,
        hop_size: int = 512,
        n_mfcc: int = TIMBRE_DESCRIPTOR_LENGTH,
        n_mels: int = N_MELS,
        fmin: float = FMIN,
        fmax: Optional[float] = None,
    ):
        """
        Args:
            window_size: Window length in samples (also the FFT size)
            hop_size: Hop length in samples
            n_mfcc: Number of cepstral coefficients kept
            n_mels: Mel bands in the filter bank
            fmin: Lowest mel band edge in Hz
            fmax: Highest mel band edge in Hz (None for Nyquist)
        """
        super().__init__("mel_cepstral", "1.0.0", window_size, hop_size)
        if n_mfcc != TIMBRE_DESCRIPTOR_LENGTH:
            raise ValueError(
                f"Timbre descriptors have {TIMBRE_DESCRIPTOR_LENGTH} coefficients, got n_mfcc={n_mfcc}"
            )
        if n_mels < n_mfcc:
            raise ValueError(f"n_mels ({n_mels}) must be at least n_mfcc ({n_mfcc})")
        self.n_mfcc = n_mfcc
        self.n_mels = n_mels
        self.fmin = fmin
        self.fmax = fmax

    def descriptors(self, frames: np.ndarray, sample_rate: int) -> np.ndarray:
        """
        Cepstral descriptors for a (n_frames, window_size) block.

        Returns:
            np.ndarray: Shape (n_frames, n_mfcc)
        """
        if frames.shape[0] == 0:
            return np.empty((0, self.n_mfcc))

        windowed = frames.astype(np.float64) * analysis_window(self.window_size)
        power = np.abs(np.fft.rfft(windowed, n=self.window_size, axis=1)) ** 2

        bank = mel_filter_bank(sample_rate, self.window_size, self.n_mels, self.fmin, self.fmax)
        mel_power = power @ bank.T  # (n_frames, n_mels)

        log_mel = librosa.power_to_db(mel_power.T, ref=1.0, amin=1e-10, top_db=None)
        mfcc = librosa.feature.mfcc(S=log_mel, n_mfcc=self.n_mfcc)  # (n_mfcc, n_frames)
        return mfcc.T

    def _extract_impl(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event],
    ) -> Tuple[TimbreFrame, ...]:
        windower = self.windower(buffer)
        matrix = windower.as_matrix()
        frames: List[TimbreFrame] = []

        for start in range(0, matrix.shape[0], CHUNK_FRAMES):
            self.check_cancelled(cancel_event)
            block = self.descriptors(matrix[start:start + CHUNK_FRAMES], buffer.sample_rate)

            if not np.all(np.isfinite(block)):
                raise FeatureExtractionError(
                    f"Non-finite cepstral coefficients near {windower.frame_time(start):.3f}s",
                    feature_name="timbre",
                )

            for offset, row in enumerate(block):
                frames.append(TimbreFrame(
                    time=windower.frame_time(start + offset),
                    descriptor=tuple(float(c) for c in row),
                ))

        return tuple(frames)
