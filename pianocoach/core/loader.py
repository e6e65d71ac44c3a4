"""
Audio loader for PianoCoach.

Decodes audio files into mono SampleBuffers. The analysis core never
sees files; this is the thin adapter the CLI uses in front of it.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Set

import librosa
import numpy as np
import soundfile as sf

from pianocoach.core.models import SampleBuffer
from pianocoach.utils.errors import AudioLoadError, FileTooLargeError, UnsupportedFormatError

SUPPORTED_FORMATS: Sequence[str] = ('.wav', '.flac', '.aif', '.aiff', '.mp3', '.ogg')

TARGET_SAMPLE_RATE: int = 22050  # Hz
MAX_FILE_SIZE: int = 209715200  # 200 MB

logger = logging.getLogger("loader")


class AudioLoader:
    """
    Loads audio files and creates SampleBuffer instances.

    Stateless - can be used concurrently.
    """

    def __init__(
        self,
        target_sr: Optional[int] = TARGET_SAMPLE_RATE,
        max_file_size: int = MAX_FILE_SIZE,
        supported_formats: Sequence[str] = SUPPORTED_FORMATS,
    ):
        """
        Args:
            target_sr: Resampling rate (None keeps the file's native rate)
            max_file_size: Maximum file size in bytes
            supported_formats: Accepted file suffixes, e.g. ".wav"
        """
        self.target_sr = target_sr
        self.max_file_size = max_file_size
        self.supported_suffixes: Set[str] = {s.lower() for s in supported_formats}

    def load(self, file_path: Path) -> SampleBuffer:
        """
        Load audio file as a mono SampleBuffer.

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: File format not supported
            FileTooLargeError: File exceeds size limit
            AudioLoadError: Audio data could not be decoded or is empty
        """
        file_path = Path(file_path)
        self._validate_file(file_path)

        self._log_metadata(file_path)

        try:
            audio_data, sample_rate = librosa.load(
                str(file_path), sr=self.target_sr, mono=True, dtype=np.float32
            )
        except Exception as e:
            raise AudioLoadError(
                f"Failed to load audio data from {file_path}: {e}",
                file_path=str(file_path),
            ) from e

        if audio_data.size == 0:
            raise AudioLoadError(f"Audio file is empty: {file_path}", file_path=str(file_path))

        # Check for clipping and normalize if needed
        max_abs = float(np.max(np.abs(audio_data)))
        if max_abs > 1.0:
            logger.warning(f"Audio contains clipping (max: {max_abs:.2f}), normalizing: {file_path}")
            audio_data = audio_data / max_abs

        return SampleBuffer.from_array(audio_data, int(sample_rate))

    def _validate_file(self, file_path: Path) -> None:
        """Validate file exists, has supported format, and is within size limit."""
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix,
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file_size,
                max_size=self.max_file_size,
            )

    def _log_metadata(self, file_path: Path) -> None:
        try:
            info = sf.info(str(file_path))
            logger.info(
                f"Loading audio: {info.samplerate} Hz, {info.channels} ch, {info.subtype}"
            )
        except Exception as e:
            # soundfile can't read some formats (e.g. many MP3s); librosa still can
            logger.debug(f"Could not read metadata with soundfile: {e}")


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create AudioLoader from the audio config section.
    """
    if config is None:
        config = {}

    return AudioLoader(
        target_sr=config.get('target_sample_rate', TARGET_SAMPLE_RATE),
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
        supported_formats=config.get('supported_formats', SUPPORTED_FORMATS),
    )
