"""
Extractor base interface for PianoCoach.

Defines the contract for all per-window feature extractors using
Protocol (structural subtyping), plus a template base class that adds
timing, logging, cancellation and error wrapping.
"""

import logging
import threading
import time
from abc import abstractmethod
from typing import Generic, Optional, Protocol, TypeVar

from pianocoach.core.models import SampleBuffer
from pianocoach.core.windowing import FeatureWindower
from pianocoach.utils.errors import AnalysisError, ExtractionCancelledError

T = TypeVar('T')
T_co = TypeVar('T_co', covariant=True)


class Extractor(Protocol[T_co]):
    """
    Base protocol for all feature extractors.

    Extractors are pure with respect to the buffer: they never write to
    it and hold no per-run state, so one instance may serve concurrent
    pipeline runs.
    """

    @property
    def name(self) -> str:
        """Extractor name (e.g., 'yin_pitch', 'mel_cepstral')."""
        ...

    @property
    def version(self) -> str:
        """Extractor version for result tracking."""
        ...

    def extract(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event] = None,
    ) -> T_co:
        """
        Extract one feature series from the buffer.

        Raises:
            AnalysisError: If extraction fails
            ExtractionCancelledError: If cancel_event was set mid-run
        """
        ...


class BaseExtractor(Generic[T]):
    """
    Template base class for windowed extractors.

    extract() provides timing, logging and error wrapping; subclasses
    implement _extract_impl() and call check_cancelled() between frames.
    """

    def __init__(self, name: str, version: str, window_size: int = 2048, hop_size: int = 512):
        """
        Args:
            name: Unique extractor name
            version: Version string for tracking
            window_size: Window length W in samples
            hop_size: Hop length H in samples
        """
        self._name = name
        self._version = version
        self.window_size = window_size
        self.hop_size = hop_size
        self.logger = logging.getLogger(f"extractor.{name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def windower(self, buffer: SampleBuffer) -> FeatureWindower:
        """Windower over buffer with this extractor's window/hop."""
        return FeatureWindower(
            buffer.samples, self.window_size, self.hop_size, buffer.sample_rate
        )

    def extract(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event] = None,
    ) -> T:
        """
        Template method with timing and error handling.

        Raises:
            AnalysisError: If extraction fails
            ExtractionCancelledError: If cancel_event was set mid-run
        """
        start_time = time.time()

        try:
            self.logger.debug(
                f"Starting extraction: {len(buffer)} samples @ {buffer.sample_rate} Hz"
            )

            result = self._extract_impl(buffer, cancel_event)

            elapsed = time.time() - start_time
            self.logger.debug(f"Extraction complete in {elapsed:.3f}s")

            return result

        except (AnalysisError, ExtractionCancelledError):
            raise

        except Exception as e:
            self.logger.error(f"Extraction failed: {e}")
            raise AnalysisError(
                f"{self.name} extraction failed: {e}",
                analyzer_name=self.name,
                original_error=e
            ) from e

    def check_cancelled(self, cancel_event: Optional[threading.Event]) -> None:
        """Raise ExtractionCancelledError if the run was cancelled."""
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelledError(self.name)

    @abstractmethod
    def _extract_impl(
        self,
        buffer: SampleBuffer,
        cancel_event: Optional[threading.Event],
    ) -> T:
        """Subclasses implement actual extraction logic."""
        raise NotImplementedError
