"""
Analysis pipeline for PianoCoach.

Orchestrates the four feature extractors over one sample buffer:
validation, parallel extraction under a single deadline, per-feature
fallbacks and aggregation into an AnalysisResult.
"""

import logging
import threading
import time
import uuid
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from pianocoach.analyzers.loudness.rms_loudness import RmsLoudnessExtractor
from pianocoach.analyzers.musical.key import estimate_frequency_range, estimate_key
from pianocoach.analyzers.pitch.yin_pitch import YinPitchEstimator
from pianocoach.analyzers.rhythmic.envelope import EnvelopeTracker
from pianocoach.analyzers.rhythmic.tempo_beat import DEFAULT_BPM, RhythmEstimate, TempoBeatDetector
from pianocoach.analyzers.timbre.mel_cepstral import MelCepstralExtractor
from pianocoach.core.cache import CacheManager, create_cache_manager
from pianocoach.core.extractor_base import Extractor
from pianocoach.core.models import AnalysisResult, DegradedResult, SampleBuffer
from pianocoach.utils.errors import AnalysisTimeoutError, ExtractionCancelledError, InvalidInputError
from pianocoach.utils.logging import LoggerAdapter, create_logger_with_context

MAX_DURATION = 600.0  # seconds
MAX_SAMPLES = 48000 * 600
DEFAULT_TIMEOUT = 30.0  # seconds

# Runs analyze_pair keeps in flight at once
PAIR_RUNS = 2

# Fixed order of sub-tasks and of their degradation notes
FEATURES = ("pitch", "rhythm", "timbre", "loudness")


class PipelineState(Enum):
    """Lifecycle of one analysis run."""

    IDLE = "idle"
    VALIDATING = "validating"
    READY = "ready"
    EXTRACTING = "extracting"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


StateCallback = Callable[[PipelineState], None]


@dataclass
class RunContext:
    """Mutable state of a single run; never shared between runs."""

    run_id: str
    role: str
    logger: LoggerAdapter
    on_state: Optional[StateCallback] = None
    state: PipelineState = PipelineState.IDLE
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def transition(self, state: PipelineState) -> None:
        self.logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        if self.on_state is not None:
            self.on_state(state)


class AnalysisPipeline:
    """
    Feature analysis of one sample buffer.

    Design:
    - Dependency Injection: extractors are injected (testable)
    - Parallel Execution: extractors fan out on a thread pool
    - Deadline: one wall-clock timeout for the whole run
    - Partial results: a failed feature falls back to its default
      and is reported as a DegradedResult
    """

    def __init__(
        self,
        pitch_estimator: Extractor,
        rhythm_detector: Extractor,
        timbre_extractor: Extractor,
        loudness_extractor: Extractor,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        max_duration: float = MAX_DURATION,
        max_samples: int = MAX_SAMPLES,
        max_workers: int = 4,
        default_bpm: float = DEFAULT_BPM,
        cache: Optional[CacheManager] = None,
    ):
        """
        Args:
            pitch_estimator: Produces a tuple of PitchSample
            rhythm_detector: Produces a RhythmEstimate
            timbre_extractor: Produces a tuple of TimbreFrame
            loudness_extractor: Produces a tuple of LoudnessSample
            timeout: Deadline in seconds per run (None for no deadline)
            max_duration: Longest accepted buffer in seconds
            max_samples: Largest accepted buffer in samples
            max_workers: Extraction threads per run
            default_bpm: Tempo used when rhythm extraction fails
            cache: Optional result cache keyed by buffer fingerprint
        """
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self.extractors: Dict[str, Extractor] = {
            'pitch': pitch_estimator,
            'rhythm': rhythm_detector,
            'timbre': timbre_extractor,
            'loudness': loudness_extractor,
        }
        self.timeout = timeout
        self.max_duration = max_duration
        self.max_samples = max_samples
        self.default_bpm = default_bpm
        self.cache = cache
        # Room for both runs of a pair, so neither queues behind the other
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers * PAIR_RUNS, thread_name_prefix="extract"
        )
        # Separate pool so that pair runs never wait on their own sub-tasks' workers
        self._pair_executor = ThreadPoolExecutor(max_workers=PAIR_RUNS, thread_name_prefix="run")
        self.logger = logging.getLogger('pipeline')

    def analyze(
        self,
        buffer: SampleBuffer,
        role: str = "recording",
        on_state: Optional[StateCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnalysisResult:
        """
        Analyze one sample buffer completely.

        Args:
            buffer: Mono sample buffer
            role: Label used in logs ("reference" or "recording")
            on_state: Optional callback receiving every state transition
            cancel_event: Optional event shared with sibling runs; setting it
                cancels this run's extraction

        Returns:
            AnalysisResult: Complete analysis result

        Raises:
            InvalidInputError: Buffer failed validation
            AnalysisTimeoutError: Extraction exceeded the deadline
            ExtractionCancelledError: cancel_event was set during extraction
        """
        start_time = time.time()
        run_id = uuid.uuid4().hex[:8]
        ctx = RunContext(
            run_id=run_id,
            role=role,
            logger=create_logger_with_context('pipeline', {'run_id': run_id, 'role': role}),
            on_state=on_state,
        )
        if cancel_event is not None:
            ctx.cancel_event = cancel_event

        try:
            ctx.transition(PipelineState.VALIDATING)
            self.validate(buffer)
            ctx.transition(PipelineState.READY)

            if self.cache is not None:
                cached = self.cache.get(buffer.fingerprint)
                if cached is not None:
                    ctx.logger.info(f"Cache hit: {buffer.fingerprint[:8]}...")
                    ctx.transition(PipelineState.DONE)
                    return cached

            ctx.transition(PipelineState.EXTRACTING)
            ctx.logger.info(
                f"Extracting features: {buffer.duration:.2f}s @ {buffer.sample_rate} Hz"
            )
            outputs = self._extract_parallel(buffer, ctx, start_time)

            ctx.transition(PipelineState.AGGREGATING)
            result = self._create_analysis_result(buffer, outputs, time.time() - start_time)

        except Exception:
            ctx.transition(PipelineState.FAILED)
            raise

        if self.cache is not None:
            self.cache.set(buffer.fingerprint, result)

        ctx.transition(PipelineState.DONE)
        ctx.logger.info(f"Analysis complete in {result.processing_time:.3f}s")
        return result

    def analyze_pair(
        self,
        reference: SampleBuffer,
        recording: SampleBuffer,
    ) -> Tuple[AnalysisResult, AnalysisResult]:
        """
        Analyze a reference and a recording concurrently.

        Returns:
            Tuple: (reference_result, recording_result)

        Raises:
            InvalidInputError, AnalysisTimeoutError: From either run; the
                other run is cancelled as soon as one fails
        """
        cancel_event = threading.Event()
        reference_future = self._pair_executor.submit(
            self.analyze, reference, "reference", None, cancel_event
        )
        recording_future = self._pair_executor.submit(
            self.analyze, recording, "recording", None, cancel_event
        )

        futures = (reference_future, recording_future)
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        if any(future.exception() is not None for future in done):
            cancel_event.set()
            wait(futures)
            errors = [future.exception() for future in futures if future.exception() is not None]
            # Report the failure itself, not the sibling it cancelled
            errors.sort(key=lambda e: isinstance(e, ExtractionCancelledError))
            raise errors[0]

        return reference_future.result(), recording_future.result()

    def validate(self, buffer: SampleBuffer) -> None:
        """
        Reject buffers the extractors cannot meaningfully process.

        Raises:
            InvalidInputError: With a short machine-readable reason
        """
        if buffer is None or not isinstance(buffer, SampleBuffer):
            raise InvalidInputError("No sample buffer provided", reason="missing")

        samples = np.asarray(buffer.samples)
        if samples.ndim != 1:
            raise InvalidInputError(
                f"Expected mono samples, got shape {samples.shape}", reason="not_mono"
            )
        if samples.size == 0:
            raise InvalidInputError("Sample buffer is empty", reason="empty")
        if buffer.sample_rate <= 0:
            raise InvalidInputError(
                f"Invalid sample rate: {buffer.sample_rate}", reason="sample_rate"
            )
        if samples.size > self.max_samples:
            raise InvalidInputError(
                f"Buffer too large: {samples.size} samples (maximum {self.max_samples})",
                reason="too_many_samples",
            )
        if buffer.duration > self.max_duration:
            raise InvalidInputError(
                f"Buffer too long: {buffer.duration:.1f}s (maximum {self.max_duration:.1f}s)",
                reason="too_long",
            )
        if not np.all(np.isfinite(samples)):
            raise InvalidInputError("Buffer contains NaN or infinite samples", reason="non_finite")

    def _extract_parallel(
        self,
        buffer: SampleBuffer,
        ctx: RunContext,
        start_time: float,
    ) -> Dict[str, Tuple[Any, Optional[DegradedResult]]]:
        """
        Fan out all extractors and join them under the run deadline.

        Returns:
            dict: {feature: (value, degradation or None)}
        """
        futures: Dict[Future, str] = {
            self.executor.submit(extractor.extract, buffer, ctx.cancel_event): name
            for name, extractor in self.extractors.items()
        }

        remaining = None
        if self.timeout is not None:
            remaining = max(0.0, self.timeout - (time.time() - start_time))

        done, not_done = wait(futures, timeout=remaining)

        if not_done:
            ctx.cancel_event.set()
            for future in not_done:
                future.cancel()
            pending = sorted(futures[f] for f in not_done)
            ctx.logger.error(f"Deadline of {self.timeout}s exceeded, pending: {pending}")
            raise AnalysisTimeoutError(
                f"Analysis exceeded {self.timeout}s deadline",
                timeout=self.timeout,
                pending=pending,
            )

        if ctx.cancel_event.is_set():
            ctx.logger.warning("Run cancelled by a failed sibling run")
            raise ExtractionCancelledError(f"{ctx.role} analysis")

        outputs: Dict[str, Tuple[Any, Optional[DegradedResult]]] = {}
        for future, name in futures.items():
            try:
                outputs[name] = self._accept(name, future.result())
            except Exception as e:
                ctx.logger.warning(f"{name} extraction failed, using default: {e}")
                outputs[name] = self._fallback(name, str(e))

        return outputs

    def _accept(self, name: str, value: Any) -> Tuple[Any, Optional[DegradedResult]]:
        """Pass a successful value through, noting rhythm's own tempo fallback."""
        if name == 'rhythm' and isinstance(value, RhythmEstimate) and value.used_default_tempo:
            return value, DegradedResult(
                feature='rhythm',
                reason=value.fallback_reason,
                fallback=f"tempo {value.tempo_bpm:g} BPM",
            )
        return value, None

    def _fallback(self, name: str, reason: str) -> Tuple[Any, DegradedResult]:
        """Documented default for a failed feature."""
        if name == 'rhythm':
            value: Any = RhythmEstimate(tempo_bpm=self.default_bpm, beat_events=(), fallback_reason=reason)
            description = f"tempo {self.default_bpm:g} BPM, no beats"
        else:
            value = ()
            description = f"empty {name} series"
        return value, DegradedResult(feature=name, reason=reason, fallback=description)

    def _create_analysis_result(
        self,
        buffer: SampleBuffer,
        outputs: Dict[str, Tuple[Any, Optional[DegradedResult]]],
        processing_time: float,
    ) -> AnalysisResult:
        """Assemble the result in fixed field order, independent of completion order."""
        pitch_samples, _ = outputs['pitch']
        rhythm, _ = outputs['rhythm']
        timbre_frames, _ = outputs['timbre']
        loudness_samples, _ = outputs['loudness']

        degradations: List[DegradedResult] = [
            outputs[name][1] for name in FEATURES if outputs[name][1] is not None
        ]

        return AnalysisResult(
            duration_seconds=buffer.duration,
            sample_rate=buffer.sample_rate,
            estimated_tempo_bpm=rhythm.tempo_bpm,
            estimated_key=estimate_key(pitch_samples),
            frequency_range_label=estimate_frequency_range(pitch_samples),
            pitch_samples=tuple(pitch_samples),
            beat_events=tuple(rhythm.beat_events),
            timbre_frames=tuple(timbre_frames),
            loudness_samples=tuple(loudness_samples),
            degradations=tuple(degradations),
            processing_time=processing_time,
        )

    def shutdown(self) -> None:
        """Shutdown thread pools gracefully."""
        self.logger.info("Shutting down analysis pipeline")
        self._pair_executor.shutdown(wait=True)
        self.executor.shutdown(wait=True)
        if self.cache is not None:
            self.logger.info(f"Cache stats: {self.cache.get_stats()}")
            self.cache.clear()

    def __enter__(self) -> "AnalysisPipeline":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()


def create_analysis_pipeline(config: Dict[str, Any]) -> AnalysisPipeline:
    """
    Factory function to create a fully configured analysis pipeline.

    Args:
        config: Configuration dict (analysis, pipeline and cache sections)

    Returns:
        AnalysisPipeline: Configured pipeline
    """
    analysis = config.get('analysis', {})
    pipeline = config.get('pipeline', {})

    window_size = analysis.get('window_size', 2048)
    hop_size = analysis.get('hop_size', 512)
    default_bpm = analysis.get('default_bpm', DEFAULT_BPM)

    envelope = EnvelopeTracker(window_size, hop_size)

    pitch_estimator = YinPitchEstimator(
        window_size=window_size,
        hop_size=hop_size,
        threshold=analysis.get('pitch_threshold', 0.1),
    )
    rhythm_detector = TempoBeatDetector(
        window_size=window_size,
        hop_size=hop_size,
        threshold_ratio=analysis.get('beat_threshold_ratio', 0.3),
        tempo_range=(analysis.get('min_bpm', 60.0), analysis.get('max_bpm', 200.0)),
        default_bpm=default_bpm,
        envelope=envelope,
    )
    timbre_extractor = MelCepstralExtractor(
        window_size=window_size,
        hop_size=hop_size,
        n_mfcc=analysis.get('n_mfcc', 13),
        n_mels=analysis.get('n_mels', 40),
        fmin=analysis.get('fmin', 20.0),
        fmax=analysis.get('fmax'),
    )
    loudness_extractor = RmsLoudnessExtractor(window_size, hop_size, envelope=envelope)

    return AnalysisPipeline(
        pitch_estimator=pitch_estimator,
        rhythm_detector=rhythm_detector,
        timbre_extractor=timbre_extractor,
        loudness_extractor=loudness_extractor,
        timeout=pipeline.get('timeout', DEFAULT_TIMEOUT),
        max_duration=pipeline.get('max_duration', MAX_DURATION),
        max_samples=pipeline.get('max_samples', MAX_SAMPLES),
        max_workers=pipeline.get('max_workers', 4),
        default_bpm=default_bpm,
        cache=create_cache_manager(config.get('cache', {})),
    )
