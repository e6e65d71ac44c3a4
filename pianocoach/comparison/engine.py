"""
Comparison engine for PianoCoach.

Grades a recording's AnalysisResult against the reference's. The engine
is synchronous and stateless: it only reads two finished results.
"""

import logging
import math
from typing import Any, Dict, Optional, Tuple

from pianocoach.comparison import scoring
from pianocoach.comparison.feedback import confidence_note, generate_feedback
from pianocoach.comparison.models import ComparisonReport, ScoreTier
from pianocoach.core.models import AnalysisResult
from pianocoach.utils.errors import ComparisonError, ConfigurationError, MissingReferenceError


def validate_weights(name: str, weights: Dict[str, float], required: Tuple[str, ...]) -> Dict[str, float]:
    """
    Check a weight set names exactly the required parts and sums to 1.

    Raises:
        ConfigurationError: On missing, extra, negative or unnormalised weights
    """
    if set(weights) != set(required):
        raise ConfigurationError(
            f"{name} must define weights for {', '.join(required)}, got {', '.join(sorted(weights))}",
            config_key=f"comparison.{name}",
        )
    if any(w < 0 for w in weights.values()):
        raise ConfigurationError(f"{name} must be non-negative", config_key=f"comparison.{name}")
    if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-6):
        raise ConfigurationError(
            f"{name} must sum to 1.0, got {sum(weights.values()):.4f}",
            config_key=f"comparison.{name}",
        )
    return dict(weights)


class ComparisonEngine:
    """
    Reference-vs-recording comparison.

    Weights, time tolerances and penalties are fixed at construction, so
    the same pair of results always produces the same report.
    """

    def __init__(
        self,
        weights: Optional[Dict[str, float]] = None,
        pitch_weights: Optional[Dict[str, float]] = None,
        rhythm_weights: Optional[Dict[str, float]] = None,
        timbre_weights: Optional[Dict[str, float]] = None,
        pitch_time_tolerance: float = 0.1,
        beat_time_tolerance: float = 0.1,
        timbre_time_tolerance: float = 0.2,
        stability_scale: float = 1000.0,
        tempo_penalty_per_bpm: float = 2.0,
    ):
        """
        Args:
            weights: Total-score weights for pitch, rhythm and timbre
            pitch_weights: accuracy / stability weights
            rhythm_weights: tempo / beat / pattern weights
            timbre_weights: mfcc / loudness / harmonic weights
            pitch_time_tolerance: Pitch matching window in seconds
            beat_time_tolerance: Beat matching window in seconds
            timbre_time_tolerance: Timbre and loudness matching window in seconds
            stability_scale: Multiplier on mean relative pitch variation
            tempo_penalty_per_bpm: Tempo points lost per BPM of difference

        Raises:
            ConfigurationError: If a weight set is invalid
        """
        self.weights = validate_weights(
            'weights', weights or scoring.TOTAL_WEIGHTS, ('pitch', 'rhythm', 'timbre')
        )
        self.pitch_weights = validate_weights(
            'pitch_weights', pitch_weights or scoring.PITCH_WEIGHTS, ('accuracy', 'stability')
        )
        self.rhythm_weights = validate_weights(
            'rhythm_weights', rhythm_weights or scoring.RHYTHM_WEIGHTS, ('tempo', 'beat', 'pattern')
        )
        self.timbre_weights = validate_weights(
            'timbre_weights', timbre_weights or scoring.TIMBRE_WEIGHTS, ('mfcc', 'loudness', 'harmonic')
        )

        for key, value in (
            ('pitch_time_tolerance', pitch_time_tolerance),
            ('beat_time_tolerance', beat_time_tolerance),
            ('timbre_time_tolerance', timbre_time_tolerance),
        ):
            if value < 0:
                raise ConfigurationError(f"{key} must be non-negative", config_key=f"comparison.{key}")

        self.pitch_time_tolerance = pitch_time_tolerance
        self.beat_time_tolerance = beat_time_tolerance
        self.timbre_time_tolerance = timbre_time_tolerance
        self.stability_scale = stability_scale
        self.tempo_penalty_per_bpm = tempo_penalty_per_bpm
        self.logger = logging.getLogger('comparison')

    def compare(
        self,
        reference: Optional[AnalysisResult],
        recording: Optional[AnalysisResult],
    ) -> ComparisonReport:
        """
        Compare a recording against its reference.

        Args:
            reference: Analysis of the reference performance
            recording: Analysis of the user's recording

        Returns:
            ComparisonReport: Scores, tier, feedback and confidence notes

        Raises:
            MissingReferenceError: If reference is None
            ComparisonError: If recording is None
        """
        if reference is None:
            raise MissingReferenceError()
        if recording is None:
            raise ComparisonError("No recording analysis was provided")

        pitch = scoring.score_pitch(
            reference.pitch_samples,
            recording.pitch_samples,
            weights=self.pitch_weights,
            time_tolerance=self.pitch_time_tolerance,
            stability_scale=self.stability_scale,
        )
        rhythm = scoring.score_rhythm(
            reference.estimated_tempo_bpm,
            reference.beat_events,
            recording.estimated_tempo_bpm,
            recording.beat_events,
            weights=self.rhythm_weights,
            time_tolerance=self.beat_time_tolerance,
            penalty_per_bpm=self.tempo_penalty_per_bpm,
        )
        timbre = scoring.score_timbre(
            reference.timbre_frames,
            recording.timbre_frames,
            reference.loudness_samples,
            recording.loudness_samples,
            reference.pitch_samples,
            recording.pitch_samples,
            weights=self.timbre_weights,
            time_tolerance=self.timbre_time_tolerance,
        )

        total = scoring.total_score(pitch.score, rhythm.score, timbre.score, self.weights)
        tier = ScoreTier.from_score(total)

        notes = tuple(
            confidence_note(role, degradation)
            for role, analysis in (('reference', reference), ('recording', recording))
            for degradation in analysis.degradations
        )

        self.logger.info(
            f"Comparison: total={total} ({tier.value}) pitch={pitch.score:.1f} "
            f"rhythm={rhythm.score:.1f} timbre={timbre.score:.1f}"
        )
        if notes:
            self.logger.warning(f"Low-confidence comparison: {len(notes)} degraded feature(s)")

        return ComparisonReport(
            total_score=total,
            tier=tier,
            pitch=pitch,
            rhythm=rhythm,
            timbre=timbre,
            feedback=generate_feedback(pitch, rhythm, timbre, tier),
            confidence_notes=notes,
        )


def create_comparison_engine(config: Optional[Dict[str, Any]] = None) -> ComparisonEngine:
    """
    Factory function to create ComparisonEngine from the comparison config section.
    """
    if config is None:
        config = {}

    return ComparisonEngine(
        weights=config.get('weights'),
        pitch_weights=config.get('pitch_weights'),
        rhythm_weights=config.get('rhythm_weights'),
        timbre_weights=config.get('timbre_weights'),
        pitch_time_tolerance=config.get('pitch_time_tolerance', 0.1),
        beat_time_tolerance=config.get('beat_time_tolerance', 0.1),
        timbre_time_tolerance=config.get('timbre_time_tolerance', 0.2),
        stability_scale=config.get('stability_scale', 1000.0),
        tempo_penalty_per_bpm=config.get('tempo_penalty_per_bpm', 2.0),
    )
