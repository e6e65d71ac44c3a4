"""
Per-dimension scoring for PianoCoach.

Pure functions from two AnalysisResults (or their feature series) to
DimensionScores. Every returned score is finite and within [0, 100].
"""

import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from pianocoach.analyzers.musical.key import pitch_class_histogram
from pianocoach.comparison import feedback
from pianocoach.comparison.models import DimensionScore, PitchError
from pianocoach.core.models import BeatEvent, LoudnessSample, PitchSample, TimbreFrame
from pianocoach.utils.notes import SEMITONE_RATIO, semitone_difference
from pianocoach.utils.stats import clamp, correlation, correlation_to_score, match_by_time, zscore

# Relative deviation still counted as the right note (about 5.95%)
PITCH_TOLERANCE_RATIO = SEMITONE_RATIO - 1

PITCH_WEIGHTS = {'accuracy': 0.7, 'stability': 0.3}
RHYTHM_WEIGHTS = {'tempo': 0.4, 'beat': 0.4, 'pattern': 0.2}
TIMBRE_WEIGHTS = {'mfcc': 0.5, 'loudness': 0.3, 'harmonic': 0.2}
TOTAL_WEIGHTS = {'pitch': 0.4, 'rhythm': 0.35, 'timbre': 0.25}


def weighted(metrics: Dict[str, float], weights: Dict[str, float]) -> float:
    """Weighted sum of metrics, clamped to [0, 100]."""
    return clamp(sum(metrics[name] * weight for name, weight in weights.items()), 0.0, 100.0)


def insufficient(name: str, metrics: Optional[Dict[str, float]] = None) -> DimensionScore:
    message = feedback.INSUFFICIENT_DATA[name]
    return DimensionScore(
        name=name,
        score=0.0,
        metrics=metrics or {},
        issues=(message,),
        details=message,
        insufficient_data=True,
    )


# Pitch

def is_correct_pitch(reference: float, actual: float) -> bool:
    """True if actual is within one semitone's ratio of reference."""
    return abs(actual - reference) / reference <= PITCH_TOLERANCE_RATIO


def pitch_accuracy(pairs: Sequence[Tuple[PitchSample, PitchSample]]) -> float:
    """Share of matched pairs on the right note, in percent (0 without pairs)."""
    if not pairs:
        return 0.0
    correct = sum(1 for ref, rec in pairs if is_correct_pitch(ref.frequency, rec.frequency))
    return correct / len(pairs) * 100.0


def pitch_stability(samples: Sequence[PitchSample], scale: float = 1000.0) -> float:
    """
    100 minus the scaled mean relative change between consecutive pitches.

    Fewer than two pitches give 0.
    """
    if len(samples) < 2:
        return 0.0
    frequencies = np.array([s.frequency for s in samples], dtype=np.float64)
    variation = np.abs(np.diff(frequencies)) / frequencies[:-1]
    return clamp(100.0 - float(np.mean(variation)) * scale, 0.0, 100.0)


def find_pitch_errors(pairs: Sequence[Tuple[PitchSample, PitchSample]]) -> Tuple[PitchError, ...]:
    """Matched pairs whose note labels differ."""
    return tuple(
        PitchError(
            time=ref.time,
            expected=ref.note,
            actual=rec.note,
            semitone_difference=semitone_difference(ref.frequency, rec.frequency),
        )
        for ref, rec in pairs
        if ref.note != rec.note
    )


def score_pitch(
    reference: Sequence[PitchSample],
    recording: Sequence[PitchSample],
    weights: Dict[str, float] = PITCH_WEIGHTS,
    time_tolerance: float = 0.1,
    stability_scale: float = 1000.0,
) -> DimensionScore:
    """Pitch accuracy over matched samples plus recording stability."""
    pairs = match_by_time(
        reference, recording, lambda p: p.time, lambda p: p.time, time_tolerance
    )
    if not pairs:
        return insufficient('pitch', {'matched': 0})

    accuracy = pitch_accuracy(pairs)
    stability = pitch_stability(recording, stability_scale)
    errors = find_pitch_errors(pairs)
    metrics = {
        'accuracy': accuracy,
        'stability': stability,
        'matched': len(pairs),
        'errors': len(errors),
    }

    return DimensionScore(
        name='pitch',
        score=weighted({'accuracy': accuracy, 'stability': stability}, weights),
        metrics=metrics,
        issues=feedback.pitch_issues(accuracy, errors),
        details=feedback.pitch_details(accuracy, stability, errors),
        pitch_errors=errors,
    )


# Rhythm

def tempo_accuracy(reference_bpm: float, recording_bpm: float, penalty_per_bpm: float = 2.0) -> float:
    """100 minus penalty_per_bpm for every BPM of difference, floored at 0."""
    return clamp(100.0 - penalty_per_bpm * abs(recording_bpm - reference_bpm), 0.0, 100.0)


def beat_accuracy(
    reference: Sequence[BeatEvent],
    recording: Sequence[BeatEvent],
    time_tolerance: float = 0.1,
) -> float:
    """Percent of reference beats with a recording beat within the tolerance."""
    if not reference:
        return 0.0
    pairs = match_by_time(
        reference, recording, lambda b: b.beat_time, lambda b: b.beat_time, time_tolerance
    )
    return len(pairs) / len(reference) * 100.0


def beat_intervals(beats: Sequence[BeatEvent]) -> List[float]:
    return [b.interval_from_previous for b in beats if b.interval_from_previous is not None]


def pattern_similarity(reference: Sequence[BeatEvent], recording: Sequence[BeatEvent]) -> float:
    """
    Correlation of z-scored beat-interval sequences mapped to [0, 100].

    The longer sequence is truncated to the shorter one's length; fewer
    than two intervals on either side give 0.
    """
    ref_intervals = beat_intervals(reference)
    rec_intervals = beat_intervals(recording)
    if len(ref_intervals) < 2 or len(rec_intervals) < 2:
        return 0.0

    length = min(len(ref_intervals), len(rec_intervals))
    r = correlation(zscore(ref_intervals)[:length], zscore(rec_intervals)[:length])
    return correlation_to_score(r)


def score_rhythm(
    reference_bpm: float,
    reference_beats: Sequence[BeatEvent],
    recording_bpm: float,
    recording_beats: Sequence[BeatEvent],
    weights: Dict[str, float] = RHYTHM_WEIGHTS,
    time_tolerance: float = 0.1,
    penalty_per_bpm: float = 2.0,
) -> DimensionScore:
    """Tempo agreement, beat timing and interval pattern."""
    if not reference_beats or not recording_beats:
        return insufficient('rhythm', {
            'reference_beats': len(reference_beats),
            'recording_beats': len(recording_beats),
        })

    tempo = tempo_accuracy(reference_bpm, recording_bpm, penalty_per_bpm)
    beat = beat_accuracy(reference_beats, recording_beats, time_tolerance)
    pattern = pattern_similarity(reference_beats, recording_beats)

    return DimensionScore(
        name='rhythm',
        score=weighted({'tempo': tempo, 'beat': beat, 'pattern': pattern}, weights),
        metrics={
            'tempo_accuracy': tempo,
            'beat_accuracy': beat,
            'pattern_similarity': pattern,
        },
        issues=feedback.rhythm_issues(tempo, beat, pattern),
        details=feedback.rhythm_details(tempo, beat, pattern),
    )


# Timbre

def descriptor_similarity(pairs: Sequence[Tuple[TimbreFrame, TimbreFrame]]) -> float:
    """Mean (r + 1) * 50 over matched descriptor pairs."""
    if not pairs:
        return 0.0
    scores = [correlation_to_score(correlation(ref.descriptor, rec.descriptor)) for ref, rec in pairs]
    return float(np.mean(scores))


def loudness_similarity(
    reference: Sequence[LoudnessSample],
    recording: Sequence[LoudnessSample],
    time_tolerance: float = 0.2,
) -> float:
    """Correlation of time-aligned RMS levels mapped to [0, 100]; 0 without pairs."""
    pairs = match_by_time(
        reference, recording, lambda s: s.time, lambda s: s.time, time_tolerance
    )
    if not pairs:
        return 0.0
    r = correlation([ref.rms for ref, _ in pairs], [rec.rms for _, rec in pairs])
    return correlation_to_score(r)


def harmonic_similarity(reference: Sequence[PitchSample], recording: Sequence[PitchSample]) -> float:
    """
    Correlation of the two pitch-class histograms mapped to [0, 100].

    0 when either side has no pitch samples.
    """
    if not reference or not recording:
        return 0.0
    r = correlation(pitch_class_histogram(reference), pitch_class_histogram(recording))
    return correlation_to_score(r)


def score_timbre(
    reference_frames: Sequence[TimbreFrame],
    recording_frames: Sequence[TimbreFrame],
    reference_loudness: Sequence[LoudnessSample] = (),
    recording_loudness: Sequence[LoudnessSample] = (),
    reference_pitch: Sequence[PitchSample] = (),
    recording_pitch: Sequence[PitchSample] = (),
    weights: Dict[str, float] = TIMBRE_WEIGHTS,
    time_tolerance: float = 0.2,
) -> DimensionScore:
    """Descriptor similarity, loudness contour and harmonic content."""
    pairs = match_by_time(
        reference_frames, recording_frames, lambda f: f.time, lambda f: f.time, time_tolerance
    )
    if not pairs:
        return insufficient('timbre', {'matched': 0})

    mfcc = descriptor_similarity(pairs)
    loudness = loudness_similarity(reference_loudness, recording_loudness, time_tolerance)
    harmonic = harmonic_similarity(reference_pitch, recording_pitch)

    return DimensionScore(
        name='timbre',
        score=weighted({'mfcc': mfcc, 'loudness': loudness, 'harmonic': harmonic}, weights),
        metrics={
            'mfcc_similarity': mfcc,
            'loudness_similarity': loudness,
            'harmonic_similarity': harmonic,
            'matched': len(pairs),
        },
        issues=feedback.timbre_issues(mfcc, loudness),
        details=feedback.timbre_details(mfcc, loudness, harmonic),
    )


def total_score(
    pitch: float,
    rhythm: float,
    timbre: float,
    weights: Dict[str, float] = TOTAL_WEIGHTS,
) -> int:
    """Weighted total, rounded half up and clamped to [0, 100]."""
    value = weighted({'pitch': pitch, 'rhythm': rhythm, 'timbre': timbre}, weights)
    return int(clamp(math.floor(value + 0.5), 0, 100))
