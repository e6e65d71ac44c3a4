"""
Feedback message sets for PianoCoach.

All user-facing text of a comparison report lives here. Selection is a
pure function of the dimension scores and total score.
"""

from typing import Dict, Sequence, Tuple

from pianocoach.comparison.models import DimensionScore, Feedback, PitchError, ScoreTier
from pianocoach.core.models import DegradedResult

IMPROVEMENT_THRESHOLD = 80.0
STRENGTH_THRESHOLD = 90.0
ISSUE_THRESHOLD = 70.0
LARGE_PITCH_ERROR = 2  # semitones

OVERALL_MESSAGES: Dict[ScoreTier, str] = {
    ScoreTier.EXCELLENT: "Excellent performance! Pitch, rhythm and tone were all very accurate.",
    ScoreTier.GOOD: "Good performance. A few things to polish, but it was played well overall.",
    ScoreTier.FAIR: "A fair performance. More practice will tighten it up.",
    ScoreTier.POOR: "The basics need more practice. Try playing slowly and accurately.",
    ScoreTier.NEEDS_WORK: "This piece needs a lot more practice. Focus on the fundamentals first.",
}

IMPROVEMENT_MESSAGES: Dict[str, str] = {
    'pitch': "Practise scales to improve note accuracy.",
    'rhythm': "Practise with a metronome to keep the rhythm steady.",
    'timbre': "Work on touch and pedalling to shape your tone.",
}
NO_IMPROVEMENTS = "No particular areas for improvement."

STRENGTH_MESSAGES: Dict[str, str] = {
    'pitch': "Your notes were very accurate.",
    'rhythm': "Your sense of rhythm is excellent.",
    'timbre': "Your tone was beautifully expressed.",
}
NO_STRENGTHS = "You are improving steadily with practice."

INSUFFICIENT_DATA = {
    'pitch': "Insufficient data: no pitch samples could be matched.",
    'rhythm': "Insufficient data: not enough beats were detected.",
    'timbre': "Insufficient data: no timbre frames could be matched.",
}

PITCH_ACCURACY_ISSUE = "Many notes were out of tune."
PITCH_LARGE_ERROR_ISSUE = "Several notes were off by more than two semitones."
TEMPO_ISSUE = "The tempo differed a lot from the reference."
BEAT_ISSUE = "Beat timing was inaccurate."
PATTERN_ISSUE = "The rhythm pattern differed a lot from the reference."
MFCC_ISSUE = "The tone colour differed a lot from the reference."
LOUDNESS_ISSUE = "The dynamics differed from the reference."


def overall_message(tier: ScoreTier) -> str:
    return OVERALL_MESSAGES[tier]


def pitch_issues(accuracy: float, errors: Sequence[PitchError]) -> Tuple[str, ...]:
    issues = []
    if accuracy < ISSUE_THRESHOLD:
        issues.append(PITCH_ACCURACY_ISSUE)
    if any(e.severity > LARGE_PITCH_ERROR for e in errors):
        issues.append(PITCH_LARGE_ERROR_ISSUE)
    return tuple(issues)


def rhythm_issues(tempo: float, beat: float, pattern: float) -> Tuple[str, ...]:
    issues = []
    if tempo < ISSUE_THRESHOLD:
        issues.append(TEMPO_ISSUE)
    if beat < ISSUE_THRESHOLD:
        issues.append(BEAT_ISSUE)
    if pattern < ISSUE_THRESHOLD:
        issues.append(PATTERN_ISSUE)
    return tuple(issues)


def timbre_issues(mfcc: float, loudness: float) -> Tuple[str, ...]:
    issues = []
    if mfcc < ISSUE_THRESHOLD:
        issues.append(MFCC_ISSUE)
    if loudness < ISSUE_THRESHOLD:
        issues.append(LOUDNESS_ISSUE)
    return tuple(issues)


def pitch_details(accuracy: float, stability: float, errors: Sequence[PitchError]) -> str:
    details = f"Pitch accuracy: {round(accuracy)}%, stability: {round(stability)}%"
    if errors:
        mean_error = sum(e.severity for e in errors) / len(errors)
        details += f". Average pitch error: {mean_error:.1f} semitones"
    return details


def rhythm_details(tempo: float, beat: float, pattern: float) -> str:
    return (
        f"Tempo accuracy: {round(tempo)}%, beat accuracy: {round(beat)}%, "
        f"pattern similarity: {round(pattern)}%"
    )


def timbre_details(mfcc: float, loudness: float, harmonic: float) -> str:
    return (
        f"Timbre similarity: {round(mfcc)}%, loudness similarity: {round(loudness)}%, "
        f"harmonic similarity: {round(harmonic)}%"
    )


def confidence_note(role: str, degradation: DegradedResult) -> str:
    """One line explaining why a score may be less reliable."""
    return (
        f"{role.capitalize()} {degradation.feature} analysis used a fallback "
        f"({degradation.fallback}): {degradation.reason}"
    )


def generate_feedback(
    pitch: DimensionScore,
    rhythm: DimensionScore,
    timbre: DimensionScore,
    tier: ScoreTier,
) -> Feedback:
    """Select feedback for the three dimension scores and overall tier."""
    dimensions = (pitch, rhythm, timbre)

    improvements = tuple(
        IMPROVEMENT_MESSAGES[d.name] for d in dimensions if d.score < IMPROVEMENT_THRESHOLD
    )
    strengths = tuple(
        STRENGTH_MESSAGES[d.name] for d in dimensions if d.score >= STRENGTH_THRESHOLD
    )

    return Feedback(
        overall=overall_message(tier),
        improvements=improvements or (NO_IMPROVEMENTS,),
        strengths=strengths or (NO_STRENGTHS,),
        specific={d.name: d.details for d in dimensions},
    )
