"""Tests for feedback selection and report models."""

import pytest

from pianocoach.comparison import feedback
from pianocoach.comparison.models import DimensionScore, PitchError, ScoreTier
from pianocoach.core.models import DegradedResult


def dimension(name, score):
    return DimensionScore(name=name, score=score, details=f"{name} details")


class TestScoreTier:
    @pytest.mark.parametrize("score, tier", [
        (100, ScoreTier.EXCELLENT),
        (90, ScoreTier.EXCELLENT),
        (89, ScoreTier.GOOD),
        (80, ScoreTier.GOOD),
        (79, ScoreTier.FAIR),
        (70, ScoreTier.FAIR),
        (69, ScoreTier.POOR),
        (60, ScoreTier.POOR),
        (59, ScoreTier.NEEDS_WORK),
        (0, ScoreTier.NEEDS_WORK),
    ])
    def test_boundaries(self, score, tier):
        assert ScoreTier.from_score(score) == tier


class TestGenerateFeedback:
    def test_mixed_scores(self):
        result = feedback.generate_feedback(
            dimension('pitch', 95.0), dimension('rhythm', 85.0), dimension('timbre', 50.0), ScoreTier.GOOD
        )
        assert result.overall == feedback.OVERALL_MESSAGES[ScoreTier.GOOD]
        assert result.improvements == (feedback.IMPROVEMENT_MESSAGES['timbre'],)
        assert result.strengths == (feedback.STRENGTH_MESSAGES['pitch'],)
        assert result.specific == {
            'pitch': "pitch details",
            'rhythm': "rhythm details",
            'timbre': "timbre details",
        }

    def test_middle_scores_use_default_messages(self):
        result = feedback.generate_feedback(
            dimension('pitch', 85.0), dimension('rhythm', 85.0), dimension('timbre', 85.0), ScoreTier.GOOD
        )
        assert result.improvements == (feedback.NO_IMPROVEMENTS,)
        assert result.strengths == (feedback.NO_STRENGTHS,)

    def test_thresholds_are_inclusive_for_strengths(self):
        result = feedback.generate_feedback(
            dimension('pitch', 90.0), dimension('rhythm', 80.0), dimension('timbre', 79.9), ScoreTier.GOOD
        )
        assert result.strengths == (feedback.STRENGTH_MESSAGES['pitch'],)
        assert result.improvements == (feedback.IMPROVEMENT_MESSAGES['timbre'],)

    def test_every_tier_has_a_message(self):
        assert set(feedback.OVERALL_MESSAGES) == set(ScoreTier)


class TestIssues:
    def test_pitch(self):
        assert feedback.pitch_issues(69.0, ()) == (feedback.PITCH_ACCURACY_ISSUE,)
        assert feedback.pitch_issues(100.0, (PitchError(0.0, "A4", "A#4", 1),)) == ()
        assert feedback.pitch_issues(100.0, (PitchError(0.0, "A4", "C5", 3),)) == (
            feedback.PITCH_LARGE_ERROR_ISSUE,
        )
        assert feedback.pitch_issues(100.0, (PitchError(0.0, "A4", "F#4", -3),)) == (
            feedback.PITCH_LARGE_ERROR_ISSUE,
        )

    def test_rhythm(self):
        assert feedback.rhythm_issues(100.0, 100.0, 69.0) == (feedback.PATTERN_ISSUE,)
        assert feedback.rhythm_issues(70.0, 70.0, 70.0) == ()

    def test_timbre(self):
        assert feedback.timbre_issues(50.0, 90.0) == (feedback.MFCC_ISSUE,)
        assert feedback.timbre_issues(50.0, 50.0) == (feedback.MFCC_ISSUE, feedback.LOUDNESS_ISSUE)

    def test_pitch_details(self):
        errors = (PitchError(0.0, "A4", "B4", 2), PitchError(0.1, "A4", "G4", -2))
        assert feedback.pitch_details(75.4, 98.6, errors) == (
            "Pitch accuracy: 75%, stability: 99%. Average pitch error: 2.0 semitones"
        )

    def test_confidence_note(self):
        note = feedback.confidence_note(
            'recording', DegradedResult('pitch', 'pitch extraction failed', 'empty pitch series')
        )
        assert note == "Recording pitch analysis used a fallback (empty pitch series): pitch extraction failed"


class TestModels:
    def test_dimension_score_range(self):
        with pytest.raises(ValueError):
            DimensionScore(name='pitch', score=100.5)

    def test_pitch_error_severity(self):
        assert PitchError(0.0, "A4", "F4", -4).severity == 4

    def test_dimension_to_dict(self):
        score = DimensionScore(
            name='pitch',
            score=50.0,
            pitch_errors=(PitchError(0.0, "A4", "A5", 12),),
        )
        data = score.to_dict()
        assert data['pitch_errors'][0]['actual'] == "A5"
        assert data['insufficient_data'] is False
