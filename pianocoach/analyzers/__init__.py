"""
Feature extractors for the different aspects of a performance.
"""

from pianocoach.analyzers.pitch.yin_pitch import YinPitchEstimator
from pianocoach.analyzers.rhythmic.envelope import EnvelopeTracker
from pianocoach.analyzers.rhythmic.tempo_beat import TempoBeatDetector, RhythmEstimate
from pianocoach.analyzers.timbre.mel_cepstral import MelCepstralExtractor
from pianocoach.analyzers.loudness.rms_loudness import RmsLoudnessExtractor

__all__ = [
    "YinPitchEstimator",
    "EnvelopeTracker",
    "TempoBeatDetector",
    "RhythmEstimate",
    "MelCepstralExtractor",
    "RmsLoudnessExtractor",
]
