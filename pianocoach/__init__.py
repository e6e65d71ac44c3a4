"""
PianoCoach

Piano performance analysis and comparison: extracts pitch, rhythm,
timbre and loudness features from a reference performance and a user
recording, then grades the recording against the reference.
"""

__version__ = "1.0.0"
__author__ = "PianoCoach Team"
