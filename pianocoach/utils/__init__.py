"""
Utility modules for configuration, logging, error handling and numerics.
"""

from pianocoach.utils.errors import (
    AudioAnalysisError,
    InvalidInputError,
    AnalysisTimeoutError,
    AnalysisError,
    FeatureExtractionError,
    ExtractionCancelledError,
    ComparisonError,
    MissingReferenceError,
    ConfigurationError,
    AudioLoadError,
    UnsupportedFormatError,
    FileTooLargeError,
)
from pianocoach.utils.logging import get_logger, setup_logging, JSONFormatter
from pianocoach.utils.config import ConfigManager, load_config

__all__ = [
    "AudioAnalysisError",
    "InvalidInputError",
    "AnalysisTimeoutError",
    "AnalysisError",
    "FeatureExtractionError",
    "ExtractionCancelledError",
    "ComparisonError",
    "MissingReferenceError",
    "ConfigurationError",
    "AudioLoadError",
    "UnsupportedFormatError",
    "FileTooLargeError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
]
