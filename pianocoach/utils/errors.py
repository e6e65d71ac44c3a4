"""
Custom exceptions for the PianoCoach performance analysis engine.

This module defines a hierarchy of exceptions for handling the error
conditions of analysis, comparison, configuration and audio loading.
"""

from typing import Any, Optional, Sequence


class AudioAnalysisError(Exception):
    """Base exception for all audio analysis errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class InvalidInputError(AudioAnalysisError):
    """Raised when a sample buffer is empty, oversized or malformed."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message, details={"reason": reason})
        self.reason = reason


class AnalysisTimeoutError(AudioAnalysisError):
    """Raised when the pipeline exceeds its wall-clock deadline."""

    def __init__(
        self,
        message: str,
        timeout: Optional[float] = None,
        pending: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.timeout = timeout
        self.pending = list(pending or [])
        self.details = {"timeout": timeout, "pending": self.pending}


class AnalysisError(AudioAnalysisError):
    """Raised when a feature sub-task fails."""

    def __init__(
        self,
        message: str,
        analyzer_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.analyzer_name = analyzer_name
        self.original_error = original_error
        self.details = {
            "analyzer_name": analyzer_name,
            "original_error": str(original_error) if original_error else None,
        }


class FeatureExtractionError(AnalysisError):
    """Raised when an extractor produces unusable numbers (NaN, inf, empty)."""

    def __init__(self, message: str, feature_name: Optional[str] = None):
        super().__init__(message, analyzer_name=feature_name)
        self.feature_name = feature_name
        self.details["feature_name"] = feature_name


class ExtractionCancelledError(AudioAnalysisError):
    """Raised inside an extractor when the run's cancel event is set."""

    def __init__(self, feature_name: str):
        super().__init__(
            f"{feature_name} extraction cancelled",
            details={"feature_name": feature_name},
        )
        self.feature_name = feature_name


class ComparisonError(AudioAnalysisError):
    """Raised when a comparison cannot be performed."""


class MissingReferenceError(ComparisonError):
    """Raised when a comparison is requested without a reference analysis."""

    def __init__(self, message: str = "No reference analysis was provided"):
        super().__init__(message)


class ConfigurationError(AudioAnalysisError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class AudioLoadError(AudioAnalysisError):
    """Raised when audio file cannot be loaded."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class UnsupportedFormatError(AudioLoadError):
    """Raised when audio format is not supported."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class FileTooLargeError(AudioLoadError):
    """Raised when audio file exceeds size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}
