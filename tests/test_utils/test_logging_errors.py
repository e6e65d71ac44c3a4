"""Tests for structured logging and the error hierarchy."""

import json
import logging

from pianocoach.utils.errors import (
    AnalysisError,
    AnalysisTimeoutError,
    AudioAnalysisError,
    ComparisonError,
    FeatureExtractionError,
    InvalidInputError,
    MissingReferenceError,
)
from pianocoach.utils.logging import JSONFormatter, create_logger_with_context


class TestJSONFormatter:
    def test_context_is_lifted(self):
        record = logging.LogRecord("pipeline", logging.INFO, __file__, 1, "hello", None, None)
        record.run_id = "abc123"
        record.role = "reference"
        payload = json.loads(JSONFormatter().format(record))
        assert payload["message"] == "hello"
        assert payload["context"] == {"run_id": "abc123", "role": "reference"}

    def test_no_context_key_without_context(self):
        record = logging.LogRecord("pipeline", logging.INFO, __file__, 1, "plain", None, None)
        assert "context" not in json.loads(JSONFormatter().format(record))


def test_logger_adapter_attaches_context(caplog):
    logger = create_logger_with_context("pipeline", {"run_id": "r1", "role": "recording"})
    with caplog.at_level(logging.INFO, logger="pipeline"):
        logger.info("Extracting")
    assert caplog.records[-1].run_id == "r1"
    assert caplog.records[-1].role == "recording"


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(FeatureExtractionError, AnalysisError)
        assert issubclass(MissingReferenceError, ComparisonError)
        for error in (InvalidInputError, AnalysisTimeoutError, AnalysisError, ComparisonError):
            assert issubclass(error, AudioAnalysisError)

    def test_timeout_records_pending(self):
        error = AnalysisTimeoutError("too slow", timeout=1.5, pending=["timbre"])
        assert error.pending == ["timbre"]
        assert "timbre" in str(error)

    def test_invalid_input_reason(self):
        error = InvalidInputError("Sample buffer is empty", reason="empty")
        assert error.reason == "empty"

    def test_missing_reference_default_message(self):
        assert "reference" in str(MissingReferenceError())
