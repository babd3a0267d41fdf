"""Tests for results, the error taxonomy and the diagnostics sink."""

from __future__ import annotations

import logging

import pytest

from authflow.diagnostics import DiagnosticsSink, LoggingDiagnosticsSink
from authflow.exceptions import (
    CustomCodeMessageError,
    CustomError,
    DecodeError,
    NoNetworkError,
    RequestError,
    UnauthorizedError,
    UnexpectedStatusCodeError,
)
from authflow.exit_codes import EXIT_AUTH_FAILURE, EXIT_CONNECTION_ERROR
from authflow.models import AuthMode
from authflow.result import Failure, Success


class TestResult:
    def test_success(self) -> None:
        result = Success(3)
        assert result.is_success and not result.is_failure
        assert result.unwrap() == 3
        assert result.unwrap_or(0) == 3

    def test_failure(self) -> None:
        result = Failure(NoNetworkError())
        assert result.is_failure and not result.is_success
        assert result.unwrap_or(0) == 0
        with pytest.raises(NoNetworkError):
            result.unwrap()


class TestErrorEquality:
    def test_same_kind_equal(self) -> None:
        assert NoNetworkError() == NoNetworkError()
        assert DecodeError("a") == DecodeError("b")

    def test_different_kinds_differ(self) -> None:
        assert NoNetworkError() != DecodeError()

    def test_payload_compared(self) -> None:
        assert CustomError("x") == CustomError("x")
        assert CustomError("x") != CustomError("y")
        assert CustomCodeMessageError("E1", "m") != CustomCodeMessageError("E2", "m")

    def test_auth_mode_ignored(self) -> None:
        assert UnauthorizedError(auth_mode=AuthMode.APP_LEVEL) == UnauthorizedError()

    def test_status_code_ignored(self) -> None:
        assert UnexpectedStatusCodeError(418) == UnexpectedStatusCodeError(500)

    def test_hashable(self) -> None:
        assert len({CustomError("x"), CustomError("x"), NoNetworkError()}) == 2


class TestErrorDetails:
    def test_kinds(self) -> None:
        assert NoNetworkError().kind == "noNetwork"
        assert CustomCodeMessageError("E1", "m").kind == "customCodeMessageError"

    def test_exit_codes(self) -> None:
        assert NoNetworkError().exit_code == EXIT_CONNECTION_ERROR
        assert UnauthorizedError().exit_code == EXIT_AUTH_FAILURE

    def test_code_message_str(self) -> None:
        assert str(CustomCodeMessageError("E1", "teapot")) == "E1: teapot"

    def test_repr(self) -> None:
        assert repr(CustomError("x")) == "CustomError('x')"

    def test_all_are_request_errors(self) -> None:
        assert isinstance(UnexpectedStatusCodeError(), RequestError)


class TestLoggingDiagnosticsSink:
    def test_counts_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LoggingDiagnosticsSink()
        with caplog.at_level(logging.WARNING, logger="authflow.diagnostics"):
            sink.record("No Network available", "noNetwork")
            sink.record("No Network available", "noNetwork")
        assert sink.counts["noNetwork"] == 2
        assert caplog.records[0].getMessage() == "No Network available (noNetwork)"
        assert caplog.records[0].error_type == "noNetwork"

    def test_protocol(self, sink) -> None:
        assert isinstance(LoggingDiagnosticsSink(), DiagnosticsSink)
        assert isinstance(sink, DiagnosticsSink)
