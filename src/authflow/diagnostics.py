"""Diagnostics sink -- where every pipeline failure is reported.

The pipeline reports each failure exactly once, at the point it is
detected, as a ``(message, code)`` pair.  The sink is the only side effect
of a request besides the HTTP call itself (and the forced logout of the
``refresh_token`` path).

:class:`LoggingDiagnosticsSink` is the default: it writes each record to
the ``authflow.diagnostics`` logger and keeps per-code counters.  Anything
with a ``record(message, code)`` method can be injected instead, e.g. an
analytics adapter.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class DiagnosticCode:
    """Short machine codes attached to diagnostic records."""

    NO_NETWORK = "noNetwork"
    INVALID_URL = "invalidURL"
    NO_RESPONSE = "noResponse"
    DECODE_ERROR = "decodeError"
    UNAUTHORIZED = "unauthorized"
    UNEXPECTED_STATUS_CODE = "unexpectedStatusCode"
    UNKNOWN = "unknown"


@runtime_checkable
class DiagnosticsSink(Protocol):
    def record(self, message: str, code: str) -> None: ...


class LoggingDiagnosticsSink:
    """Log every record at WARNING level and count records per code."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self.counts: Counter[str] = Counter()

    def record(self, message: str, code: str) -> None:
        self.counts[code] += 1
        self._log.warning("%s (%s)", message, code, extra={"error_type": code})
