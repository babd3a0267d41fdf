"""Exception hierarchy for authflow.

All exceptions inherit from :class:`AuthflowError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`authflow.exit_codes`.

The request pipeline never *raises* the :class:`RequestError` family across
its boundary: instances are carried inside a
:class:`~authflow.result.Failure` so callers branch on the result kind.
:meth:`~authflow.result.Failure.unwrap` re-raises them for callers that
prefer exceptions.

Subclass hierarchy::

    AuthflowError (exit 1)
    +-- ConfigError                 (exit 1)
    +-- RequestError                (exit 1)
        +-- NoNetworkError          (exit 6)
        +-- InvalidURLError         (exit 2)
        +-- NoResponseError         (exit 6)
        +-- DecodeError             (exit 7)
        +-- UnauthorizedError       (exit 3)
        +-- CustomError             (exit 5)
        +-- CustomCodeMessageError  (exit 5)
        +-- UnexpectedStatusCodeError (exit 5)
        +-- UnknownError            (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from authflow.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
)


class AuthflowError(Exception):
    """Base exception for all authflow errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(AuthflowError):
    """Raised for configuration problems (unreadable or invalid config files)."""

    exit_code = EXIT_GENERIC_FAILURE


class RequestError(AuthflowError):
    """Base class of the request failure taxonomy.

    Every subclass sets ``kind``, the stable identifier of the failure
    category (``"noNetwork"``, ``"decode"``, ...).  Two errors are equal when
    they share a class and the same payload (for example the message of a
    :class:`CustomError`), which lets tests compare whole results.
    """

    kind: str = "unknown"
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, exit_code: int | None = None):
        super().__init__(message or self.default_message, exit_code=exit_code)

    @property
    def message(self) -> str:
        return str(self)

    def _payload(self) -> tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RequestError):
            return NotImplemented
        return type(self) is type(other) and self._payload() == other._payload()

    def __hash__(self) -> int:
        return hash((type(self), self._payload()))

    def __repr__(self) -> str:
        payload = ", ".join(repr(p) for p in self._payload())
        return f"{type(self).__name__}({payload})"


class NoNetworkError(RequestError):
    """The connectivity gate reported the network as unreachable."""

    kind = "noNetwork"
    default_message = "No Network available"
    exit_code = EXIT_CONNECTION_ERROR


class InvalidURLError(RequestError):
    """The endpoint descriptor does not compose into a valid URL."""

    kind = "invalidURL"
    default_message = "invalidURL"
    exit_code = EXIT_INVALID_USAGE


class NoResponseError(RequestError):
    """The transport finished without producing an HTTP response."""

    kind = "noResponse"
    default_message = "No response"
    exit_code = EXIT_CONNECTION_ERROR


class DecodeError(RequestError):
    """A 2xx body could not be decoded into the requested model."""

    kind = "decode"
    default_message = "Failed to decode response"
    exit_code = EXIT_DECODE_ERROR


class UnauthorizedError(RequestError):
    """The server answered 401 and the session could not be recovered.

    Args:
        auth_mode: The endpoint's auth mode when the 401 was observed.
            Informational only; it does not take part in equality.
    """

    kind = "unauthorized"
    default_message = "Session expired"
    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: Optional[str] = None, auth_mode: Any = None):
        super().__init__(message)
        self.auth_mode = auth_mode


class CustomError(RequestError):
    """Error status with a ``{message}`` envelope."""

    kind = "customError"
    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.error_message = message

    def _payload(self) -> tuple[Any, ...]:
        return (self.error_message,)


class CustomCodeMessageError(RequestError):
    """Error status with a ``{code, message}`` envelope."""

    kind = "customCodeMessageError"
    exit_code = EXIT_SERVER_ERROR

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.error_message = message

    def _payload(self) -> tuple[Any, ...]:
        return (self.code, self.error_message)


class UnexpectedStatusCodeError(RequestError):
    """Error status whose body matches neither error envelope.

    ``status_code`` is kept for display and does not take part in equality.
    """

    kind = "unexpectedStatusCode"
    default_message = "Unexpected status code"
    exit_code = EXIT_SERVER_ERROR

    def __init__(self, status_code: Optional[int] = None):
        message = self.default_message
        if status_code is not None:
            message = f"{message}: {status_code}"
        super().__init__(message)
        self.status_code = status_code


class UnknownError(RequestError):
    """The transport or token service call raised (timeout, connection reset, ...)."""

    kind = "unknown"
    default_message = "Unknown error"
    exit_code = EXIT_GENERIC_FAILURE
