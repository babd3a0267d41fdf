"""Response classifier -- maps a status code and body to exactly one outcome.

* ``2xx`` -- decode the body into the caller's model; a decode failure is
  reported and returned as :class:`~authflow.exceptions.DecodeError`.
* ``401`` -- returned as :class:`~authflow.exceptions.UnauthorizedError`
  tagged with the endpoint's auth mode.  Not reported here: the retry
  orchestrator decides whether it is recoverable and reports if not.
* anything else -- decoded as a ``{code, message}`` envelope, then as a
  ``{message}`` envelope, and failing both as an unexpected status code.

Decoding goes through :class:`pydantic.TypeAdapter`, so *response_model*
can be a ``BaseModel`` subclass, a dataclass, a ``TypedDict`` or a plain
type such as ``dict[str, int]``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from authflow.diagnostics import DiagnosticCode, DiagnosticsSink
from authflow.exceptions import (
    CustomCodeMessageError,
    CustomError,
    DecodeError,
    UnauthorizedError,
    UnexpectedStatusCodeError,
)
from authflow.models import AuthMode, ErrorEnvelope, MessageEnvelope
from authflow.result import Failure, Result, Success

T = TypeVar("T")

UNAUTHORIZED = 401


@lru_cache(maxsize=256)
def _adapter(model: Any) -> TypeAdapter[Any]:
    return TypeAdapter(model)


def _get_adapter(model: Any) -> TypeAdapter[Any]:
    try:
        return _adapter(model)
    except TypeError:
        # unhashable generic alias
        return TypeAdapter(model)


def describe_validation_error(exc: ValidationError) -> str:
    """Turn the first pydantic error into a one-line decode diagnostic."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    kind = first.get("type", "")
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    detail = first.get("msg", "")

    if kind == "json_invalid":
        return f"Data corrupted: {detail}"
    if kind == "missing":
        return f"Key '{location}' not found: {detail}"
    if first.get("input", object()) is None:
        return f"Value not found at '{location}': {detail}"
    return f"Type mismatch at '{location}': {detail}"


def decode_payload(content: bytes, response_model: type[T]) -> T:
    """Decode JSON *content* into *response_model*.

    Raises:
        ValidationError: If the body is not valid JSON or does not match.
    """
    return _get_adapter(response_model).validate_json(content or b"null")


def _decode_envelope(content: bytes, model: type[T]) -> Optional[T]:
    try:
        return model.model_validate_json(content)  # type: ignore[attr-defined]
    except ValidationError:
        return None


def classify_response(
    status_code: int,
    content: bytes,
    response_model: type[T],
    auth_mode: AuthMode,
    sink: DiagnosticsSink,
) -> Result[T]:
    """Classify one HTTP response.

    Args:
        status_code: HTTP status of the response.
        content: Raw response body.
        response_model: Type the 2xx body is decoded into.
        auth_mode: Auth mode of the endpoint, attached to 401 failures.
        sink: Receives a ``(message, code)`` record for every failure
            other than 401.

    Returns:
        ``Success(payload)`` or ``Failure(error)``.
    """
    if 200 <= status_code <= 299:
        try:
            return Success(decode_payload(content, response_model))
        except ValidationError as exc:
            message = describe_validation_error(exc)
            sink.record(message, DiagnosticCode.DECODE_ERROR)
            return Failure(DecodeError(message))

    if status_code == UNAUTHORIZED:
        return Failure(UnauthorizedError(auth_mode=auth_mode))

    envelope = _decode_envelope(content, ErrorEnvelope)
    if envelope is not None:
        sink.record(envelope.message, envelope.code)
        return Failure(CustomCodeMessageError(envelope.code, envelope.message))

    fallback = _decode_envelope(content, MessageEnvelope)
    if fallback is not None:
        message = fallback.message or ""
        sink.record(message, DiagnosticCode.UNEXPECTED_STATUS_CODE)
        return Failure(CustomError(message))

    sink.record("Unexpected status code", DiagnosticCode.UNEXPECTED_STATUS_CODE)
    return Failure(UnexpectedStatusCodeError(status_code))
