"""Discriminated request outcome: :class:`Success` or :class:`Failure`.

Every pipeline call returns one of the two.  Callers branch with
``isinstance`` (or ``match``) on the result, or call :meth:`unwrap` to get
the payload and let the carried :class:`~authflow.exceptions.RequestError`
propagate as an exception.

Example::

    result = await client.send(endpoint, Profile)
    if isinstance(result, Success):
        show(result.value)
    else:
        report(result.error.kind)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from authflow.exceptions import RequestError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """A decoded payload of the caller-requested type."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """A failed call, carrying the typed error that ended it."""

    error: RequestError

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    def unwrap(self):
        """Raise the carried error."""
        raise self.error

    def unwrap_or(self, default):
        return default


Result = Union[Success[T], Failure]
