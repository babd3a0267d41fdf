"""Credential store -- the key-value home of the session's tokens.

The store holds an application-level token, a user-level token, the
login flag and the individual identifier used to issue user tokens.  The
retry orchestrator reads it to pick a refresh path and writes every token
a refresh produces; a forced logout clears it.

Two implementations ship:

* :class:`MemoryCredentialStore` -- process-local, used by tests and
  embedders that keep secrets elsewhere.
* :class:`FileCredentialStore` -- ``~/.local/share/authflow/credentials.json``
  (XDG) written atomically via :func:`tempfile.NamedTemporaryFile` and
  ``os.replace`` with ``0o600`` permissions so secrets are never
  world-readable, even momentarily.

See Also:
    :class:`~authflow.auth.orchestrator.RetryOrchestrator` -- the main
    consumer of the store.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from authflow.config import atomic_write, get_data_dir
from authflow.models import CredentialState


class CredentialStore(ABC):
    """Read/write access to the session credentials.

    Subclasses only implement :meth:`_read` and :meth:`_write`; every
    accessor goes through a lock so concurrent tasks and threads see whole
    states.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def _read(self) -> CredentialState:
        """Return the current persisted state."""
        ...

    @abstractmethod
    def _write(self, state: CredentialState) -> None:
        """Persist *state*, replacing whatever was stored."""
        ...

    def snapshot(self) -> CredentialState:
        """Return a copy of the current state."""
        with self._lock:
            return self._read().model_copy()

    def _update(self, **changes: object) -> None:
        with self._lock:
            state = self._read().model_copy(update=changes)
            self._write(state)

    @property
    def application_token(self) -> Optional[str]:
        return self.snapshot().application_token

    @application_token.setter
    def application_token(self, token: Optional[str]) -> None:
        self._update(application_token=token)

    @property
    def user_token(self) -> Optional[str]:
        return self.snapshot().user_token

    @user_token.setter
    def user_token(self, token: Optional[str]) -> None:
        self._update(user_token=token)

    @property
    def is_logged_in(self) -> bool:
        return self.snapshot().is_logged_in

    @property
    def individual_id(self) -> Optional[str]:
        return self.snapshot().individual_id

    @individual_id.setter
    def individual_id(self, individual_id: Optional[str]) -> None:
        self._update(individual_id=individual_id)

    def login(self, user_token: str, individual_id: Optional[str] = None) -> None:
        """Record a successful login."""
        changes: dict[str, object] = {"user_token": user_token, "is_logged_in": True}
        if individual_id is not None:
            changes["individual_id"] = individual_id
        self._update(**changes)

    def logout(self, retain_application_token: bool = True) -> None:
        """Drop the user session.

        Args:
            retain_application_token: Keep the application token so that
                anonymous, app-level calls keep working after the logout.
        """
        with self._lock:
            current = self._read()
            self._write(
                CredentialState(
                    application_token=(
                        current.application_token if retain_application_token else None
                    ),
                )
            )


class MemoryCredentialStore(CredentialStore):
    """In-process credential store.

    Example::

        store = MemoryCredentialStore(CredentialState(application_token="a1"))
        store.user_token = "u1"
    """

    def __init__(self, state: Optional[CredentialState] = None) -> None:
        super().__init__()
        self._state = state.model_copy() if state is not None else CredentialState()

    def _read(self) -> CredentialState:
        return self._state

    def _write(self, state: CredentialState) -> None:
        self._state = state


def _default_credentials_path() -> Path:
    return get_data_dir() / "credentials.json"


class FileCredentialStore(CredentialStore):
    """Credential store persisted as a JSON file.

    All writes are atomic: content is written to a temporary file in the
    same directory, fsynced, then renamed into place.  A missing or
    unreadable file reads as an empty state.

    Args:
        path: File location.  Defaults to ``<data_dir>/credentials.json``.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        super().__init__()
        self._path = path or _default_credentials_path()

    @property
    def path(self) -> Path:
        """The filesystem path of the credential file."""
        return self._path

    def _read(self) -> CredentialState:
        if not self._path.is_file():
            return CredentialState()
        try:
            text = self._path.read_text(encoding="utf-8")
            return CredentialState.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValueError, OSError):
            return CredentialState()

    def _write(self, state: CredentialState) -> None:
        text = json.dumps(state.model_dump(mode="json"), indent=2) + "\n"
        atomic_write(self._path, text, mode=0o600)

    def clear(self) -> None:
        """Delete the credential file if it exists."""
        with self._lock:
            if self._path.is_file():
                self._path.unlink()
