"""Session lifecycle events and the hook runner that delivers them.

When a request protected by the refresh credential itself answers 401, the
session cannot be recovered.  The retry orchestrator then logs the user out
of the credential store and emits a :class:`LogoutEvent`; everything else
that must happen in the embedding application (resetting navigation,
clearing cached web content and profile fields, analytics, raising a
"logout happened" flag) is done by :class:`SessionListener` instances
registered on :class:`SessionHooks`.

The hook chain mirrors a pipeline: listeners run in registration order, and
a listener that raises is logged and skipped so the remaining listeners
still tear their part of the session down.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

LOGOUT_EVENT_NAME = "logout"


@dataclass(frozen=True)
class LogoutEvent:
    """A forced logout emitted by the retry orchestrator.

    Attributes:
        reason: Short human-readable cause.
        endpoint_path: Path of the request whose 401 triggered the logout.
        analytics_event: Name of the analytics event listeners should log.
        retain_application_token: Whether the credential store kept the
            application token.
        occurred_at: UTC timestamp of the event.
    """

    reason: str = "Session expired"
    endpoint_path: Optional[str] = None
    analytics_event: str = LOGOUT_EVENT_NAME
    retain_application_token: bool = True
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionListener:
    """Base class for collaborators that react to a forced logout.

    Override the individual steps; :meth:`on_forced_logout` calls them in
    teardown order.  Every step is a no-op by default.
    """

    def reset_navigation(self) -> None:
        """Return the application to its initial navigation state."""

    def clear_web_cache(self) -> None:
        """Drop cached web content (cookies, embedded web views)."""

    def clear_profile(self) -> None:
        """Forget cached profile fields of the logged-out user."""

    def log_event(self, name: str) -> None:
        """Record an analytics event."""

    def set_logout_pending(self) -> None:
        """Flag that a logout happened so the UI can react to it."""

    def on_forced_logout(self, event: LogoutEvent) -> None:
        self.reset_navigation()
        self.clear_web_cache()
        self.clear_profile()
        self.log_event(event.analytics_event)
        self.set_logout_pending()


class SessionHooks:
    """Delivers session events to every registered listener."""

    def __init__(self, listeners: Optional[list[SessionListener]] = None) -> None:
        self._listeners = list(listeners or [])

    @property
    def listeners(self) -> list[SessionListener]:
        return list(self._listeners)

    def register(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def emit_logout(self, event: LogoutEvent) -> None:
        """Run ``on_forced_logout`` on every listener in registration order."""
        logger.info("Forced logout: %s", event.reason)
        for listener in self._listeners:
            try:
                listener.on_forced_logout(event)
            except Exception as exc:
                logger.warning(
                    "Session listener %s failed during logout: %s",
                    type(listener).__name__,
                    exc,
                )
