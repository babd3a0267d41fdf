"""Tests for session hooks and the forced-logout event."""

from __future__ import annotations

import logging

import pytest

from authflow.session import LogoutEvent, SessionHooks, SessionListener


class _Exploding(SessionListener):
    def clear_web_cache(self) -> None:
        raise RuntimeError("web view gone")


class TestLogoutEvent:
    def test_defaults(self) -> None:
        event = LogoutEvent()
        assert event.reason == "Session expired"
        assert event.analytics_event == "logout"
        assert event.retain_application_token is True
        assert event.occurred_at.tzinfo is not None


class TestSessionHooks:
    def test_listener_steps_in_order(self, listener) -> None:
        SessionHooks([listener]).emit_logout(LogoutEvent(endpoint_path="/v1/me"))
        assert listener.calls == [
            "reset_navigation",
            "clear_web_cache",
            "clear_profile",
            "log_event:logout",
            "set_logout_pending",
        ]

    def test_register(self, listener) -> None:
        hooks = SessionHooks()
        hooks.register(listener)
        assert hooks.listeners == [listener]
        hooks.emit_logout(LogoutEvent())
        assert len(listener.calls) == 5

    def test_failing_listener_does_not_stop_others(
        self, listener, caplog: pytest.LogCaptureFixture
    ) -> None:
        hooks = SessionHooks([_Exploding(), listener])
        with caplog.at_level(logging.WARNING, logger="authflow.session"):
            hooks.emit_logout(LogoutEvent())
        assert len(listener.calls) == 5
        assert "_Exploding" in caplog.text

    def test_base_listener_is_noop(self) -> None:
        SessionHooks([SessionListener()]).emit_logout(LogoutEvent())
