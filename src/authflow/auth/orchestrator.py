"""Retry orchestrator -- recovers from 401 responses by refreshing credentials.

The pipeline hands every ``401`` to :meth:`RetryOrchestrator.recover`
together with the endpoint that produced it.  The endpoint's
:class:`~authflow.models.AuthMode` alone decides what happens:

``app_level``
    Refresh the application token and store it.
``user_level`` (logged in)
    Refresh the application token, then the user token; store both.
``user_level`` (not logged in)
    Issue a user token for the stored individual id and store it.
``refresh_token``
    Terminal.  Log out of the credential store (keeping the application
    token), emit a :class:`~authflow.session.LogoutEvent`, return
    ``unauthorized``.
``none``
    Terminal.  Return ``unauthorized``.

``recover`` returns ``Success(None)`` when the pipeline should re-issue the
original request and a :class:`~authflow.result.Failure` when it must stop.
Failures from the token service are returned verbatim rather than masked as
``unauthorized``; a token service that raises yields an ``unknown`` failure.
The pipeline, not the orchestrator, owns the loop and the cap on refresh
rounds.

Concurrent recoveries of the same step share one in-flight token call when
coalescing is enabled, so a burst of 401s triggers a single refresh.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from authflow.auth.credential_store import CredentialStore
from authflow.auth.tokens import TokenService
from authflow.diagnostics import DiagnosticCode, DiagnosticsSink
from authflow.exceptions import UnauthorizedError, UnknownError
from authflow.models import AuthMode, Endpoint, TokenResponse
from authflow.result import Failure, Result, Success
from authflow.session import LogoutEvent, SessionHooks

logger = logging.getLogger(__name__)

SESSION_EXPIRED = "Session expired"

RECOVERABLE_MODES = frozenset({AuthMode.APP_LEVEL, AuthMode.USER_LEVEL})

TokenCall = Callable[[], Awaitable[Result[TokenResponse]]]


class RetryOrchestrator:
    """Mode-specific credential recovery for unauthorized responses.

    Args:
        credentials: Store read for the login state and written with every
            refreshed token.
        tokens: Source of fresh tokens.
        sink: Receives one ``("Session expired", "unauthorized")`` record
            per unrecoverable 401.
        session_hooks: Receives the forced-logout event of the
            ``refresh_token`` path.
        coalesce: Share in-flight token calls between concurrent recoveries.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        tokens: TokenService,
        sink: DiagnosticsSink,
        session_hooks: Optional[SessionHooks] = None,
        coalesce: bool = True,
    ) -> None:
        self._credentials = credentials
        self._tokens = tokens
        self._sink = sink
        self._session_hooks = session_hooks or SessionHooks()
        self._coalesce = coalesce
        self._inflight: dict[str, asyncio.Future[Result[TokenResponse]]] = {}

    async def recover(self, endpoint: Endpoint) -> Result[None]:
        """Run the recovery sequence for *endpoint*'s auth mode."""
        mode = endpoint.auth_mode

        if mode is AuthMode.APP_LEVEL:
            return self._finish(await self._refresh_application_token())

        if mode is AuthMode.USER_LEVEL:
            if self._credentials.is_logged_in:
                result = await self._refresh_application_token()
                if isinstance(result, Success):
                    result = await self._refresh_user_token()
                return self._finish(result)
            return self._finish(await self._issue_user_token())

        if mode is AuthMode.REFRESH_TOKEN:
            self._force_logout(endpoint)

        return self.unauthorized(mode)

    def unauthorized(self, mode: Optional[AuthMode] = None) -> Failure:
        """Report an unrecoverable 401 and return the matching failure."""
        self._sink.record(SESSION_EXPIRED, DiagnosticCode.UNAUTHORIZED)
        return Failure(UnauthorizedError(auth_mode=mode))

    # ------------------------------------------------------------------ #
    # Refresh steps
    # ------------------------------------------------------------------ #

    def _finish(self, result: Result[TokenResponse]) -> Result[None]:
        if isinstance(result, Failure):
            self._sink.record(SESSION_EXPIRED, DiagnosticCode.UNAUTHORIZED)
            return result
        return Success(None)

    async def _refresh_application_token(self) -> Result[TokenResponse]:
        async def call() -> Result[TokenResponse]:
            result = await self._call_tokens(self._tokens.refresh_application_token)
            if isinstance(result, Success):
                self._credentials.application_token = result.value.token
                logger.debug("Application token refreshed")
            return result

        return await self._single_flight("application_token", call)

    async def _refresh_user_token(self) -> Result[TokenResponse]:
        async def call() -> Result[TokenResponse]:
            result = await self._call_tokens(self._tokens.refresh_user_token)
            if isinstance(result, Success):
                self._credentials.user_token = result.value.token
                logger.debug("User token refreshed")
            return result

        return await self._single_flight("user_token_refresh", call)

    async def _issue_user_token(self) -> Result[TokenResponse]:
        individual_id = self._credentials.individual_id

        async def call() -> Result[TokenResponse]:
            result = await self._call_tokens(self._tokens.issue_user_token, individual_id)
            if isinstance(result, Success):
                self._credentials.user_token = result.value.token
                logger.debug("User token issued for individual %s", individual_id)
            return result

        return await self._single_flight(f"user_token_issue:{individual_id}", call)

    async def _call_tokens(
        self, operation: Callable[..., Awaitable[Result[TokenResponse]]], *args: Any
    ) -> Result[TokenResponse]:
        """Await a token service call, turning a raised exception into ``unknown``."""
        try:
            return await operation(*args)
        except Exception as exc:
            logger.debug("Token service raised", exc_info=True)
            self._sink.record("Unknown error", DiagnosticCode.UNKNOWN)
            return Failure(UnknownError(f"Unknown error: {exc}"))

    async def _single_flight(self, key: str, call: TokenCall) -> Result[TokenResponse]:
        if not self._coalesce:
            return await call()

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(call())
            self._inflight[key] = task

            def _forget(done: asyncio.Future[Result[TokenResponse]]) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)
        else:
            logger.debug("Joining in-flight token call '%s'", key)
        # shield: a cancelled waiter must not cancel the refresh other waiters share
        return await asyncio.shield(task)

    # ------------------------------------------------------------------ #
    # Session teardown
    # ------------------------------------------------------------------ #

    def _force_logout(self, endpoint: Endpoint) -> None:
        self._credentials.logout(retain_application_token=True)
        self._session_hooks.emit_logout(
            LogoutEvent(
                reason=SESSION_EXPIRED,
                endpoint_path=endpoint.path,
                retain_application_token=True,
            )
        )
