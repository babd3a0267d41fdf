"""Asynchronous authenticated HTTP client -- the request pipeline.

:class:`AuthClient` wraps :class:`httpx.AsyncClient` and turns one
:meth:`~AuthClient.send` call into the following sequence:

1. Connectivity gate check (short-circuits with ``noNetwork``).
2. Request building (:func:`~authflow.client.builder.build_request`).
3. Auth header injection from the credential store.
4. Transport call.
5. Response classification
   (:func:`~authflow.client.classifier.classify_response`).
6. On ``401``: credential recovery through the
   :class:`~authflow.auth.orchestrator.RetryOrchestrator`, then back to 1.

Recovery runs in a loop capped by ``ClientConfig.max_refresh_attempts``
refresh rounds per call.  Every failure is reported to the diagnostics sink
once and returned as a :class:`~authflow.result.Failure`; nothing but
cancellation propagates as an exception.

Example::

    async with AuthClient(config, credentials=store) as client:
        result = await client.send(client.endpoint("/v1/profile"), Profile)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

import httpx

from authflow.auth.credential_store import CredentialStore, MemoryCredentialStore
from authflow.auth.orchestrator import RECOVERABLE_MODES, RetryOrchestrator
from authflow.auth.tokens import HTTPTokenService, TokenService
from authflow.client.builder import build_request, to_curl
from authflow.client.classifier import classify_response
from authflow.connectivity import ConnectivityGate
from authflow.diagnostics import DiagnosticCode, DiagnosticsSink, LoggingDiagnosticsSink
from authflow.exceptions import (
    NoNetworkError,
    NoResponseError,
    UnauthorizedError,
    UnknownError,
)
from authflow.models import AuthMode, ClientConfig, Endpoint, HTTPMethod
from authflow.result import Failure, Result
from authflow.session import SessionHooks

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthClient:
    """Authenticated request pipeline over :class:`httpx.AsyncClient`.

    Must be used as an async context manager.  Every collaborator is
    injected; the defaults are an in-memory credential store, an
    always-reachable gate, a logging diagnostics sink, no session
    listeners and an :class:`~authflow.auth.tokens.HTTPTokenService`
    talking to the configured host through this same client.

    Args:
        config: Brand identifier, defaults for endpoints, timeouts and the
            refresh policy.
        credentials: Credential store consulted for auth headers and
            updated by token refreshes.
        tokens: Token service used for recovery.
        gate: Reachability gate checked before every attempt.
        sink: Receives a ``(message, code)`` record for every failure.
        session_hooks: Receives the forced-logout event.
        transport: Optional httpx transport (tests use
            :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        credentials: Optional[CredentialStore] = None,
        tokens: Optional[TokenService] = None,
        gate: Optional[ConnectivityGate] = None,
        sink: Optional[DiagnosticsSink] = None,
        session_hooks: Optional[SessionHooks] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._credentials = credentials or MemoryCredentialStore()
        self._tokens = tokens or HTTPTokenService(self, self._config)
        self._gate = gate or ConnectivityGate()
        self._sink = sink or LoggingDiagnosticsSink()
        self._transport = transport
        self._orchestrator = RetryOrchestrator(
            credentials=self._credentials,
            tokens=self._tokens,
            sink=self._sink,
            session_hooks=session_hooks,
            coalesce=self._config.coalesce_refreshes,
        )
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AuthClient:
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def endpoint(self, path: str, **fields: Any) -> Endpoint:
        """Build an :class:`Endpoint` on the configured scheme, host and port.

        Keyword arguments override any :class:`Endpoint` field.
        """
        defaults: dict[str, Any] = {
            "scheme": self._config.scheme,
            "host": self._config.host or "",
            "port": self._config.port,
        }
        defaults.update(fields)
        return Endpoint(path=path, **defaults)

    async def send(self, endpoint: Endpoint, response_model: type[T]) -> Result[T]:
        """Send *endpoint* and decode a 2xx body into *response_model*.

        A ``401`` on an ``app_level`` or ``user_level`` endpoint triggers a
        credential refresh and a re-issue of the same request, at most
        ``max_refresh_attempts`` times.  When the cap is reached the call
        ends with ``unauthorized``.

        Returns:
            ``Success(payload)`` or ``Failure(error)``.
        """
        refreshes = 0
        while True:
            result = await self._attempt(endpoint, response_model)
            if not (isinstance(result, Failure) and isinstance(result.error, UnauthorizedError)):
                return result

            if endpoint.auth_mode in RECOVERABLE_MODES and refreshes >= self._config.max_refresh_attempts:
                logger.debug(
                    "Giving up on %s after %d credential refresh(es)", endpoint.path, refreshes
                )
                return self._orchestrator.unauthorized(endpoint.auth_mode)

            recovery = await self._orchestrator.recover(endpoint)
            if isinstance(recovery, Failure):
                return recovery
            refreshes += 1
            logger.debug("Credentials refreshed, re-issuing %s %s", endpoint.method.value, endpoint.path)

    async def get(self, path: str, response_model: type[T], **fields: Any) -> Result[T]:
        """Send a GET to *path* on the configured host."""
        return await self.send(self.endpoint(path, method=HTTPMethod.GET, **fields), response_model)

    async def post(self, path: str, response_model: type[T], **fields: Any) -> Result[T]:
        """Send a POST to *path* on the configured host."""
        return await self.send(self.endpoint(path, method=HTTPMethod.POST, **fields), response_model)

    async def put(self, path: str, response_model: type[T], **fields: Any) -> Result[T]:
        """Send a PUT to *path* on the configured host."""
        return await self.send(self.endpoint(path, method=HTTPMethod.PUT, **fields), response_model)

    async def delete(self, path: str, response_model: type[T], **fields: Any) -> Result[T]:
        """Send a DELETE to *path* on the configured host."""
        return await self.send(self.endpoint(path, method=HTTPMethod.DELETE, **fields), response_model)

    def prepare(self, endpoint: Endpoint) -> Result[httpx.Request]:
        """Build the request for *endpoint* with auth headers, without sending it."""
        built = build_request(endpoint, self._config.brand_id, self._config.brand_id_key)
        if isinstance(built, Failure):
            return built
        self._inject_auth(built.value, endpoint.auth_mode)
        return built

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _attempt(self, endpoint: Endpoint, response_model: type[T]) -> Result[T]:
        """Run one gate -> build -> send -> classify pass."""
        assert self._client is not None, "Client not initialised -- use as async context manager"

        if not self._gate.is_reachable():
            self._sink.record("No Network available", DiagnosticCode.NO_NETWORK)
            return Failure(NoNetworkError())

        built = self.prepare(endpoint)
        if isinstance(built, Failure):
            self._sink.record("invalidURL", DiagnosticCode.INVALID_URL)
            return built
        request = built.value
        logger.debug("%s", to_curl(request))

        try:
            response = await self._client.send(request)
        except httpx.RemoteProtocolError as exc:
            logger.debug("No response from %s: %s", request.url, exc)
            self._sink.record("No response", DiagnosticCode.NO_RESPONSE)
            return Failure(NoResponseError())
        except Exception as exc:
            logger.debug("Transport error for %s", request.url, exc_info=True)
            self._sink.record("Unknown error", DiagnosticCode.UNKNOWN)
            return Failure(UnknownError(f"Unknown error: {exc}"))

        if not isinstance(response, httpx.Response):
            self._sink.record("No response", DiagnosticCode.NO_RESPONSE)
            return Failure(NoResponseError())

        logger.debug("RESPONSE: %s", response.text)
        logger.debug("STATUS CODE: %s", response.status_code)
        return classify_response(
            response.status_code,
            response.content,
            response_model,
            endpoint.auth_mode,
            self._sink,
        )

    def _inject_auth(self, request: httpx.Request, mode: AuthMode) -> None:
        """Attach a bearer token for *mode* unless the caller set one."""
        if "Authorization" in request.headers:
            return
        if mode is AuthMode.APP_LEVEL:
            token = self._credentials.application_token
        elif mode in (AuthMode.USER_LEVEL, AuthMode.REFRESH_TOKEN):
            token = self._credentials.user_token
        else:
            return
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
