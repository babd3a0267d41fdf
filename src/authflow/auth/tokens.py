"""Token service -- obtains fresh application and user tokens.

:class:`TokenService` is the interface the retry orchestrator consumes.
Each operation returns a :class:`~authflow.result.Result` wrapping a
:class:`~authflow.models.TokenResponse`; failures are passed through to the
original caller verbatim.

:class:`HTTPTokenService` implements it against the token endpoints of the
configured host, issuing its calls through the same
:class:`~authflow.client.AuthClient` pipeline as every other request.  The
auth mode of each token endpoint is chosen so that recovery can never
chain back into itself:

* application token -- ``none`` (no credentials needed, no recovery);
* user token refresh -- ``refresh_token`` (a 401 forces a logout);
* user token issue -- ``app_level`` (a 401 refreshes the application token).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from authflow.models import AuthMode, ClientConfig, Endpoint, HTTPMethod, TokenResponse
from authflow.result import Result

if TYPE_CHECKING:
    from authflow.client.async_client import AuthClient


class TokenService(ABC):
    """Source of fresh credentials."""

    @abstractmethod
    async def refresh_application_token(self) -> Result[TokenResponse]:
        """Obtain a new application-level token."""
        ...

    @abstractmethod
    async def refresh_user_token(self) -> Result[TokenResponse]:
        """Refresh the logged-in user's token."""
        ...

    @abstractmethod
    async def issue_user_token(self, individual_id: Optional[str]) -> Result[TokenResponse]:
        """Issue a user token for an individual that is not logged in."""
        ...


class HTTPTokenService(TokenService):
    """Token service backed by HTTP endpoints on the configured host.

    Args:
        client: Pipeline used to send the token requests.
        config: Supplies scheme, host, port and the endpoint paths.
    """

    def __init__(self, client: AuthClient, config: ClientConfig) -> None:
        self._client = client
        self._config = config

    def _endpoint(
        self,
        path: str,
        auth_mode: AuthMode,
        body: Optional[dict[str, object]] = None,
    ) -> Endpoint:
        return Endpoint(
            scheme=self._config.scheme,
            host=self._config.host or "",
            port=self._config.port,
            path=path,
            method=HTTPMethod.POST,
            body=body,
            auth_mode=auth_mode,
        )

    async def refresh_application_token(self) -> Result[TokenResponse]:
        endpoint = self._endpoint(
            self._config.token_endpoints.application_token_path, AuthMode.NONE
        )
        return await self._client.send(endpoint, TokenResponse)

    async def refresh_user_token(self) -> Result[TokenResponse]:
        endpoint = self._endpoint(
            self._config.token_endpoints.user_token_refresh_path, AuthMode.REFRESH_TOKEN
        )
        return await self._client.send(endpoint, TokenResponse)

    async def issue_user_token(self, individual_id: Optional[str]) -> Result[TokenResponse]:
        endpoint = self._endpoint(
            self._config.token_endpoints.user_token_issue_path,
            AuthMode.APP_LEVEL,
            body={"individualId": individual_id},
        )
        return await self._client.send(endpoint, TokenResponse)
