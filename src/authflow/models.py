"""Canonical Pydantic models shared across all authflow modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Request models** -- the declarative description of one HTTP call:
    :class:`HTTPMethod`, :class:`AuthMode` and :class:`Endpoint`.

**Wire models** -- JSON bodies the pipeline itself understands:
    :class:`TokenData`, :class:`TokenResponse`, :class:`ErrorEnvelope` and
    :class:`MessageEnvelope`.  Business payloads are out of scope; callers
    pass their own model type to :meth:`~authflow.client.AuthClient.send`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`TokenEndpointsConfig`, :class:`ConnectivityConfig`,
    :class:`ClientConfig`, plus the persisted :class:`CredentialState`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


# --- Request Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods an :class:`Endpoint` can use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class AuthMode(str, enum.Enum):
    """Credential-refresh strategy applied when an endpoint answers 401.

    * ``NONE`` -- no recovery; the 401 is returned as is.
    * ``APP_LEVEL`` -- refresh the application token, then retry.
    * ``USER_LEVEL`` -- refresh (or issue) the user token, then retry.
    * ``REFRESH_TOKEN`` -- the refresh credential itself was rejected; the
      session is torn down and nothing is retried.
    """

    NONE = "none"
    APP_LEVEL = "app_level"
    USER_LEVEL = "user_level"
    REFRESH_TOKEN = "refresh_token"


class Endpoint(BaseModel):
    """Immutable description of a single request.

    Query values may be lists; see
    :func:`~authflow.client.builder.build_query` for how they are rendered.
    When ``is_body_allowed`` is ``False`` the ``body`` fields travel in the
    query string instead of a JSON body.
    The mapping fields are stored as read-only copies.

    Example::

        Endpoint(
            host="api.example.com",
            path="/v1/products",
            query_params={"ids": ["a", "b"]},
            auth_mode=AuthMode.APP_LEVEL,
        )
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    scheme: str = "https"
    host: str
    port: Optional[int] = None
    path: str
    method: HTTPMethod = HTTPMethod.GET
    headers: Mapping[str, str] = Field(default_factory=dict)
    query_params: Mapping[str, Any] = Field(default_factory=dict)
    body: Optional[Mapping[str, Any]] = None
    is_body_allowed: bool = True
    auth_mode: AuthMode = AuthMode.NONE

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("headers", "query_params", "body")
    @classmethod
    def _read_only(cls, value: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
        # copied so later edits to the caller's dict do not leak in
        if value is None:
            return None
        return MappingProxyType(dict(value))

    @field_serializer("headers", "query_params", "body")
    def _plain_dict(self, value: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
        return None if value is None else dict(value)


# --- Wire Models ---


class TokenData(BaseModel):
    token: Optional[str] = None


class TokenResponse(BaseModel):
    """Token service reply, shaped ``{"data": {"token": "..."}}``."""

    data: Optional[TokenData] = None

    @property
    def token(self) -> str:
        """The issued token, or an empty string when the reply carried none."""
        if self.data is None or self.data.token is None:
            return ""
        return self.data.token


class ErrorEnvelope(BaseModel):
    """Structured error body with both a machine code and a message."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    code: str
    message: str


class MessageEnvelope(BaseModel):
    """Fallback error body carrying only a message.

    The ``message`` key must be present; its value may be ``null``.
    """

    message: Optional[str]


# --- Configuration Models ---


class TokenEndpointsConfig(BaseModel):
    """Paths of the token service on the configured host."""

    application_token_path: str = Field(
        default="/v1/auth/application-token",
        description="POST endpoint returning a fresh application token",
    )
    user_token_refresh_path: str = Field(
        default="/v1/auth/user-token/refresh",
        description="POST endpoint refreshing the logged-in user's token",
    )
    user_token_issue_path: str = Field(
        default="/v1/auth/user-token",
        description="POST endpoint issuing a user token for an individual id",
    )


class ConnectivityConfig(BaseModel):
    """Settings of the background reachability probe."""

    probe_host: str = Field(default="1.1.1.1", description="Host the probe connects to")
    probe_port: int = Field(default=443, description="TCP port the probe connects to")
    interval: float = Field(default=5.0, description="Seconds between probes")
    timeout: float = Field(default=2.0, description="Probe connect timeout in seconds")


class ClientConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/authflow/config.json``.

    Loaded and saved by :func:`~authflow.config.load_config` and
    :func:`~authflow.config.save_config`.  See
    :func:`~authflow.config.resolve_config` for the precedence chain.
    """

    brand_id: str = Field(default="", description="Brand identifier sent with every request")
    brand_id_key: str = Field(
        default="brandId", description="Query/body key the brand identifier is sent under"
    )
    scheme: str = "https"
    host: Optional[str] = Field(default=None, description="Default API host")
    port: Optional[int] = None
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_refresh_attempts: int = Field(
        default=2, ge=0, description="Credential refresh rounds allowed per call"
    )
    coalesce_refreshes: bool = Field(
        default=True,
        description="Share one in-flight token refresh between concurrent requests",
    )
    token_endpoints: TokenEndpointsConfig = Field(default_factory=TokenEndpointsConfig)
    connectivity: ConnectivityConfig = Field(default_factory=ConnectivityConfig)


class CredentialState(BaseModel):
    """Everything the credential store keeps for the current session."""

    application_token: Optional[str] = None
    user_token: Optional[str] = None
    individual_id: Optional[str] = None
    is_logged_in: bool = False
