"""authflow -- authenticated HTTP client core with transparent session recovery.

Requests are described declaratively as :class:`~authflow.models.Endpoint`
values, sent through :class:`~authflow.client.AuthClient`, and come back as
a :class:`~authflow.result.Success` or :class:`~authflow.result.Failure`.
A ``401`` is recovered by refreshing the credentials that the endpoint's
auth mode names and re-issuing the request.

Typical usage::

    from authflow import AuthClient, Endpoint, AuthMode, Success

    async with AuthClient(config, credentials=store) as client:
        result = await client.send(
            Endpoint(host="api.example.com", path="/v1/me", auth_mode=AuthMode.USER_LEVEL),
            Profile,
        )

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading and precedence.
    exceptions: Request error taxonomy with exit-code mapping.
    connectivity: Reachability gate and background monitor.
    session: Forced-logout event and session listeners.
    output: stdout/stderr formatting for the CLI.
"""

__version__ = "0.1.0"

from authflow.client import AuthClient  # noqa: E402
from authflow.models import AuthMode, ClientConfig, Endpoint, HTTPMethod  # noqa: E402
from authflow.result import Failure, Result, Success  # noqa: E402

__all__ = [
    "AuthClient",
    "AuthMode",
    "ClientConfig",
    "Endpoint",
    "Failure",
    "HTTPMethod",
    "Result",
    "Success",
    "__version__",
]
