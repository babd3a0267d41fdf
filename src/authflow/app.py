"""Typer application and CLI entry point for authflow.

The CLI is a thin shell around :class:`~authflow.client.AuthClient` for
poking at an API from a terminal:

* ``authflow request PATH`` -- send a request (with session recovery) and
  print the decoded JSON payload.
* ``authflow curl PATH`` -- print the curl command for a request without
  sending it.
* ``authflow logout`` -- clear the stored session.
* ``authflow config show`` / ``authflow config path`` -- inspect settings.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  Failures exit with the code of the
:class:`~authflow.exceptions.AuthflowError` that ended the command.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Optional

import typer

from authflow import __version__
from authflow.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE
from authflow.models import AuthMode, ClientConfig, Endpoint, HTTPMethod
from authflow.session import SessionListener


app = typer.Typer(
    name="authflow",
    help="Send authenticated API requests with transparent session recovery.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
config_app = typer.Typer(no_args_is_help=True)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"authflow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback: install the global output manager and logging."""
    from authflow.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    output.install_logging()
    set_output(output)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


class _CliSessionListener(SessionListener):
    """Tells the terminal user their session was dropped."""

    def set_logout_pending(self) -> None:
        from authflow.output import warning

        warning("Session expired. Stored user credentials were cleared; log in again.")


# ------------------------------------------------------------------ #
# Option parsing
# ------------------------------------------------------------------ #


def _parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def _parse_query(values: list[str]) -> dict[str, Any]:
    """Parse ``name=value`` pairs; a repeated name collects its values in a list."""
    query: dict[str, Any] = {}
    for raw in values:
        name, sep, value = raw.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Query parameter must look like 'name=value', got {raw!r}")
        if name in query:
            existing = query[name]
            query[name] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            query[name] = value
    return query


def _parse_body(body: Optional[str]) -> Optional[dict[str, Any]]:
    if body is None:
        return None
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Body is not valid JSON: {exc}") from None
    if not isinstance(parsed, dict):
        raise typer.BadParameter("Body must be a JSON object")
    return parsed


def _build_endpoint(
    config: ClientConfig,
    path: str,
    method: HTTPMethod,
    headers: list[str],
    query: list[str],
    body: Optional[str],
    body_in_query: bool,
    auth_mode: AuthMode,
) -> Endpoint:
    if not config.host:
        from authflow.output import error

        error("No host configured. Pass --host or set AUTHFLOW_HOST.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return Endpoint(
        scheme=config.scheme,
        host=config.host,
        port=config.port,
        path=path,
        method=method,
        headers=_parse_headers(headers),
        query_params=_parse_query(query),
        body=_parse_body(body),
        is_body_allowed=not body_in_query,
        auth_mode=auth_mode,
    )


_PATH_ARG = typer.Argument(help="Request path, e.g. /v1/products.")
_METHOD_OPT = typer.Option(
    HTTPMethod.GET, "--method", "-X", case_sensitive=False, help="HTTP method."
)
_HOST_OPT = typer.Option(None, "--host", help="API host (overrides config).")
_BRAND_OPT = typer.Option(None, "--brand-id", help="Brand identifier (overrides config).")
_HEADER_OPT = typer.Option([], "--header", "-H", help="Extra header 'Name: value'.")
_QUERY_OPT = typer.Option([], "--query", "-Q", help="Query parameter 'name=value'.")
_BODY_OPT = typer.Option(None, "--body", "-d", help="JSON object body.")
_BODY_IN_QUERY_OPT = typer.Option(
    False, "--body-in-query", help="Send body fields as query parameters."
)
_AUTH_OPT = typer.Option(AuthMode.NONE, "--auth-mode", "-a", help="Session recovery mode.")


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("request")
def request_command(
    path: str = _PATH_ARG,
    method: HTTPMethod = _METHOD_OPT,
    host: Optional[str] = _HOST_OPT,
    brand_id: Optional[str] = _BRAND_OPT,
    header: list[str] = _HEADER_OPT,
    query: list[str] = _QUERY_OPT,
    body: Optional[str] = _BODY_OPT,
    body_in_query: bool = _BODY_IN_QUERY_OPT,
    auth_mode: AuthMode = _AUTH_OPT,
    probe: bool = typer.Option(
        False, "--probe", help="Check network reachability before sending."
    ),
) -> None:
    """Send a request and print the decoded JSON payload.

    Example::

        authflow request /v1/products -Q ids=1 -Q ids=2 --auth-mode app_level
    """
    from authflow.auth import FileCredentialStore
    from authflow.client import AuthClient
    from authflow.config import resolve_config
    from authflow.connectivity import ConnectivityGate, ConnectivityMonitor
    from authflow.output import error, format_response
    from authflow.result import Failure
    from authflow.session import SessionHooks

    config = resolve_config(cli_host=host, cli_brand_id=brand_id)
    endpoint = _build_endpoint(
        config, path, method, header, query, body, body_in_query, auth_mode
    )

    gate = ConnectivityGate()
    if probe:
        ConnectivityMonitor.from_config(gate, config.connectivity).check_once()

    async def _run() -> Any:
        async with AuthClient(
            config,
            credentials=FileCredentialStore(),
            gate=gate,
            session_hooks=SessionHooks([_CliSessionListener()]),
        ) as client:
            return await client.send(endpoint, Any)

    result = asyncio.run(_run())
    if isinstance(result, Failure):
        error(f"{result.error.kind}: {result.error.message}")
        raise typer.Exit(code=result.error.exit_code)
    format_response(result.value)


@app.command("curl")
def curl_command(
    path: str = _PATH_ARG,
    method: HTTPMethod = _METHOD_OPT,
    host: Optional[str] = _HOST_OPT,
    brand_id: Optional[str] = _BRAND_OPT,
    header: list[str] = _HEADER_OPT,
    query: list[str] = _QUERY_OPT,
    body: Optional[str] = _BODY_OPT,
    body_in_query: bool = _BODY_IN_QUERY_OPT,
    auth_mode: AuthMode = _AUTH_OPT,
    reveal: bool = typer.Option(
        False, "--reveal", help="Print the Authorization header unmasked."
    ),
) -> None:
    """Print the curl command for a request without sending it."""
    from authflow.auth import FileCredentialStore
    from authflow.client import AuthClient, to_curl
    from authflow.config import resolve_config
    from authflow.output import error, print_data
    from authflow.result import Failure

    config = resolve_config(cli_host=host, cli_brand_id=brand_id)
    endpoint = _build_endpoint(
        config, path, method, header, query, body, body_in_query, auth_mode
    )
    built = AuthClient(config, credentials=FileCredentialStore()).prepare(endpoint)
    if isinstance(built, Failure):
        error(built.error.message)
        raise typer.Exit(code=built.error.exit_code)
    print_data(to_curl(built.value, reveal_secrets=reveal))


@app.command("logout")
def logout_command(
    keep_app_token: bool = typer.Option(
        True,
        "--keep-app-token/--drop-app-token",
        help="Keep the application token after logging out.",
    ),
) -> None:
    """Clear the stored user session."""
    from authflow.auth import FileCredentialStore
    from authflow.output import success

    FileCredentialStore().logout(retain_application_token=keep_app_token)
    success("Logged out.")


@config_app.command("show")
def config_show(
    host: Optional[str] = _HOST_OPT,
    brand_id: Optional[str] = _BRAND_OPT,
) -> None:
    """Print the effective configuration."""
    from authflow.config import resolve_config
    from authflow.output import format_response

    format_response(resolve_config(cli_host=host, cli_brand_id=brand_id).model_dump(mode="json"))


@config_app.command("path")
def config_path_command() -> None:
    """Print the location of the config file."""
    from authflow.config import config_path
    from authflow.output import print_data

    print_data(str(config_path()))


def main() -> None:
    """CLI entry point invoked by the ``authflow`` console script.

    :class:`~authflow.exceptions.AuthflowError` instances escaping a
    command cause a clean exit with the error's ``exit_code``.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from authflow.exceptions import AuthflowError
        from authflow.output import error

        if isinstance(exc, AuthflowError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
