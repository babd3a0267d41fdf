"""Request builder -- turns an :class:`~authflow.models.Endpoint` into an :class:`httpx.Request`.

Everything here is pure: no I/O, no logging, no credentials.  The pipeline
in :mod:`authflow.client.async_client` calls :func:`build_request` once per
attempt and attaches auth headers afterwards.

Query assembly (:func:`build_query`) follows a fixed rule set:

1. If any query value is a non-empty list, every other query entry is
   dropped and one ``categories[]=<item>`` pair is emitted per element.
2. Otherwise each entry becomes one ``name=<str(value)>`` pair.
3. If the endpoint does not allow a body, each body field is appended as a
   query pair as well.
4. The brand identifier pair is always appended last, exactly once.

Body assembly (:func:`build_body`) only produces bytes when the endpoint
allows a body and has one; the brand identifier is injected into it.
"""

from __future__ import annotations

import json
import shlex
from typing import Any, Optional

import httpx

from authflow.exceptions import InvalidURLError
from authflow.models import Endpoint
from authflow.result import Failure, Result, Success

JSON_MEDIA_TYPE = "application/json"
CATEGORIES_PARAM = "categories[]"
DEFAULT_BRAND_ID_KEY = "brandId"
MIN_PORT = 1
MAX_PORT = 65535

_HOST_FORBIDDEN = frozenset("/?#@\\")


def _stringify(value: Any) -> str:
    """String form of a query value; booleans are rendered as JSON literals."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _first_nonempty_list(params: dict[str, Any]) -> Optional[list[Any]]:
    for value in params.values():
        if isinstance(value, (list, tuple)) and len(value) > 0:
            return list(value)
    return None


def build_query(
    endpoint: Endpoint,
    brand_id: str,
    brand_id_key: str = DEFAULT_BRAND_ID_KEY,
) -> list[tuple[str, str]]:
    """Assemble the ordered query pairs for *endpoint*.

    Args:
        endpoint: The endpoint descriptor.
        brand_id: Brand identifier appended as the final pair.
        brand_id_key: Name of the brand identifier pair.

    Returns:
        A list of ``(name, value)`` tuples in emission order.  Repeated
        names are preserved.
    """
    pairs: list[tuple[str, str]] = []

    categories = _first_nonempty_list(endpoint.query_params)
    if categories is not None:
        pairs.extend((CATEGORIES_PARAM, _stringify(item)) for item in categories)
    else:
        pairs.extend(
            (name, _stringify(value)) for name, value in endpoint.query_params.items()
        )

    if not endpoint.is_body_allowed and endpoint.body is not None:
        pairs.extend((name, _stringify(value)) for name, value in endpoint.body.items())

    pairs.append((brand_id_key, brand_id))
    return pairs


def build_body(
    endpoint: Endpoint,
    brand_id: str,
    brand_id_key: str = DEFAULT_BRAND_ID_KEY,
) -> Optional[bytes]:
    """Serialise the endpoint body as JSON with the brand identifier injected.

    Returns ``None`` when the endpoint carries no body or does not allow one.
    Values JSON cannot represent natively are serialised with ``str()``.
    """
    if not endpoint.is_body_allowed or endpoint.body is None:
        return None
    body = dict(endpoint.body)
    body[brand_id_key] = brand_id
    return json.dumps(body, default=str).encode("utf-8")


def build_url(endpoint: Endpoint, query: list[tuple[str, str]]) -> httpx.URL:
    """Compose scheme, host, port, path and query into a URL.

    Raises:
        InvalidURLError: If the parts do not form a valid absolute URL.
    """
    if not endpoint.scheme or not endpoint.host:
        raise InvalidURLError(
            f"Cannot build a URL without scheme and host "
            f"(scheme={endpoint.scheme!r}, host={endpoint.host!r})"
        )
    if endpoint.path and not endpoint.path.startswith("/"):
        raise InvalidURLError(f"Path must be empty or start with '/': {endpoint.path!r}")
    if any(ch.isspace() or ch in _HOST_FORBIDDEN for ch in endpoint.host):
        raise InvalidURLError(f"Host is not a valid hostname: {endpoint.host!r}")
    if endpoint.port is not None and not MIN_PORT <= endpoint.port <= MAX_PORT:
        raise InvalidURLError(f"Port out of range: {endpoint.port}")

    parts: dict[str, Any] = {
        "scheme": endpoint.scheme,
        "host": endpoint.host,
        "path": endpoint.path,
        "params": query,
    }
    if endpoint.port is not None:
        parts["port"] = endpoint.port
    try:
        url = httpx.URL(**parts)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidURLError(f"invalidURL: {exc}") from exc
    # httpx percent-encodes characters a hostname cannot carry
    if "%" in url.raw_host.decode("ascii", errors="replace"):
        raise InvalidURLError(f"Host is not a valid hostname: {endpoint.host!r}")
    return url


def build_headers(endpoint: Endpoint) -> httpx.Headers:
    """Copy the endpoint headers and force JSON ``Content-Type`` and ``Accept``."""
    headers = httpx.Headers(endpoint.headers)
    headers["Content-Type"] = JSON_MEDIA_TYPE
    headers["Accept"] = JSON_MEDIA_TYPE
    return headers


def build_request(
    endpoint: Endpoint,
    brand_id: str,
    brand_id_key: str = DEFAULT_BRAND_ID_KEY,
) -> Result[httpx.Request]:
    """Build the transport request for *endpoint*.

    Returns:
        ``Success(httpx.Request)``, or ``Failure(InvalidURLError)`` when the
        URL cannot be composed.
    """
    query = build_query(endpoint, brand_id, brand_id_key)
    try:
        url = build_url(endpoint, query)
    except InvalidURLError as exc:
        return Failure(exc)

    request = httpx.Request(
        method=endpoint.method.value,
        url=url,
        headers=build_headers(endpoint),
        content=build_body(endpoint, brand_id, brand_id_key),
    )
    return Success(request)


def to_curl(request: httpx.Request, reveal_secrets: bool = False) -> str:
    """Render *request* as a copy-pasteable curl command.

    ``Cookie`` headers are omitted and the ``Authorization`` value is masked
    unless *reveal_secrets* is set.  The body is included with ``-d`` when
    it is valid UTF-8.
    """
    command = [f"curl {shlex.quote(str(request.url))}"]
    if request.method == "HEAD":
        command[0] += " --head"
    elif request.method != "GET":
        command.append(f"-X {request.method}")

    for key, value in request.headers.items():
        if key.lower() == "cookie":
            continue
        if key.lower() == "authorization" and not reveal_secrets:
            value = value.split(" ", 1)[0] + " ***" if " " in value else "***"
        command.append(f"-H {shlex.quote(f'{key}: {value}')}")

    content = request.content
    if content:
        try:
            command.append(f"-d {shlex.quote(content.decode('utf-8'))}")
        except UnicodeDecodeError:
            pass

    return " \\\n\t".join(command)
