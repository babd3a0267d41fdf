"""HTTP client module for authflow.

Provides the asynchronous request pipeline and its two pure building
blocks:

Classes:
    :class:`AuthClient` -- the pipeline backed by :class:`httpx.AsyncClient`.

Functions:
    :func:`build_request` -- endpoint descriptor to :class:`httpx.Request`.
    :func:`classify_response` -- status code and body to a result.
    :func:`to_curl` -- render a request as a curl command.

Example::

    from authflow.client import AuthClient

    async with AuthClient(config, credentials=store) as client:
        result = await client.get("/v1/products", ProductList)
"""

from authflow.client.async_client import AuthClient
from authflow.client.builder import build_request, to_curl
from authflow.client.classifier import classify_response

__all__ = ["AuthClient", "build_request", "classify_response", "to_curl"]
