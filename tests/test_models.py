"""Tests for the Endpoint descriptor."""

from __future__ import annotations

import pydantic
import pytest

from authflow.models import AuthMode, Endpoint, HTTPMethod


def _endpoint(**kwargs) -> Endpoint:
    return Endpoint(host="api.example.com", path="/v1/items", **kwargs)


class TestEndpointDefaults:
    def test_defaults(self) -> None:
        endpoint = _endpoint()
        assert endpoint.scheme == "https"
        assert endpoint.method is HTTPMethod.GET
        assert endpoint.auth_mode is AuthMode.NONE
        assert endpoint.headers == {}
        assert endpoint.query_params == {}
        assert endpoint.body is None

    def test_method_upper_cased(self) -> None:
        assert _endpoint(method="patch").method is HTTPMethod.PATCH


class TestEndpointImmutability:
    def test_fields_cannot_be_reassigned(self) -> None:
        endpoint = _endpoint()
        with pytest.raises(pydantic.ValidationError):
            endpoint.path = "/v2/items"

    @pytest.mark.parametrize("field", ["headers", "query_params", "body"])
    def test_mappings_are_read_only(self, field: str) -> None:
        endpoint = _endpoint(headers={"X-Trace": "t1"}, query_params={"q": "a"}, body={"n": 1})
        with pytest.raises(TypeError):
            getattr(endpoint, field)["injected"] = "x"

    def test_default_mappings_are_read_only(self) -> None:
        endpoint = _endpoint()
        with pytest.raises(TypeError):
            endpoint.headers["X-Trace"] = "t1"

    def test_later_edits_to_source_dicts_do_not_leak(self) -> None:
        headers = {"X-Trace": "t1"}
        query = {"q": "a"}
        body = {"n": 1}
        endpoint = _endpoint(headers=headers, query_params=query, body=body)
        headers["X-Trace"] = "t2"
        query["extra"] = "b"
        del body["n"]
        assert endpoint.headers == {"X-Trace": "t1"}
        assert endpoint.query_params == {"q": "a"}
        assert endpoint.body == {"n": 1}

    def test_default_mappings_not_shared(self) -> None:
        assert _endpoint().headers is not _endpoint().headers

    def test_dump_yields_plain_dicts(self) -> None:
        data = _endpoint(headers={"X-Trace": "t1"}).model_dump()
        assert type(data["headers"]) is dict
        assert data["headers"] == {"X-Trace": "t1"}
        assert data["body"] is None
