"""Tests for the canonical error classifier."""

import binascii

import httpx
import openai
import pytest
from botocore.exceptions import ClientError as BotoClientError
from botocore.exceptions import EndpointConnectionError
from google.genai import errors as genai_errors
from PIL import UnidentifiedImageError

from aigc_router.errors import (
    CanonicalError,
    ErrorKind,
    classify,
    extract_error_message,
    from_response,
    invalid_input,
    missing_credential,
    unavailable,
    upstream_error,
)

_REQUEST = httpx.Request("POST", "https://api.example.com/v1/generate")


class TestExtractErrorMessage:
    def test_nested_error_message(self):
        assert extract_error_message({"error": {"message": "quota exceeded"}}) == "quota exceeded"

    def test_string_error(self):
        assert extract_error_message({"error": "bad prompt"}) == "bad prompt"

    def test_top_level_message(self):
        assert extract_error_message({"message": "nope"}) == "nope"

    def test_missing(self):
        assert extract_error_message({"error": {}}) is None
        assert extract_error_message("plain text") is None
        assert extract_error_message(None) is None


class TestHttpStatus:
    def test_status_per_kind(self):
        assert invalid_input("x").http_status == 400
        assert missing_credential("KEY", provider="p").http_status == 500
        assert unavailable("x", provider="p").http_status == 503
        assert upstream_error("x", provider="p").http_status == 502

    def test_upstream_status_relayed(self):
        assert upstream_error("x", provider="p", status_code=429).http_status == 429

    def test_upstream_non_error_status_falls_back(self):
        assert upstream_error("x", provider="p", status_code=200).http_status == 502


class TestTransient:
    def test_unavailable_is_transient(self):
        assert unavailable("x", provider="p").transient

    @pytest.mark.parametrize("status", [500, 502, 503, 429])
    def test_server_errors_are_transient(self, status):
        assert upstream_error("x", provider="p", status_code=status).transient

    @pytest.mark.parametrize("status", [None, 400, 401, 404])
    def test_client_errors_are_not_transient(self, status):
        assert not upstream_error("x", provider="p", status_code=status).transient

    def test_invalid_input_not_transient(self):
        assert not invalid_input("x").transient


class TestToDict:
    def test_without_details(self):
        err = missing_credential("LLAMAGEN_API_KEY", provider="llamagen")
        body = err.to_dict()
        assert body["error"] == "API key not configured"
        assert "LLAMAGEN_API_KEY" in body["message"]
        assert "details" not in body

    def test_with_details(self):
        err = upstream_error("boom", provider="p", raw={"error": {"message": "boom"}})
        assert err.to_dict() == {
            "error": "Upstream API error",
            "message": "boom",
            "details": {"error": {"message": "boom"}},
        }


class TestFromResponse:
    def test_json_error_body(self):
        resp = httpx.Response(
            401, json={"error": {"message": "Invalid API key"}}, request=_REQUEST
        )
        err = from_response(resp, provider="llamagen")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.message == "Invalid API key"
        assert err.status_code == 401
        assert err.raw == {"error": {"message": "Invalid API key"}}

    def test_text_body_uses_generic_message(self):
        resp = httpx.Response(500, text="Internal Server Error", request=_REQUEST)
        err = from_response(resp, provider="llamagen")
        assert "HTTP 500" in err.message
        assert err.raw == "Internal Server Error"


class TestClassify:
    def test_passes_canonical_error_through(self):
        err = invalid_input("x")
        assert classify(err, provider="p") is err

    def test_connect_error_is_unavailable(self):
        err = classify(httpx.ConnectError("refused", request=_REQUEST), provider="llamagen")
        assert err.kind is ErrorKind.UPSTREAM_UNAVAILABLE
        assert err.provider == "llamagen"
        assert "refused" in err.message

    def test_timeout_is_unavailable(self):
        err = classify(httpx.ReadTimeout("", request=_REQUEST), provider="llamagen")
        assert err.kind is ErrorKind.UPSTREAM_UNAVAILABLE
        assert "ReadTimeout" in err.message

    def test_http_status_error_keeps_payload(self):
        resp = httpx.Response(
            400, json={"error": {"message": "prompt too long"}}, request=_REQUEST
        )
        exc = httpx.HTTPStatusError("400 Bad Request", request=_REQUEST, response=resp)
        err = classify(exc, provider="llamagen", title="LlamaGen API error")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.message == "prompt too long"
        assert err.title == "LlamaGen API error"
        assert err.http_status == 400

    def test_http_status_error_without_structured_message(self):
        resp = httpx.Response(502, text="", request=_REQUEST)
        exc = httpx.HTTPStatusError("502 Bad Gateway", request=_REQUEST, response=resp)
        err = classify(exc, provider="llamagen")
        assert err.message == "502 Bad Gateway"

    def test_openai_status_error(self):
        resp = httpx.Response(401, request=_REQUEST)
        exc = openai.APIStatusError(
            "Error code: 401", response=resp, body={"message": "Invalid API Key"}
        )
        err = classify(exc, provider="groq")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.message == "Invalid API Key"
        assert err.status_code == 401

    def test_openai_connection_error(self):
        exc = openai.APIConnectionError(request=_REQUEST)
        err = classify(exc, provider="groq")
        assert err.kind is ErrorKind.UPSTREAM_UNAVAILABLE

    def test_genai_api_error(self):
        exc = genai_errors.ClientError(
            400,
            {"error": {"code": 400, "message": "bad size", "status": "INVALID_ARGUMENT"}},
        )
        err = classify(exc, provider="gemini")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert "bad size" in err.message
        assert err.status_code == 400

    def test_unknown_exception_is_upstream_error(self):
        err = classify(ValueError("not json"), provider="grok")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.message == "not json"

    def test_storage_client_error(self):
        exc = BotoClientError(
            {
                "Error": {"Code": "NoSuchBucket", "Message": "The bucket does not exist"},
                "ResponseMetadata": {"HTTPStatusCode": 404},
            },
            "PutObject",
        )
        err = classify(exc, provider="r2")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.message == "The bucket does not exist"
        assert err.status_code == 404
        assert err.raw["Error"]["Code"] == "NoSuchBucket"

    def test_storage_connection_error_is_unavailable(self):
        exc = EndpointConnectionError(endpoint_url="https://acct.r2.cloudflarestorage.com")
        err = classify(exc, provider="r2")
        assert err.kind is ErrorKind.UPSTREAM_UNAVAILABLE
        assert err.transient

    def test_bad_base64_is_upstream_error(self):
        err = classify(binascii.Error("Incorrect padding"), provider="gemini")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert "Incorrect padding" in err.message

    def test_unreadable_image_is_upstream_error(self):
        exc = UnidentifiedImageError("cannot identify image file")
        err = classify(exc, provider="gemini", title="Invalid image data")
        assert err.kind is ErrorKind.UPSTREAM_ERROR
        assert err.title == "Invalid image data"
        assert not err.transient
