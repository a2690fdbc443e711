"""Unit tests for auth/token_gen.py.

NOTE: Tokens are never cached, so these tests only cover a single exchange.
"""

import json
from datetime import datetime
from datetime import timezone
from unittest.mock import AsyncMock
from unittest.mock import MagicMock

import httpx
import pytest

from wfp_action.auth.token_gen import basic_auth_header
from wfp_action.auth.token_gen import exchange_client_credentials
from wfp_action.auth.token_gen import exchange_jwt_assertion
from wfp_action.auth.token_gen import request_access_token
from wfp_action.errors import AuthError
from wfp_action.errors import FatalError
from wfp_action.errors import RetryableError

TOKEN_ENDPOINT = "https://auth.example.com/token"


def _mock_client(response=None, side_effect=None):
    client = MagicMock(spec=httpx.AsyncClient)
    client.post = AsyncMock(return_value=response, side_effect=side_effect)
    return client


def _mock_response(status_code=200, json_body=None, text=""):
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.text = text
    if isinstance(json_body, Exception):
        response.json.side_effect = json_body
    else:
        response.json.return_value = json_body
    return response


class TestRequestAccessToken:
    """Tests for request_access_token."""

    @pytest.mark.asyncio
    async def test_success(self):
        """Test returns the token and its expiry."""
        before = datetime.now(timezone.utc)
        client = _mock_client(_mock_response(json_body={"access_token": "new_token", "expires_in": 3600}))

        token, expires_at = await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})

        assert token == "new_token"
        assert (expires_at - before).total_seconds() >= 3599
        client.post.assert_awaited_once()
        _, kwargs = client.post.call_args
        assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_default_expiry(self):
        """Test uses default expiry when not in response."""
        before = datetime.now(timezone.utc)
        client = _mock_client(_mock_response(json_body={"access_token": "new_token"}))

        _, expires_at = await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})

        # Default is 3600 seconds (1 hour)
        assert (expires_at - before).total_seconds() >= 3500

    @pytest.mark.asyncio
    async def test_request_fails(self):
        """Test raises AuthError when the token request is rejected."""
        client = _mock_client(_mock_response(status_code=401, text="Unauthorized"))

        with pytest.raises(AuthError) as exc_info:
            await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})

        assert "Failed to get access token (401): Unauthorized" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test raises AuthError when response is not valid JSON."""
        client = _mock_client(_mock_response(json_body=json.JSONDecodeError("Invalid JSON", doc="", pos=0)))

        with pytest.raises(AuthError) as exc_info:
            await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})

        assert "Failed to parse" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_no_access_token_in_response(self):
        """Test raises AuthError when access_token not in response."""
        client = _mock_client(_mock_response(json_body={"expires_in": 3600}))

        with pytest.raises(AuthError) as exc_info:
            await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})

        assert "Access token not found" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error(self):
        """Test a connection failure is fatal."""
        client = _mock_client(side_effect=httpx.ConnectError("Connection refused"))

        with pytest.raises(FatalError) as exc_info:
            await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})

        assert "refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        """Test a timeout while exchanging the token is retryable."""
        client = _mock_client(side_effect=httpx.ConnectTimeout("timed out"))

        with pytest.raises(RetryableError):
            await request_access_token(client, TOKEN_ENDPOINT, {"grant_type": "x"})


class TestGrants:
    """Tests for the grant helpers."""

    @pytest.mark.asyncio
    async def test_client_credentials_unknown_auth_style(self):
        """Test an unsupported auth style fails before any request."""
        client = _mock_client()

        with pytest.raises(AuthError):
            await exchange_client_credentials(client, TOKEN_ENDPOINT, "id", "secret", auth_style="in_cookie")

        client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_client_credentials_omits_empty_scope(self):
        """Test scope and audience are only sent when configured."""
        client = _mock_client(_mock_response(json_body={"access_token": "tok"}))

        await exchange_client_credentials(client, TOKEN_ENDPOINT, "id", "secret")

        _, kwargs = client.post.call_args
        assert kwargs["data"] == {"grant_type": "client_credentials"}
        assert kwargs["headers"]["Authorization"] == basic_auth_header("id", "secret")

    @pytest.mark.asyncio
    async def test_jwt_assertion_grant(self):
        """Test the jwt-bearer grant posts the assertion."""
        client = _mock_client(_mock_response(json_body={"access_token": "tok"}))

        token, _ = await exchange_jwt_assertion(client, TOKEN_ENDPOINT, "a.b.c")

        assert token == "tok"
        _, kwargs = client.post.call_args
        assert kwargs["data"] == {
            "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
            "assertion": "a.b.c",
        }


def test_basic_auth_header():
    """Test basic header construction."""
    assert basic_auth_header("Aladdin", "open sesame") == "Basic QWxhZGRpbjpvcGVuIHNlc2FtZQ=="
