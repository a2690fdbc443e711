"""Module for exchanging credentials for an OAuth2 access token.

NOTE: Tokens are never cached. Each invocation performs its own exchange and
the resulting token lives only as long as that invocation.
"""

import base64
import json
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Dict
from typing import Optional
from typing import Tuple

import httpx
from loguru import logger

from wfp_action.errors import AuthError
from wfp_action.errors import classify_transport_error

DEFAULT_EXPIRES_IN = 3600
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"


def basic_auth_header(username: str, password: str) -> str:
    """Build an HTTP basic ``Authorization`` header value."""
    credentials = f"{username}:{password}"
    encoded_credentials = base64.b64encode(credentials.encode()).decode()
    return f"Basic {encoded_credentials}"


async def request_access_token(
    client: httpx.AsyncClient,
    token_url: str,
    data: Dict[str, str],
    headers: Optional[Dict[str, str]] = None,
) -> Tuple[str, datetime]:
    """
    POST a form-encoded grant to an OAuth2 token endpoint.

    Parameters
    ----------
    client : httpx.AsyncClient
        HTTP client owned by the current invocation
    token_url : str
        OAuth2 token endpoint
    data : Dict[str, str]
        Form fields of the grant (grant_type and its parameters)
    headers : Dict[str, str], optional
        Extra headers, e.g. a basic Authorization header

    Returns
    -------
    Tuple[str, datetime]
        A tuple containing:
        - access_token: The OAuth access token
        - expires_at_utc: Expiration time as datetime object in UTC

    Raises
    ------
    AuthError
        If the endpoint answers with a non-2xx status or an unusable body
    ActionError
        If the endpoint cannot be reached (timeouts are retryable)
    """
    created_at_utc = datetime.now(timezone.utc)
    request_headers = {"Content-Type": "application/x-www-form-urlencoded"}
    if headers:
        request_headers.update(headers)

    logger.debug("Requesting access token", token_url=token_url, grant_type=data.get("grant_type"))

    try:
        response = await client.post(token_url, data=data, headers=request_headers)
    except httpx.RequestError as e:
        raise classify_transport_error(e, "token endpoint") from e

    if not response.is_success:
        raise AuthError(f"Failed to get access token ({response.status_code}): {response.text}")

    try:
        token_data = response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise AuthError(f"Failed to parse token response as JSON: {e}") from e

    access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not access_token:
        raise AuthError("Access token not found in token response")

    token_expiry = token_data.get("expires_in") or DEFAULT_EXPIRES_IN
    try:
        expires_at_utc = created_at_utc + timedelta(seconds=int(token_expiry))
    except (TypeError, ValueError):
        expires_at_utc = created_at_utc + timedelta(seconds=DEFAULT_EXPIRES_IN)

    logger.info("Access token obtained", token_url=token_url, expires_at=expires_at_utc.isoformat())
    return access_token, expires_at_utc


async def exchange_client_credentials(
    client: httpx.AsyncClient,
    token_url: str,
    client_id: str,
    client_secret: str,
    scope: Optional[str] = None,
    audience: Optional[str] = None,
    auth_style: str = "in_header",
) -> Tuple[str, datetime]:
    """
    Run the OAuth2 client credentials grant.

    ``auth_style`` selects where the client credentials travel: ``in_header`` sends them
    as an HTTP basic Authorization header, ``in_params`` puts them in the form body.
    """
    payload = {"grant_type": "client_credentials"}
    if scope:
        payload["scope"] = scope
    if audience:
        payload["audience"] = audience

    headers: Dict[str, str] = {}
    if auth_style == "in_header":
        headers["Authorization"] = basic_auth_header(client_id, client_secret)
    elif auth_style == "in_params":
        payload["client_id"] = client_id
        payload["client_secret"] = client_secret
    else:
        raise AuthError(f"Unsupported OAuth2 client credentials auth style: {auth_style}")

    return await request_access_token(client, token_url, payload, headers)


async def exchange_jwt_assertion(
    client: httpx.AsyncClient,
    token_url: str,
    assertion: str,
) -> Tuple[str, datetime]:
    """Exchange a signed JWT assertion for an access token (jwt-bearer grant)."""
    payload = {"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion}
    return await request_access_token(client, token_url, payload)
