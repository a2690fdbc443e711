"""Credential provider: turn scheduler secrets into an Authorization value.

The authentication variant is chosen once, by ``select_auth_config``, from the
secrets that are populated. ``acquire`` then produces a ``Credential`` for that
variant. Nothing is cached; every invocation derives its own credential.
"""

from datetime import datetime
from datetime import timezone
from typing import Annotated
from typing import Any
from typing import Literal
from typing import Mapping
from typing import Optional
from typing import Union

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import Field

from wfp_action.auth.service_account import ServiceAccountKey
from wfp_action.auth.service_account import build_jwt_assertion
from wfp_action.auth.service_account import parse_service_account_key
from wfp_action.auth.token_gen import basic_auth_header
from wfp_action.auth.token_gen import exchange_client_credentials
from wfp_action.auth.token_gen import exchange_jwt_assertion
from wfp_action.errors import AuthError
from wfp_action.schemas.schemas import Credential
from wfp_action.settings import Settings

# Secret keys
SERVICE_ACCOUNT_KEY = "service_account_key"
BEARER_AUTH_TOKEN = "BEARER_AUTH_TOKEN"
BASIC_USERNAME = "BASIC_USERNAME"
BASIC_PASSWORD = "BASIC_PASSWORD"
OAUTH2_CLIENT_SECRET = "OAUTH2_CLIENT_CREDENTIALS_CLIENT_SECRET"
OAUTH2_ACCESS_TOKEN = "OAUTH2_AUTHORIZATION_CODE_ACCESS_TOKEN"

# Environment keys for the client credentials grant
OAUTH2_ENV_PREFIX = "OAUTH2_CLIENT_CREDENTIALS_"
OAUTH2_CLIENT_ID = f"{OAUTH2_ENV_PREFIX}CLIENT_ID"
OAUTH2_TOKEN_URL = f"{OAUTH2_ENV_PREFIX}TOKEN_URL"
OAUTH2_SCOPE = f"{OAUTH2_ENV_PREFIX}SCOPE"
OAUTH2_AUDIENCE = f"{OAUTH2_ENV_PREFIX}AUDIENCE"
OAUTH2_AUTH_STYLE = f"{OAUTH2_ENV_PREFIX}AUTH_STYLE"

SUPPORTED_SECRETS_HINT = (
    f"{SERVICE_ACCOUNT_KEY}, {BEARER_AUTH_TOKEN}, {BASIC_USERNAME}/{BASIC_PASSWORD}, "
    f"{OAUTH2_CLIENT_SECRET} or {OAUTH2_ACCESS_TOKEN}"
)


class ServiceAccountJwtAuth(BaseModel):
    """Google service account key exchanged through a signed JWT assertion."""

    kind: Literal["service_account_jwt"] = "service_account_jwt"
    key: ServiceAccountKey


class StaticTokenAuth(BaseModel):
    """Pre-shared bearer token."""

    kind: Literal["static_token"] = "static_token"
    token: str


class BasicAuth(BaseModel):
    """Username/password pair sent as HTTP basic auth."""

    kind: Literal["basic"] = "basic"
    username: str
    password: str


class ClientCredentialsAuth(BaseModel):
    """OAuth2 client credentials grant configuration."""

    kind: Literal["client_credentials"] = "client_credentials"
    client_id: str
    client_secret: str
    token_url: str
    scope: Optional[str] = None
    audience: Optional[str] = None
    auth_style: Literal["in_header", "in_params"] = "in_header"


class AuthCodeTokenAuth(BaseModel):
    """Access token previously obtained through the OAuth2 authorization code flow."""

    kind: Literal["auth_code_token"] = "auth_code_token"
    access_token: str


AuthConfig = Annotated[
    Union[ServiceAccountJwtAuth, StaticTokenAuth, BasicAuth, ClientCredentialsAuth, AuthCodeTokenAuth],
    Field(discriminator="kind"),
]


def _present(mapping: Mapping[str, Any], key: str) -> Optional[str]:
    value = mapping.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def select_auth_config(secrets: Mapping[str, Any], env: Mapping[str, Any]) -> AuthConfig:
    """
    Pick the authentication variant from the populated secrets.

    Precedence: service account key, bearer token, basic pair, client credentials,
    authorization-code access token.

    Raises
    ------
    AuthError
        If no recognized secret combination is present or the key material is malformed
    """
    service_account_key = _present(secrets, SERVICE_ACCOUNT_KEY)
    if service_account_key:
        return ServiceAccountJwtAuth(key=parse_service_account_key(service_account_key))

    bearer_token = _present(secrets, BEARER_AUTH_TOKEN)
    if bearer_token:
        return StaticTokenAuth(token=bearer_token)

    username = _present(secrets, BASIC_USERNAME)
    password = secrets.get(BASIC_PASSWORD)
    if username and password:
        return BasicAuth(username=username, password=password)

    client_secret = _present(secrets, OAUTH2_CLIENT_SECRET)
    if client_secret:
        client_id = _present(env, OAUTH2_CLIENT_ID)
        token_url = _present(env, OAUTH2_TOKEN_URL)
        if not client_id or not token_url:
            raise AuthError(
                f"Missing OAuth2 client credentials configuration: {OAUTH2_CLIENT_ID} and "
                f"{OAUTH2_TOKEN_URL} are required"
            )
        auth_style = _present(env, OAUTH2_AUTH_STYLE) or "in_header"
        if auth_style not in ("in_header", "in_params"):
            raise AuthError(f"Unsupported OAuth2 client credentials auth style: {auth_style}")
        return ClientCredentialsAuth(
            client_id=client_id,
            client_secret=client_secret,
            token_url=token_url,
            scope=_present(env, OAUTH2_SCOPE),
            audience=_present(env, OAUTH2_AUDIENCE),
            auth_style=auth_style,
        )

    access_token = _present(secrets, OAUTH2_ACCESS_TOKEN)
    if access_token:
        return AuthCodeTokenAuth(access_token=access_token)

    raise AuthError(f"Missing required secret: provide one of {SUPPORTED_SECRETS_HINT}")


def _bearer(token: str) -> str:
    # values that already carry a scheme ("Bearer x", "Token x") are usable header values
    if " " in token:
        return token
    return f"Bearer {token}"


async def acquire(
    auth_config: AuthConfig,
    client: httpx.AsyncClient,
    settings: Settings,
) -> Credential:
    """
    Produce an Authorization value for the selected variant.

    Only the OAuth2 variants contact the network (one token exchange).

    Parameters
    ----------
    auth_config : AuthConfig
        Variant returned by ``select_auth_config``
    client : httpx.AsyncClient
        HTTP client owned by the current invocation
    settings : Settings
        Token endpoint, scope and assertion lifetime

    Returns
    -------
    Credential
        Authorization header value with its scheme and expiry (when known)
    """
    logger.info("Acquiring credential", auth_kind=auth_config.kind)

    if isinstance(auth_config, StaticTokenAuth):
        return Credential(authorization=_bearer(auth_config.token), scheme="bearer")

    if isinstance(auth_config, AuthCodeTokenAuth):
        return Credential(authorization=_bearer(auth_config.access_token), scheme="bearer")

    if isinstance(auth_config, BasicAuth):
        return Credential(
            authorization=basic_auth_header(auth_config.username, auth_config.password),
            scheme="basic",
        )

    if isinstance(auth_config, ClientCredentialsAuth):
        token, expires_at = await exchange_client_credentials(
            client,
            token_url=auth_config.token_url,
            client_id=auth_config.client_id,
            client_secret=auth_config.client_secret,
            scope=auth_config.scope,
            audience=auth_config.audience,
            auth_style=auth_config.auth_style,
        )
        return Credential(authorization=f"Bearer {token}", scheme="bearer", expires_at=expires_at)

    if isinstance(auth_config, ServiceAccountJwtAuth):
        token_url = auth_config.key.token_uri or settings.oauth_token_url
        assertion = build_jwt_assertion(
            auth_config.key,
            scope=settings.oauth_scope,
            audience=token_url,
            issued_at=datetime.now(timezone.utc),
            lifetime_seconds=settings.jwt_lifetime_seconds,
        )
        token, expires_at = await exchange_jwt_assertion(client, token_url, assertion)
        return Credential(authorization=f"Bearer {token}", scheme="bearer", expires_at=expires_at)

    raise AuthError(f"Unsupported authentication configuration: {type(auth_config).__name__}")

