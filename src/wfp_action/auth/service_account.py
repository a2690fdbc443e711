"""Service account key parsing and signed JWT assertion construction."""

import base64
import json
from datetime import datetime
from datetime import timezone
from typing import Optional

import jwt
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import ValidationError

from wfp_action.errors import AuthError


class ServiceAccountKey(BaseModel):
    """Fields of a Google service account JSON key used by the action."""

    model_config = ConfigDict(extra="ignore")

    client_email: str
    private_key: str
    project_id: Optional[str] = None
    token_uri: Optional[str] = None


def _b64decode(text: str) -> bytes:
    text += "=" * (-len(text) % 4)
    if "-" in text or "_" in text:
        return base64.urlsafe_b64decode(text)
    return base64.b64decode(text, validate=False)


def parse_service_account_key(raw_key: str) -> ServiceAccountKey:
    """
    Parse a service account key secret.

    The secret is normally base64 encoded JSON; a raw JSON document is accepted too.
    Missing padding and the url-safe alphabet are tolerated.

    Parameters
    ----------
    raw_key : str
        Secret value as stored by the scheduler

    Returns
    -------
    ServiceAccountKey
        Parsed key

    Raises
    ------
    AuthError
        If the secret is not valid JSON or lacks client_email/private_key
    """
    text = raw_key.strip()
    if not text.startswith("{"):
        try:
            text = _b64decode(text).decode("utf-8")
        except ValueError as e:  # binascii.Error, UnicodeDecodeError or non-ASCII input
            raise AuthError(f"Invalid service account key: {e}") from e

    try:
        key_data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AuthError(f"Invalid service account key: {e}") from e

    if not isinstance(key_data, dict):
        raise AuthError("Invalid service account key: expected a JSON object")

    try:
        return ServiceAccountKey.model_validate(key_data)
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise AuthError(f"Invalid service account key: missing or invalid field(s): {missing}") from e


def build_jwt_assertion(
    key: ServiceAccountKey,
    scope: str,
    audience: str,
    issued_at: datetime,
    lifetime_seconds: int = 3600,
) -> str:
    """
    Build the RS256 signed assertion exchanged at the OAuth2 token endpoint.

    Header is ``{"alg": "RS256", "typ": "JWT"}``; claims are ``iss``, ``scope``,
    ``aud``, ``iat`` and ``exp = iat + lifetime_seconds``.

    Raises
    ------
    AuthError
        If the private key cannot be loaded or used for signing
    """
    iat = int(issued_at.astimezone(timezone.utc).timestamp())
    payload = {
        "iss": key.client_email,
        "scope": scope,
        "aud": audience,
        "iat": iat,
        "exp": iat + lifetime_seconds,
    }
    headers = {"typ": "JWT"}

    try:
        return jwt.encode(payload, key.private_key, algorithm="RS256", headers=headers)
    except (ValueError, TypeError, jwt.PyJWTError) as e:
        raise AuthError(f"Invalid service account key: unable to sign assertion: {e}") from e
