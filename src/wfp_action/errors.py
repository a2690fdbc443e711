"""Error taxonomy for the workforce subject delete action.

Every failure raised by the action is an ``ActionError`` carrying a ``retryable``
flag. The flag is decided once, where the failure is detected, and is never
changed afterwards; the scheduler reads it to decide whether to retry.
"""

from typing import Any
from typing import Optional

import httpx

# Explicit exports
__all__ = [
    "RETRYABLE_STATUS_CODES",
    "ActionError",
    "AuthError",
    "FatalApiError",
    "FatalError",
    "InputValidationError",
    "RetryableApiError",
    "RetryableError",
    "classify_transport_error",
    "extract_error_message",
]

# Delete responses the scheduler should retry with backoff
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class ActionError(Exception):
    """Base class for classified action failures."""

    retryable: bool = False

    def __init__(self, message: str, retryable: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class FatalError(ActionError):
    """Failure that must not be retried."""

    retryable = False


class RetryableError(ActionError):
    """Transient failure the scheduler may retry."""

    retryable = True


class InputValidationError(FatalError):
    """Missing or malformed invocation parameters."""


class AuthError(FatalError):
    """Missing secret, malformed key material or failed token exchange."""


class FatalApiError(FatalError):
    """Non-2xx delete response outside the retryable set (404 excluded)."""

    def __init__(self, message: str, status_code: int, error_body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_body = error_body


class RetryableApiError(RetryableError):
    """Delete response with status 429, 502, 503 or 504."""

    def __init__(self, message: str, status_code: int, error_body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_body = error_body


def extract_error_message(error_body: Any) -> Optional[str]:
    """
    Pull the human readable message out of an upstream error payload.

    Google APIs answer with ``{"error": {"code": ..., "message": ..., "status": ...}}``;
    a flat ``{"message": ...}`` body is accepted as well.
    """
    if not isinstance(error_body, dict):
        return None

    error = error_body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    if error_body.get("message"):
        return str(error_body["message"])
    return None


def classify_transport_error(error: Exception, target: str) -> ActionError:
    """
    Classify a network-level failure raised by the HTTP transport.

    Timeouts are treated as transient. DNS failures, refused connections and any
    other transport error are fatal.

    Parameters
    ----------
    error : Exception
        The exception raised by httpx
    target : str
        Short description of what was being contacted (used in the message)

    Returns
    -------
    ActionError
        RetryableError for timeouts, FatalError otherwise
    """
    error_message = str(error)
    lowered = error_message.lower()

    if isinstance(error, httpx.TimeoutException):
        return RetryableError(f"Connection to {target} timed out: {error_message}")

    if "name or service not known" in lowered or "nodename nor servname" in lowered:
        detail = f"Unable to resolve {target} hostname"
    elif "connection refused" in lowered:
        detail = f"Connection to {target} was refused"
    elif "ssl" in lowered or "certificate" in lowered:
        detail = f"SSL/TLS error connecting to {target}"
    else:
        detail = f"Unable to connect to {target}"

    return FatalError(f"{detail}: {error_message}")
