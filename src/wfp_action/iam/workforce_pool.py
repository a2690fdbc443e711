"""Module for deleting subjects from a Google Cloud IAM workforce pool."""

import json
from typing import Any
from typing import Optional
from urllib.parse import quote

import httpx
from loguru import logger

from wfp_action.errors import RETRYABLE_STATUS_CODES
from wfp_action.errors import ActionError
from wfp_action.errors import FatalApiError
from wfp_action.errors import RetryableApiError
from wfp_action.errors import extract_error_message
from wfp_action.schemas.schemas import Credential
from wfp_action.schemas.schemas import DeleteOutcome


def build_subject_url(base_url: str, workforce_pool_id: str, subject_id: str) -> str:
    """
    Build the IAM resource URL of a workforce pool subject.

    Example:
        >>> build_subject_url("https://iam.googleapis.com/", "pool-1", "user@example.com")
        'https://iam.googleapis.com/v1/locations/global/workforcePools/pool-1/subjects/user%40example.com'
    """
    return (
        f"{base_url.rstrip('/')}/v1/locations/global/workforcePools/"
        f"{quote(workforce_pool_id, safe='')}/subjects/{quote(subject_id, safe='')}"
    )


def _parse_error_body(response: httpx.Response) -> Optional[Any]:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError):
        return None


def interpret_status(status_code: int, error_body: Optional[Any] = None) -> DeleteOutcome:
    """
    Map a delete response status onto a DeleteOutcome.

    2xx is a success, 404 is an idempotent success (subject already gone),
    anything else is a failure to be classified by ``classify_outcome``.
    """
    if 200 <= status_code < 300:
        return DeleteOutcome(success=True, status_code=status_code)
    if status_code == 404:
        return DeleteOutcome(success=True, status_code=status_code, already_deleted=True)
    return DeleteOutcome(success=False, status_code=status_code, error_body=error_body)


async def delete_subject(
    client: httpx.AsyncClient,
    workforce_pool_id: str,
    subject_id: str,
    credential: Credential,
    base_url: str,
) -> DeleteOutcome:
    """
    Delete a workforce pool subject.

    Issues exactly one DELETE request. HTTP error statuses do not raise; they are
    captured in the returned outcome together with the JSON error body (if any).

    Args:
        client: HTTP client owned by the current invocation
        workforce_pool_id: Workforce pool ID
        subject_id: Subject ID of the user to delete
        credential: Authorization value for the request
        base_url: IAM API host

    Returns:
        DeleteOutcome with success/already_deleted flags and the status code

    Raises:
        httpx.RequestError: On transport failures (DNS, refused connection, timeout)
    """
    url = build_subject_url(base_url, workforce_pool_id, subject_id)
    logger.info("Deleting workforce pool subject", url=url)

    response = await client.delete(
        url,
        headers={
            "Authorization": credential.authorization,
            "Content-Type": "application/json",
        },
    )

    error_body = None if response.is_success else _parse_error_body(response)
    outcome = interpret_status(response.status_code, error_body)

    if outcome.already_deleted:
        logger.info("Workforce pool subject not found, considering deletion successful")
    elif outcome.success:
        logger.info("Successfully deleted workforce pool subject", status_code=response.status_code)
    else:
        logger.warning("Workforce pool subject deletion failed", status_code=response.status_code)

    return outcome


def classify_outcome(outcome: DeleteOutcome) -> Optional[ActionError]:
    """
    Build the classified error for a failed delete outcome.

    Returns None for successful (including already deleted) outcomes.
    """
    if outcome.success:
        return None

    upstream_message = extract_error_message(outcome.error_body)
    suffix = f": {upstream_message}" if upstream_message else ""

    if outcome.status_code in RETRYABLE_STATUS_CODES:
        return RetryableApiError(
            f"Google Cloud API error ({outcome.status_code}){suffix}",
            status_code=outcome.status_code,
            error_body=outcome.error_body,
        )

    return FatalApiError(
        f"Failed to delete workforce user ({outcome.status_code}){suffix}",
        status_code=outcome.status_code,
        error_body=outcome.error_body,
    )
