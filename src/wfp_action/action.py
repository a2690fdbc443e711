"""
Workforce subject delete action.

Three lifecycle entry points driven by the job scheduler:

- ``invoke``: validate, authenticate, delete the subject once, return a success record
  or raise a classified ``ActionError``.
- ``error``: turn a previously raised error into a normalized failure record.
- ``halt``: acknowledge cancellation without touching the network.

Retries, backoff and halting decisions belong to the scheduler; ``invoke`` makes
exactly one delete attempt.
"""

from contextlib import asynccontextmanager
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Tuple
from typing import Union

import httpx
import pydantic
from loguru import logger

from wfp_action.auth.strategies import AuthConfig
from wfp_action.auth.strategies import ServiceAccountJwtAuth
from wfp_action.auth.strategies import acquire
from wfp_action.auth.strategies import select_auth_config
from wfp_action.errors import ActionError
from wfp_action.errors import FatalError
from wfp_action.errors import InputValidationError
from wfp_action.errors import classify_transport_error
from wfp_action.iam.workforce_pool import classify_outcome
from wfp_action.iam.workforce_pool import delete_subject
from wfp_action.monitoring.invocation_context import invocation_context
from wfp_action.schemas.schemas import REQUIRED_IDENTIFIERS
from wfp_action.schemas.schemas import ExecutionContext
from wfp_action.schemas.schemas import FailureResult
from wfp_action.schemas.schemas import HaltResult
from wfp_action.schemas.schemas import InvocationParams
from wfp_action.schemas.schemas import SuccessResult
from wfp_action.settings import Settings

ContextLike = Union[ExecutionContext, Mapping[str, Any], None]

# (snake_case, camelCase) spellings accepted from the scheduler
_IDENTIFIER_KEYS = {
    "workforce_pool_id": ("workforce_pool_id", "workforcePoolId"),
    "subject_id": ("subject_id", "subjectId"),
}


def _raw_identifier(params: Any, field: str) -> Any:
    if not isinstance(params, Mapping):
        return None
    for key in _IDENTIFIER_KEYS[field]:
        if params.get(key) is not None:
            return params[key]
    return None


def parse_params(params: Any) -> InvocationParams:
    """
    Parse and validate invocation parameters.

    Raises
    ------
    InputValidationError
        If params is not a mapping, or workforce_pool_id/subject_id is missing,
        not a string, empty or whitespace-only, or address/project_id is not a string
    """
    if not isinstance(params, Mapping):
        raise InputValidationError("Invocation parameters must be a JSON object")

    try:
        parsed = InvocationParams.model_validate(dict(params))
    except pydantic.ValidationError as e:
        field = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise InputValidationError(f"Invalid optional parameter: {field}") from e

    for field in REQUIRED_IDENTIFIERS:
        value = getattr(parsed, field)
        if not isinstance(value, str) or not value.strip():
            raise InputValidationError(f"Missing or invalid required parameter: {field}")

    return parsed


def parse_context(context: ContextLike) -> ExecutionContext:
    """Parse the scheduler execution context."""
    if isinstance(context, ExecutionContext):
        return context
    try:
        return ExecutionContext.model_validate(dict(context or {}))
    except (pydantic.ValidationError, TypeError, ValueError) as e:
        raise InputValidationError(f"Invalid execution context: {e}") from e


def resolve_project_id(params: InvocationParams, auth_config: AuthConfig) -> Optional[str]:
    """
    Resolve the project ID for the invocation.

    An explicit ``project_id`` parameter wins. Otherwise the service account key's
    ``project_id`` is used; the service account variant fails when neither exists.
    Other authentication variants do not need a project ID.
    """
    if params.project_id:
        return params.project_id

    if isinstance(auth_config, ServiceAccountJwtAuth):
        if not auth_config.key.project_id:
            raise FatalError("Project ID not found in service account key and not provided in parameters")
        return auth_config.key.project_id

    return None


def resolve_base_url(params: InvocationParams, context: ExecutionContext, settings: Settings) -> str:
    """IAM API host: ``address`` param, then ``ADDRESS`` env, then settings default."""
    env_address = context.env.get("ADDRESS")
    if not isinstance(env_address, str):
        env_address = None
    return params.address or env_address or settings.iam_base_url


@asynccontextmanager
async def _http_client(
    client: Optional[httpx.AsyncClient],
    settings: Settings,
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as owned_client:
        yield owned_client


async def invoke(
    params: Mapping[str, Any],
    context: ContextLike,
    *,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Delete one workforce pool subject.

    Parameters
    ----------
    params : Mapping[str, Any]
        Job input parameters (workforce_pool_id, subject_id, address?, project_id?)
    context : ExecutionContext or Mapping
        Execution context with env, secrets and outputs
    settings : Settings, optional
        Defaults for API host, token endpoint and timeouts
    client : httpx.AsyncClient, optional
        HTTP client to use; a client is created (and closed) per invocation otherwise

    Returns
    -------
    Dict[str, Any]
        ``{"status": "success", "workforce_pool_id", "subject_id", "deleted": True,
        "deleted_at", "already_deleted"?}``

    Raises
    ------
    ActionError
        Classified failure; ``retryable`` tells the scheduler whether to retry
    """
    settings = settings or Settings()

    with invocation_context(
        "invoke",
        workforce_pool_id=_raw_identifier(params, "workforce_pool_id"),
        subject_id=_raw_identifier(params, "subject_id"),
    ):
        logger.info("Starting workforce subject delete action")
        try:
            parsed = parse_params(params)
            execution_context = parse_context(context)

            auth_config = select_auth_config(execution_context.secrets, execution_context.env)
            project_id = resolve_project_id(parsed, auth_config)
            base_url = resolve_base_url(parsed, execution_context, settings)

            logger.info(
                "Processing workforce pool subject",
                project_id=project_id,
                base_url=base_url,
                auth_kind=auth_config.kind,
            )

            async with _http_client(client, settings) as http:
                credential = await acquire(auth_config, http, settings)
                try:
                    outcome = await delete_subject(
                        http,
                        parsed.workforce_pool_id,
                        parsed.subject_id,
                        credential,
                        base_url,
                    )
                except httpx.RequestError as e:
                    raise classify_transport_error(e, "Google Cloud IAM API") from e

            classified = classify_outcome(outcome)
            if classified is not None:
                raise classified

            result = SuccessResult(
                workforce_pool_id=parsed.workforce_pool_id,
                subject_id=parsed.subject_id,
                already_deleted=True if outcome.already_deleted else None,
            )
            logger.info("Workforce subject deletion completed successfully", already_deleted=outcome.already_deleted)
            return result.to_output()

        except ActionError as e:
            logger.error(
                "Error deleting workforce user",
                error_message=e.message,
                error_type=type(e).__name__,
                retryable=e.retryable,
            )
            raise
        except Exception as e:
            logger.opt(exception=True).error("Unexpected error deleting workforce user", error_type=type(e).__name__)
            raise FatalError(f"Unexpected error: {e}") from e


def normalize_error(error: Any) -> Tuple[str, bool]:
    """
    Extract ``(message, retryable)`` from whatever the scheduler passes back.

    Accepts an ActionError, any exception carrying a ``retryable`` attribute, a
    ``{"message", "retryable"}`` mapping or a bare string. Anything without an
    explicit retryable flag is fatal.
    """
    if isinstance(error, ActionError):
        return error.message, error.retryable
    if isinstance(error, BaseException):
        return str(error), getattr(error, "retryable", False) is True
    if isinstance(error, Mapping):
        message = error.get("message")
        return (str(message) if message is not None else "Unknown error"), error.get("retryable") is True
    if error is None:
        return "Unknown error", False
    return str(error), False


async def error(params: Mapping[str, Any], context: ContextLike = None) -> Dict[str, Any]:
    """
    Error handler: report a previously classified failure.

    Returns a normalized ``{"status": "failed", "retryable", "error", ...}`` record and
    leaves the retry decision to the scheduler. Retryability is passed through as-is.
    No deletion is attempted.
    """
    params = params if isinstance(params, Mapping) else {}
    workforce_pool_id = _raw_identifier(params, "workforce_pool_id")
    subject_id = _raw_identifier(params, "subject_id")

    with invocation_context("error", workforce_pool_id=workforce_pool_id, subject_id=subject_id):
        message, retryable = normalize_error(params.get("error"))
        logger.error(
            f"Error handler called for workforce pool {workforce_pool_id}, subject {subject_id}: {message}"
        )

        if retryable:
            logger.info("Error is retryable, will be retried by job scheduler")
        else:
            logger.error("Fatal error encountered, will not retry")

        return FailureResult(
            retryable=retryable,
            error=message,
            workforce_pool_id=workforce_pool_id,
            subject_id=subject_id,
        ).model_dump()


async def halt(params: Mapping[str, Any], context: ContextLike = None) -> Dict[str, Any]:
    """
    Graceful shutdown handler.

    The delete is a single idempotent request, so there is nothing to clean up and an
    in-flight request is not interrupted. Never raises; missing identifiers are
    reported as ``"unknown"``.
    """
    params = params if isinstance(params, Mapping) else {}
    workforce_pool_id = _raw_identifier(params, "workforce_pool_id") or "unknown"
    subject_id = _raw_identifier(params, "subject_id") or "unknown"
    reason = params.get("reason")

    with invocation_context("halt", workforce_pool_id=workforce_pool_id, subject_id=subject_id):
        logger.info(f"Job is being halted ({reason}) for workforce pool {workforce_pool_id}, subject {subject_id}")
        return HaltResult(
            workforce_pool_id=workforce_pool_id,
            subject_id=subject_id,
            reason=reason,
        ).model_dump()
