##############################################
# --- Invocation input and result schemas --- #
##############################################

from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Dict
from typing import Literal
from typing import Optional

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

REQUIRED_IDENTIFIERS = ("workforce_pool_id", "subject_id")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# input
class InvocationParams(BaseModel):
    """
    Parameters supplied by the scheduler for one invocation.

    Both camelCase and snake_case keys are accepted. Values are kept as given so that
    validation can report the offending field by name instead of failing on type coercion.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    workforce_pool_id: Any = Field(
        default=None,
        validation_alias=AliasChoices("workforce_pool_id", "workforcePoolId"),
    )
    subject_id: Any = Field(
        default=None,
        validation_alias=AliasChoices("subject_id", "subjectId"),
    )
    address: Optional[str] = None
    project_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("project_id", "projectId"),
    )


class ExecutionContext(BaseModel):
    """Secrets and environment handed over by the scheduler; read-only to the action."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    secrets: Dict[str, Any] = Field(default_factory=dict)
    env: Dict[str, Any] = Field(default_factory=dict)
    outputs: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("secrets", "env", "outputs", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        """Schedulers send ``null`` for an empty section."""
        return {} if value is None else value


class Credential(BaseModel):
    """Authorization value usable for a single delete call."""

    model_config = ConfigDict(frozen=True)

    authorization: str
    """Full ``Authorization`` header value, e.g. ``Bearer ya29...``."""

    scheme: str
    expires_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"Credential(scheme={self.scheme!r}, expires_at={self.expires_at!r})"

    __str__ = __repr__


class DeleteOutcome(BaseModel):
    """Normalized result of the DELETE call."""

    success: bool
    status_code: int
    already_deleted: bool = False
    error_body: Optional[Any] = None


# output
class SuccessResult(BaseModel):
    """Result returned by invoke when the subject is gone."""

    status: Literal["success"] = "success"
    workforce_pool_id: str
    subject_id: str
    deleted: bool = True
    already_deleted: Optional[bool] = None
    deleted_at: str = Field(default_factory=utc_now_iso)

    def to_output(self) -> Dict[str, Any]:
        """Serialize for the scheduler; ``already_deleted`` only appears when true."""
        return self.model_dump(exclude_none=True)


class FailureResult(BaseModel):
    """Normalized failure record returned by the error handler."""

    status: Literal["failed"] = "failed"
    retryable: bool
    error: str
    workforce_pool_id: Optional[Any] = None
    subject_id: Optional[Any] = None


class HaltResult(BaseModel):
    """Acknowledgment returned by the halt handler."""

    status: Literal["halted"] = "halted"
    workforce_pool_id: Any = "unknown"
    subject_id: Any = "unknown"
    reason: Optional[Any] = None
    halted_at: str = Field(default_factory=utc_now_iso)
