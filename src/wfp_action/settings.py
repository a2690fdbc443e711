"""Settings for the workforce subject delete action."""

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

DEFAULT_IAM_BASE_URL = "https://iam.googleapis.com"
DEFAULT_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_OAUTH_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class Settings(BaseSettings):
    """
    Settings for the workforce subject delete action.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads
    configuration values from environment variables and an optional .env file.

    This class automatically reads from:
    1. Environment variables prefixed with ``WFP_`` (scheduler worker configuration)
    2. .env file (local development)

    Per-invocation values (secrets, ``ADDRESS`` override) come from the execution
    context handed over by the scheduler, not from here.
    """

    iam_base_url: str = DEFAULT_IAM_BASE_URL
    """Google Cloud IAM API host used when neither the params nor the context provide an address."""

    oauth_token_url: str = DEFAULT_OAUTH_TOKEN_URL
    """OAuth2 token endpoint for the service account JWT bearer exchange."""

    oauth_scope: str = DEFAULT_OAUTH_SCOPE
    """Scope requested in the service account assertion."""

    jwt_lifetime_seconds: int = 3600
    """Lifetime of the signed service account assertion (exp - iat)."""

    http_timeout_seconds: float = 30.0
    """Transport timeout applied to the token exchange and the delete request."""

    log_level: str = "INFO"
    """Minimum level for the stdout log sink."""

    model_config = SettingsConfigDict(
        env_prefix="WFP_",
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )
