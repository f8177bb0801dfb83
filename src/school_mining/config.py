"""Collector configuration loaded from environment variables.

Variable names match the deployment's existing .env files (SERVER, SCHOOL,
USERNAME, ...). The config object is built once at startup by
load_config() and handed to the components that need it.
"""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from src.school_mining.errors import ConfigError


class CollectorConfig(BaseSettings):
    """Collector configuration loaded from environment variables.

    For local development, create a .env file in the project root.
    """

    # WebUntis settings
    server: str = Field(description="WebUntis server host or URL")
    school: str = Field(description="WebUntis school name")
    username: str = Field(description="WebUntis account name")
    password: str = Field(description="WebUntis account password")

    # Pseudonymization
    secret: str = Field(description="Secret mixed into teacher name digests")

    # Paths
    storage_path: str = Field(description="Root directory of the snapshot archive")
    state_path: str | None = Field(
        default=None,
        description="Local status file written at each lifecycle step",
    )
    state_check_url: str | None = Field(
        default=None,
        description="URL of another host's status file, checked before running",
    )

    # Network
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for WebUntis requests",
    )
    state_check_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for the status check request",
    )

    # Logging
    log_path: str | None = Field(
        default="log/",
        description="Directory for the daily rotated log file, empty to disable",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("state_path", "state_check_url", "log_path", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def secret_bytes(self) -> bytes:
        return self.secret.encode("utf-8")


def load_config(env_file: str | None = ".env", **overrides: object) -> CollectorConfig:
    """Build the collector configuration.

    Args:
        env_file: .env file read in addition to the process environment,
            None to read the environment only.
        **overrides: Field values taking precedence over the environment.

    Returns:
        CollectorConfig: Validated configuration.

    Raises:
        ConfigError: If a required variable is missing or a value is invalid.
    """
    try:
        return CollectorConfig(_env_file=env_file, **overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            name = ".".join(str(part) for part in error["loc"]).upper()
            if error["type"] == "missing":
                problems.append(f"{name} is not set")
            else:
                problems.append(f"{name}: {error['msg']}")
        raise ConfigError("Invalid configuration: " + "; ".join(problems)) from e
