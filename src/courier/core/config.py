"""Configuration system for the courier application.

This module implements the configuration schema using Pydantic for
validation, with support for environment variable resolution and fail-fast
validation with actionable error messages.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, Self

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Regular expression pattern for environment variable references
# Matches ${VARIABLE_NAME} syntax where VARIABLE_NAME can contain letters, digits, and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

MIN_PROVIDERS: Final[int] = 2


class ConfigurationError(Exception):
    """Exception raised when configuration is unusable.

    Covers file loading, YAML parsing, validation failures and a provider
    registry too small to support fallback. Raised before any delivery
    attempt is made.
    """


class EnvironmentVariableError(Exception):
    """Exception raised when environment variable resolution fails.

    Raised when a referenced environment variable is missing. The message
    names the variable but never its value.
    """


class RetryPolicy(BaseModel):
    """Retry and fallback policy for the delivery orchestrator.

    The policy is frozen: an orchestrator instance keeps the same limits for
    every request it handles.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[
        int,
        Field(
            ge=1,
            le=10,
            description="Attempts made against the primary provider before falling back",
        ),
    ] = 2
    base_delay_ms: Annotated[
        float,
        Field(
            ge=0,
            description="Base backoff delay in milliseconds, doubled per attempt",
        ),
    ] = 1000.0
    attempt_timeout_seconds: Annotated[
        float | None,
        Field(
            gt=0,
            description="Per-attempt timeout; an attempt exceeding it counts as rejected",
        ),
    ] = None
    request_timeout_seconds: Annotated[
        float | None,
        Field(
            gt=0,
            description="Overall deadline for one send request, after which it is cancelled",
        ),
    ] = None


class ProviderSettings(BaseModel):
    """Configuration for a single simulated delivery provider."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[
        str,
        Field(
            pattern=r"^[a-z][a-z0-9_]*$",
            description="Provider identifier (lowercase letters, digits, underscores)",
        ),
    ]
    sender: Annotated[
        str,
        Field(
            min_length=3,
            description="Sender address used for messages sent via this provider",
        ),
    ]
    success_probability: Annotated[
        float,
        Field(
            ge=0.0,
            le=1.0,
            description="Probability that a single attempt is delivered",
        ),
    ] = 0.5
    latency_ms: Annotated[
        float,
        Field(
            ge=0.0,
            description="Simulated latency per attempt in milliseconds",
        ),
    ] = 0.0

    @field_validator("sender", mode="after")
    @classmethod
    def validate_sender_address(cls, v: str) -> str:
        """Validate that the sender looks like an address.

        Args:
            v: Sender address

        Returns:
            Validated sender address

        Raises:
            ValueError: If the address has no local part or domain
        """
        local, _, domain = v.partition("@")
        if not local or not domain:
            msg = f"Sender must be an address like name@example.com, got: {v!r}"
            raise ValueError(msg)
        return v


def _default_providers() -> list[ProviderSettings]:
    return [
        ProviderSettings(name="primary_mail", sender="user1@example.com"),
        ProviderSettings(name="backup_mail", sender="user2@example.com"),
    ]


class ServerConfig(BaseModel):
    """Configuration for the HTTP transport shell."""

    host: Annotated[str, Field(description="Interface to bind the HTTP server to")] = "127.0.0.1"
    port: Annotated[int, Field(ge=1, le=65535, description="TCP port for the HTTP server")] = 3000


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False
    random_seed: Annotated[
        int | None,
        Field(
            description="Seed for provider selection and simulated outcomes (reproducible runs)",
        ),
    ] = None


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level container aggregating all configuration sections:
    - delivery: Retry and fallback policy
    - providers: Registered delivery providers, in registration order
    - server: HTTP shell settings
    - application: Logging and runtime settings
    """

    delivery: Annotated[
        RetryPolicy,
        Field(description="Retry and fallback policy"),
    ] = RetryPolicy()
    providers: Annotated[
        list[ProviderSettings],
        Field(
            default_factory=_default_providers,
            description="Delivery providers in registration order",
        ),
    ]
    server: Annotated[
        ServerConfig,
        Field(description="HTTP server configuration"),
    ] = ServerConfig()
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()

    @model_validator(mode="after")
    def validate_providers(self) -> Self:
        """Require enough uniquely named providers for fallback."""
        if len(self.providers) < MIN_PROVIDERS:
            msg = (
                f"At least {MIN_PROVIDERS} providers must be configured for fallback, "
                f"got {len(self.providers)}"
            )
            raise ValueError(msg)

        names = [provider.name for provider in self.providers]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"Duplicate provider name(s): {', '.join(duplicates)}"
            raise ValueError(msg)
        return self


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Parses ${VARIABLE_NAME} syntax and replaces with environment variable values.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing

    Examples:
        >>> os.environ["SENDER"] = "ops@example.com"
        >>> resolve_env_var("${SENDER}")
        'ops@example.com'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars(data: object) -> object:
    """Recursively resolve environment variables in YAML data.

    Strings are resolved, mappings and lists are traversed, all other values
    are preserved as-is.

    Args:
        data: Unvalidated YAML data

    Returns:
        New structure with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced environment variable is missing
    """
    if isinstance(data, str):
        return resolve_env_var(data)
    if isinstance(data, Mapping):
        return {str(key): resolve_env_vars(value) for key, value in data.items()}  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
    return data


def format_validation_error(error: ValidationError, config_path: Path) -> str:
    """Render a Pydantic validation error with field-level diagnostics."""
    error_lines = ["Configuration validation failed:", ""]
    for item in error.errors():
        field_path = " → ".join(str(loc) for loc in item["loc"]) or "(root)"
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {item['msg']}")
        error_lines.append(f"  Type: {item['type']}")
        error_lines.append("")

    error_lines.append(f"Configuration file: {config_path}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate application configuration from a YAML file.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded, references a missing
            environment variable, or fails validation
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    # An empty file means "all defaults"
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}"
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars(raw_data)
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}"
        )
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, config_path)) from e
