"""Command-line interface for the courier delivery service."""

from __future__ import annotations

import asyncio
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from courier.core.config import ConfigurationError, MainConfig, load_main_config
from courier.core.orchestrator import DeliveryOrchestrator
from courier.providers import build_registry
from courier.types import DeliveryOutcome, SendRequest
from courier.utils.logging import configure_logging

# Configuration file discovery paths in order of precedence
DEFAULT_CONFIG_FILES = [
    Path('config/courier.yaml'),
    Path('courier.yaml'),
    Path('courier.yml'),
]

# Exit codes
EXIT_DELIVERED = 0
EXIT_UNDELIVERED = 1
EXIT_CONFIG_ERROR = 2

try:
    __version__ = version("courier")
except PackageNotFoundError:
    __version__ = "unknown"


def discover_config_file() -> Path | None:
    """Return the first existing default configuration file, if any."""
    for config_path in DEFAULT_CONFIG_FILES:
        if config_path.exists() and config_path.is_file():
            return config_path
    return None


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path | None,
) -> Path | None:
    """Validate configuration file path.

    Raises:
        click.BadParameter: If the path is a directory or not a YAML file
    """
    if value is None:
        return value

    if value.exists() and value.is_dir():
        raise click.BadParameter('Configuration path must be a file, not a directory')

    valid_extensions = {'.yaml', '.yml'}
    if value.suffix.lower() not in valid_extensions:
        extensions_str = ", ".join(sorted(valid_extensions))
        raise click.BadParameter(
            f'Invalid configuration file extension. Supported extensions: {extensions_str}'
        )

    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level."""
    if value is None:
        return value

    normalized_value = value.upper().strip()

    valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
    if normalized_value not in valid_levels:
        raise click.BadParameter(
            f'Invalid log level "{value}". Valid options: {", ".join(sorted(valid_levels))}'
        )

    return normalized_value


def load_config(config_path: Path | None) -> MainConfig:
    """Load configuration from an explicit or discovered file, else defaults."""
    path = config_path if config_path is not None else discover_config_file()
    if path is None:
        return MainConfig()
    return load_main_config(path)


def _setup(ctx: click.Context) -> MainConfig:
    """Load configuration and configure logging for a subcommand."""
    options: dict[str, object] = ctx.obj  # pyright: ignore[reportAny]
    config_path = options['config']
    log_level = options['log_level']
    no_syslog = bool(options['no_syslog'])

    try:
        config = load_config(config_path if isinstance(config_path, Path) else None)
    except ConfigurationError as exc:
        click.echo(f"Configuration error:\n{exc}", err=True)
        ctx.exit(EXIT_CONFIG_ERROR)

    if isinstance(log_level, str):
        config.application.log_level = log_level

    configure_logging(
        log_level=config.application.log_level,
        enable_syslog=config.application.syslog_enabled and not no_syslog,
        enable_console=True,
    )
    return config


def format_outcome(outcome: DeliveryOutcome) -> str:
    """Render an outcome as human-readable lines."""
    lines = [
        f"Status: {outcome.status.value}",
        f"Provider: {outcome.provider_used}",
        f"Attempts: {outcome.attempts_made}",
        f"Fallback used: {'yes' if outcome.used_fallback else 'no'}",
        f"Correlation ID: {outcome.correlation_id}",
    ]
    if outcome.reason:
        lines.append(f"Reason: {outcome.reason}")
    return "\n".join(lines)


@click.group()
@click.option(
    '--config', '-c',
    type=click.Path(path_type=Path),
    default=None,
    callback=validate_config_path,
    help='Configuration file path (.yaml or .yml). Defaults to config/courier.yaml or courier.yaml when present.'
)
@click.option(
    '--log-level', '-l',
    type=str,
    default=None,
    callback=validate_log_level,
    help='Override logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)'
)
@click.option(
    '--no-syslog',
    is_flag=True,
    help='Disable syslog integration (useful for development)'
)
@click.version_option(version=__version__, prog_name='Courier')
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    log_level: str | None,
    no_syslog: bool,
) -> None:
    """Courier - resilient message dispatch with retry and fallback.

    Messages are sent through a randomly chosen primary provider, retried
    with exponential backoff, and handed to a fallback provider once the
    retries are exhausted.

    Examples:

        # Send one message with the default configuration
        courier send --recipient bob@example.com --subject Hi --body Hello

        # Serve POST /send-email on the configured port
        courier --config config/courier.yaml serve
    """
    ctx.obj = {
        'config': config,
        'log_level': log_level,
        'no_syslog': no_syslog,
    }


@cli.command()
@click.option('--recipient', '-r', required=True, help='Recipient address')
@click.option('--subject', '-s', required=True, help='Message subject')
@click.option('--body', '-b', required=True, help='Message body')
@click.option(
    '--timeout', '-t',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help='Overall deadline in seconds; the send is cancelled when it passes'
)
@click.pass_context
def send(
    ctx: click.Context,
    recipient: str,
    subject: str,
    body: str,
    timeout: float | None,
) -> None:
    """Send a single message and report the outcome.

    Exits with 0 when delivered, 1 when delivery failed or was cancelled and
    2 on configuration errors.
    """
    config = _setup(ctx)

    try:
        orchestrator = DeliveryOrchestrator(build_registry(config), policy=config.delivery)
        outcome = asyncio.run(
            orchestrator.send(
                SendRequest(recipient=recipient, subject=subject, body=body),
                timeout_seconds=timeout,
            )
        )
    except ConfigurationError as exc:
        click.echo(f"Configuration error:\n{exc}", err=True)
        ctx.exit(EXIT_CONFIG_ERROR)

    click.echo(format_outcome(outcome))
    ctx.exit(EXIT_DELIVERED if outcome.succeeded else EXIT_UNDELIVERED)


@cli.command()
@click.option('--host', type=str, default=None, help='Interface to bind (overrides config)')
@click.option('--port', '-p', type=click.IntRange(1, 65535), default=None, help='Port to listen on (overrides config)')
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve the HTTP API (POST /send-email, GET /health)."""
    from courier.app.server import run_server

    config = _setup(ctx)
    if host is not None:
        config.server.host = host
    if port is not None:
        config.server.port = port

    try:
        run_server(config)
    except KeyboardInterrupt:
        click.echo("\nShutting down gracefully...")
