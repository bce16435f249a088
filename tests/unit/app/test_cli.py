"""Tests for CLI interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from courier.app.cli import EXIT_CONFIG_ERROR, EXIT_DELIVERED, EXIT_UNDELIVERED, cli

pytestmark = pytest.mark.usefixtures("restore_root_logger")

SEND_ARGS = ["send", "--recipient", "bob@example.com", "--subject", "Hi", "--body", "Hello"]


def _write_config(tmp_path: Path, *, probability: float) -> Path:
    config_file = tmp_path / "courier.yaml"
    _ = config_file.write_text(
        f"""
delivery:
  max_retries: 2
  base_delay_ms: 0
providers:
  - name: primary_mail
    sender: user1@example.com
    success_probability: {probability}
  - name: backup_mail
    sender: user2@example.com
    success_probability: {probability}
application:
  log_level: WARNING
  random_seed: 1
""",
        encoding="utf-8",
    )
    return config_file


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.mark.integration
class TestCLIBasicFunctionality:
    """Test basic CLI functionality."""

    def test_cli_help_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Courier" in result.output
        assert "--config" in result.output
        assert "--log-level" in result.output
        assert "send" in result.output
        assert "serve" in result.output

    def test_cli_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "version" in result.output.lower()

    def test_invalid_log_level(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "VERBOSE", *SEND_ARGS])

        assert result.exit_code == 2
        assert "Invalid log level" in result.output

    def test_invalid_config_extension(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = tmp_path / "courier.json"
        _ = config_file.write_text("{}", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config_file), *SEND_ARGS])

        assert result.exit_code == 2
        assert "Invalid configuration file extension" in result.output


@pytest.mark.integration
class TestSendCommand:
    """Test the send subcommand exit codes and output."""

    def test_delivered_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, probability=1.0)

        result = runner.invoke(cli, ["--config", str(config_file), "--no-syslog", *SEND_ARGS])

        assert result.exit_code == EXIT_DELIVERED
        assert "Status: delivered" in result.output
        assert "Attempts: 1" in result.output
        assert "Fallback used: no" in result.output

    def test_failed_exit_code(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, probability=0.0)

        result = runner.invoke(cli, ["--config", str(config_file), "--no-syslog", *SEND_ARGS])

        assert result.exit_code == EXIT_UNDELIVERED
        assert "Status: failed" in result.output
        assert "Attempts: 3" in result.output
        assert "Fallback used: yes" in result.output
        assert "Reason: " in result.output

    def test_missing_config_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), *SEND_ARGS])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Configuration file not found" in result.output

    def test_invalid_config_content(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text(
            "providers:\n  - name: only\n    sender: user1@example.com\n",
            encoding="utf-8",
        )

        result = runner.invoke(cli, ["--config", str(config_file), *SEND_ARGS])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "At least 2 providers" in result.output

    def test_missing_required_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["send", "--recipient", "bob@example.com"])

        assert result.exit_code == 2
        assert "Missing option" in result.output


@pytest.mark.integration
class TestServeCommand:
    """Test the serve subcommand wiring."""

    def test_serve_applies_overrides(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, probability=1.0)

        with patch("courier.app.server.run_server") as mock_run:
            mock_run.return_value = None
            result = runner.invoke(
                cli,
                ["--config", str(config_file), "serve", "--host", "0.0.0.0", "--port", "8080"],
            )

        assert result.exit_code == 0
        mock_run.assert_called_once()
        config = mock_run.call_args.args[0]
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080

    def test_serve_keyboard_interrupt(self, runner: CliRunner, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, probability=1.0)
        mock_run = MagicMock(side_effect=KeyboardInterrupt)

        with patch("courier.app.server.run_server", mock_run):
            result = runner.invoke(cli, ["--config", str(config_file), "serve"])

        assert result.exit_code == 0
        assert "Shutting down gracefully" in result.output
