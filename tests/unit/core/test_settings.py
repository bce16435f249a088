"""Unit tests for configuration system.

Tests for Pydantic configuration models, environment variable resolution
and YAML loading with actionable errors.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from courier.core.config import (
    ENV_VAR_PATTERN,
    ApplicationConfig,
    ConfigurationError,
    EnvironmentVariableError,
    MainConfig,
    ProviderSettings,
    RetryPolicy,
    load_main_config,
    resolve_env_var,
    resolve_env_vars,
)


@pytest.mark.unit
class TestRetryPolicy:
    """Test RetryPolicy validation and defaults."""

    def test_default_values(self) -> None:
        policy = RetryPolicy()

        assert policy.max_retries == 2
        assert policy.base_delay_ms == 1000.0
        assert policy.attempt_timeout_seconds is None
        assert policy.request_timeout_seconds is None

    @pytest.mark.parametrize("max_retries", [0, -1, 11])
    def test_max_retries_bounds(self, max_retries: int) -> None:
        with pytest.raises(ValidationError):
            _ = RetryPolicy(max_retries=max_retries)

    def test_negative_base_delay_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = RetryPolicy(base_delay_ms=-1)

    def test_zero_timeouts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = RetryPolicy(attempt_timeout_seconds=0)
        with pytest.raises(ValidationError):
            _ = RetryPolicy(request_timeout_seconds=0)

    def test_policy_is_frozen(self) -> None:
        policy = RetryPolicy()

        with pytest.raises(ValidationError):
            policy.max_retries = 5  # pyright: ignore[reportAttributeAccessIssue]

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = RetryPolicy.model_validate({"max_retries": 2, "jitter": True})


@pytest.mark.unit
class TestProviderSettings:
    """Test ProviderSettings validation."""

    def test_valid_provider(self) -> None:
        settings = ProviderSettings(name="primary_mail", sender="user1@example.com", success_probability=0.9)

        assert settings.name == "primary_mail"
        assert settings.sender == "user1@example.com"
        assert settings.success_probability == 0.9
        assert settings.latency_ms == 0.0

    @pytest.mark.parametrize("name", ["Primary", "1mail", "primary-mail", ""])
    def test_invalid_names_rejected(self, name: str) -> None:
        with pytest.raises(ValidationError):
            _ = ProviderSettings(name=name, sender="user1@example.com")

    @pytest.mark.parametrize("sender", ["user1", "@example.com", "user1@"])
    def test_invalid_sender_rejected(self, sender: str) -> None:
        with pytest.raises(ValidationError, match="Sender must be an address"):
            _ = ProviderSettings(name="primary_mail", sender=sender)

    @pytest.mark.parametrize("probability", [-0.1, 1.5])
    def test_probability_bounds(self, probability: float) -> None:
        with pytest.raises(ValidationError):
            _ = ProviderSettings(name="primary_mail", sender="user1@example.com", success_probability=probability)


@pytest.mark.unit
class TestMainConfig:
    """Test MainConfig defaults and cross-field validation."""

    def test_defaults_provide_two_providers(self) -> None:
        config = MainConfig()

        assert [provider.name for provider in config.providers] == ["primary_mail", "backup_mail"]
        assert [provider.sender for provider in config.providers] == ["user1@example.com", "user2@example.com"]
        assert config.server.port == 3000
        assert config.application.log_level == "INFO"

    def test_single_provider_rejected(self) -> None:
        with pytest.raises(ValidationError, match="At least 2 providers"):
            _ = MainConfig(providers=[ProviderSettings(name="only", sender="user1@example.com")])

    def test_duplicate_provider_names_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate provider name"):
            _ = MainConfig(
                providers=[
                    ProviderSettings(name="mail", sender="user1@example.com"),
                    ProviderSettings(name="mail", sender="user2@example.com"),
                ]
            )

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _ = ApplicationConfig(log_level="VERBOSE")


@pytest.mark.unit
class TestEnvironmentVariables:
    """Test ${VAR} resolution."""

    def test_pattern_matches_uppercase_names(self) -> None:
        assert ENV_VAR_PATTERN.findall("${SENDER_1} and ${lower}") == ["SENDER_1"]

    def test_resolve_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COURIER_SENDER", "ops@example.com")

        assert resolve_env_var("${COURIER_SENDER}") == "ops@example.com"
        assert resolve_env_var("prefix-${COURIER_SENDER}") == "prefix-ops@example.com"
        assert resolve_env_var("no references") == "no references"

    def test_missing_variable_names_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COURIER_MISSING", raising=False)

        with pytest.raises(EnvironmentVariableError, match="COURIER_MISSING"):
            _ = resolve_env_var("${COURIER_MISSING}")

    def test_resolve_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COURIER_SENDER", "ops@example.com")
        data = {
            "providers": [{"name": "mail", "sender": "${COURIER_SENDER}", "success_probability": 0.5}],
            "delivery": {"max_retries": 3},
        }

        assert resolve_env_vars(data) == {
            "providers": [{"name": "mail", "sender": "ops@example.com", "success_probability": 0.5}],
            "delivery": {"max_retries": 3},
        }


@pytest.mark.unit
class TestLoadMainConfig:
    """Test YAML loading."""

    def test_load_valid_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BACKUP_SENDER", "user2@example.com")
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text(
            """
delivery:
  max_retries: 3
  base_delay_ms: 250
providers:
  - name: primary_mail
    sender: user1@example.com
    success_probability: 0.8
  - name: backup_mail
    sender: ${BACKUP_SENDER}
application:
  random_seed: 42
""",
            encoding="utf-8",
        )

        config = load_main_config(config_file)

        assert config.delivery.max_retries == 3
        assert config.delivery.base_delay_ms == 250.0
        assert config.providers[1].sender == "user2@example.com"
        assert config.application.random_seed == 42

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text("", encoding="utf-8")

        config = load_main_config(config_file)

        assert config == MainConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            _ = load_main_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text("delivery: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            _ = load_main_config(config_file)

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Expected YAML dictionary"):
            _ = load_main_config(config_file)

    def test_missing_env_var_wrapped(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("COURIER_UNSET", raising=False)
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text(
            "providers:\n  - name: a\n    sender: ${COURIER_UNSET}\n  - name: b\n    sender: b@example.com\n",
            encoding="utf-8",
        )

        with pytest.raises(ConfigurationError, match="COURIER_UNSET"):
            _ = load_main_config(config_file)

    def test_validation_error_lists_fields(self, tmp_path: Path) -> None:
        config_file = tmp_path / "courier.yaml"
        _ = config_file.write_text("delivery:\n  max_retries: 0\n", encoding="utf-8")

        with pytest.raises(ConfigurationError) as exc_info:
            _ = load_main_config(config_file)

        message = str(exc_info.value)
        assert "Configuration validation failed" in message
        assert "delivery → max_retries" in message
        assert str(config_file) in message

    def test_bundled_example_config_is_valid(self) -> None:
        config_path = Path(__file__).parents[3] / "config" / "courier.yaml"

        config = load_main_config(config_path)

        assert len(config.providers) == 2
        assert config.delivery.max_retries == 2
