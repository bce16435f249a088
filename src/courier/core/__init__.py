"""Delivery orchestration engine: registry, backoff, policy and orchestrator."""

from courier.core.backoff import backoff_schedule, compute_backoff_delay
from courier.core.config import (
    ConfigurationError,
    EnvironmentVariableError,
    MainConfig,
    RetryPolicy,
    load_main_config,
)
from courier.core.orchestrator import DeliveryOrchestrator
from courier.core.registry import ProviderRegistry

__all__ = [
    "ConfigurationError",
    "DeliveryOrchestrator",
    "EnvironmentVariableError",
    "MainConfig",
    "ProviderRegistry",
    "RetryPolicy",
    "backoff_schedule",
    "compute_backoff_delay",
    "load_main_config",
]
