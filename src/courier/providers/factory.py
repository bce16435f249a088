"""Registry construction from configuration."""

from __future__ import annotations

import random

from courier.core.config import MainConfig
from courier.core.registry import ProviderRegistry
from courier.providers.simulated import create_provider
from courier.types import DeliveryProvider

__all__ = ["build_registry"]


def build_registry(
    config: MainConfig,
    *,
    rng: random.Random | None = None,
) -> ProviderRegistry[DeliveryProvider]:
    """Create a registry holding every configured provider in file order.

    When ``rng`` is omitted, ``application.random_seed`` seeds the random
    source, so a fixed seed reproduces primary selection and simulated
    outcomes. Each provider gets its own random source derived from it.
    """
    source = rng or random.Random(config.application.random_seed)

    registry: ProviderRegistry[DeliveryProvider] = ProviderRegistry(rng=source)
    for settings in config.providers:
        registry.register(create_provider(settings, rng=random.Random(source.random())))
    return registry
