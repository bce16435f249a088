"""Provider registry holding the candidate delivery providers.

The registry stores provider instances keyed by their identifier in
registration order and answers the two selection questions the orchestrator
asks: which provider to start with, and which one to fall back to.
"""

from __future__ import annotations

import random
import re

from courier.core.config import MIN_PROVIDERS, ConfigurationError
from courier.types import DeliveryProvider

__all__ = ["ProviderRegistry"]

_IDENTIFIER_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class ProviderRegistry[T: DeliveryProvider]:
    """Ordered registry of delivery providers.

    Lookups have no side effects, so a registry populated at start-up can be
    shared by concurrent requests without locking.

    Args:
        rng: Random source used for primary selection. Pass a seeded
            ``random.Random`` for reproducible selection.
    """

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng: random.Random = rng or random.Random()
        self._providers: dict[str, T] = {}

    def register(self, provider: T) -> None:
        """Register a provider under its name."""
        slug = self._normalize_identifier(provider.name)
        if slug in self._providers:
            msg = f"Provider {slug!r} already registered"
            raise ValueError(msg)

        self._providers[slug] = provider

    def __contains__(self, identifier: str) -> bool:
        """Return True if the registry contains the identifier."""
        slug = self._normalize_identifier(identifier)
        return slug in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    def get(self, identifier: str) -> T | None:
        """Return the registered provider for the identifier."""
        slug = self._normalize_identifier(identifier)
        return self._providers.get(slug)

    def require(self, identifier: str) -> T:
        """Return the registered provider or raise KeyError."""
        slug = self._normalize_identifier(identifier)
        if slug not in self._providers:
            msg = f"Provider {slug!r} is not registered"
            raise KeyError(msg)
        return self._providers[slug]

    def get_all(self) -> tuple[T, ...]:
        """Return all registered providers in registration order."""
        return tuple(self._providers.values())

    def get_identifiers(self) -> tuple[str, ...]:
        """Return registered provider identifiers in registration order."""
        return tuple(self._providers)

    def select_primary(self) -> T:
        """Pick the primary provider uniformly at random.

        Raises:
            ConfigurationError: If fewer than two providers are registered
        """
        self._ensure_fallback_possible()
        return self._rng.choice(self.get_all())

    def select_fallback(self, excluding: T | str) -> T:
        """Return a provider other than ``excluding``.

        The fallback is the provider registered right after the excluded one,
        wrapping around to the first. With two providers this is always the
        other one.

        Raises:
            ConfigurationError: If fewer than two providers are registered
            KeyError: If the excluded provider is not registered
        """
        self._ensure_fallback_possible()
        excluded_name = excluding if isinstance(excluding, str) else excluding.name
        slug = self._normalize_identifier(excluded_name)
        identifiers = self.get_identifiers()
        if slug not in identifiers:
            msg = f"Provider {slug!r} is not registered"
            raise KeyError(msg)

        index = identifiers.index(slug)
        return self._providers[identifiers[(index + 1) % len(identifiers)]]

    def _ensure_fallback_possible(self) -> None:
        if len(self._providers) < MIN_PROVIDERS:
            msg = (
                f"At least {MIN_PROVIDERS} providers must be registered for fallback, "
                f"got {len(self._providers)}"
            )
            raise ConfigurationError(msg)

    @staticmethod
    def _normalize_identifier(identifier: str) -> str:
        slug = identifier.strip().lower()
        if not _IDENTIFIER_PATTERN.match(slug):
            msg = (
                "Provider identifiers must start with a letter and contain only "
                "lowercase letters, numbers, or underscores"
            )
            raise ValueError(msg)
        return slug
