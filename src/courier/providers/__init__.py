"""Delivery provider implementations and registry construction."""

from courier.providers.factory import build_registry
from courier.providers.simulated import SimulatedProvider, create_provider

__all__ = [
    "SimulatedProvider",
    "build_registry",
    "create_provider",
]
