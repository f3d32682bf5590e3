"""
File: zapbot/outbound/factory.py

Project: ZapBot WhatsApp Automation

Purpose:
- Provide a single place to construct the provider client
- Reuse a single Evolution client instance (singleton-style)

Design rules:
- No business logic here
- Only construction / wiring
- Routes receive the client through FastAPI dependencies so tests can override it
"""

from __future__ import annotations

from typing import Callable

from zapbot.outbound.evolution import EvolutionClient
from zapbot.outbound.gateway import ProviderClient
from zapbot.outbound.settings import EvolutionSettings, load_evolution_settings


# -------------------------------------------------
# Evolution client singleton
# -------------------------------------------------
_evolution_client: EvolutionClient | None = None


def build_evolution_client(settings: EvolutionSettings) -> EvolutionClient:
    return EvolutionClient(settings=settings)


def get_provider_client() -> EvolutionClient:
    global _evolution_client
    if _evolution_client is None:
        _evolution_client = build_evolution_client(load_evolution_settings())
    return _evolution_client


def get_provider_factory() -> Callable[[], ProviderClient]:
    """
    FastAPI dependency handing out the constructor instead of the client,
    so the webhook can build it inside its own error boundary.
    """
    return get_provider_client
