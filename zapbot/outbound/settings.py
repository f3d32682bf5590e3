"""
zapbot/outbound/settings.py
ZapBot WhatsApp Automation
Outbound Settings

Purpose:
- Centralised outbound (Evolution API) configuration.
- Keep secrets out of code via environment variables.

Notes:
- EVOLUTION_API_URL is required for every provider call. It is checked when a
  call is made, so the webhook can still acknowledge events while the
  operator fixes the environment.
- Optional:
  - EVOLUTION_API_KEY (sent as the `apikey` header when present)
  - EVOLUTION_API_TIMEOUT (seconds, defaults to 30)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from zapbot.outbound.errors import ProviderConfigError

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class EvolutionSettings:
    api_url: Optional[str]
    api_key: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def base_url(self) -> str:
        if not self.api_url:
            raise ProviderConfigError(
                "Missing required environment variable: EVOLUTION_API_URL. "
                "Set it in your .env / Render / shell before running."
            )
        return self.api_url.rstrip("/")

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _timeout_env() -> float:
    raw = _optional_env("EVOLUTION_API_TIMEOUT")
    if raw is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        raise ProviderConfigError(
            f"EVOLUTION_API_TIMEOUT must be a number of seconds, got {raw!r}"
        ) from None
    if timeout <= 0:
        raise ProviderConfigError(f"EVOLUTION_API_TIMEOUT must be positive, got {raw!r}")
    return timeout


def load_evolution_settings() -> EvolutionSettings:
    return EvolutionSettings(
        api_url=_optional_env("EVOLUTION_API_URL"),
        api_key=_optional_env("EVOLUTION_API_KEY"),
        timeout_seconds=_timeout_env(),
    )
