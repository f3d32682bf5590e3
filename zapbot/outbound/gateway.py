"""
ZapBot WhatsApp Automation
Outbound provider abstraction

This module defines the ProviderClient interface the webhook pipeline talks
to, plus the strongly-typed result object for a send attempt.

Guardrails:
- send_text must not raise for provider or transport failures
- One attempt per call, no retries, no queue
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

OPEN_STATE = "open"
UNKNOWN_STATE = "unknown"


@dataclass(frozen=True)
class SendResult:
    """
    Result of a single outbound send attempt.

    - ok is True only for a 2xx provider response
    - category is one of the outbound.errors categories when ok is False
    """
    ok: bool
    status_code: Optional[int] = None
    category: Optional[str] = None
    response_json: Dict[str, Any] = field(default_factory=dict)


class ProviderClient(Protocol):
    def send_text(self, *, phone_number: str, text: str, instance_name: str) -> SendResult:
        ...

    def connection_state(self, instance_name: str) -> str:
        ...

    def create_instance(self, instance_name: str) -> Optional[str]:
        ...
