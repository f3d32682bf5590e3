"""
Provider error types and HTTP status classification.
"""

from __future__ import annotations

from typing import Any, Optional

CATEGORY_AUTH = "auth_failure"
CATEGORY_NOT_FOUND = "not_found"
CATEGORY_SERVER = "server_error"
CATEGORY_CLIENT = "client_error"
CATEGORY_TRANSPORT = "transport_error"
CATEGORY_CONFIG = "configuration"

_CATEGORY_MESSAGES = {
    CATEGORY_AUTH: "Authentication failed. Check that EVOLUTION_API_KEY is correct.",
    CATEGORY_NOT_FOUND: "Endpoint or instance not found. Check that EVOLUTION_API_URL is correct.",
    CATEGORY_SERVER: "Evolution API internal error. Check that the service is running.",
    CATEGORY_TRANSPORT: "Could not reach the Evolution API (connection failed or timed out).",
    CATEGORY_CONFIG: "Evolution API is not configured.",
}


def classify_status(status_code: int) -> str:
    if status_code in (401, 403):
        return CATEGORY_AUTH
    if status_code == 404:
        return CATEGORY_NOT_FOUND
    if status_code >= 500:
        return CATEGORY_SERVER
    return CATEGORY_CLIENT


def describe(category: str, status_code: Optional[int] = None) -> str:
    if category in _CATEGORY_MESSAGES:
        return _CATEGORY_MESSAGES[category]
    return f"HTTP error {status_code}"


class ProviderError(RuntimeError):
    pass


class ProviderConfigError(ProviderError):
    """Raised when the provider cannot be called because the environment is incomplete."""


class ProviderAPIError(ProviderError):
    def __init__(
        self,
        status_code: Optional[int],
        category: str,
        details: Any = None,
    ) -> None:
        self.status_code = status_code
        self.category = category
        self.details = details
        super().__init__(describe(category, status_code))
