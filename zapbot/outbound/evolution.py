"""
File: zapbot/outbound/evolution.py

Project: ZapBot WhatsApp Automation

Purpose:
Evolution API (WhatsApp provider) client.
Supports:
- Session text messages (auto-replies)
- Instance creation with QR pairing
- Connection state polling
- Connection test for operators
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from zapbot.outbound.errors import (
    CATEGORY_CONFIG,
    CATEGORY_TRANSPORT,
    ProviderAPIError,
    ProviderConfigError,
    classify_status,
    describe,
)
from zapbot.outbound.gateway import OPEN_STATE, UNKNOWN_STATE, SendResult
from zapbot.outbound.settings import EvolutionSettings

logger = logging.getLogger(__name__)

WHATSAPP_JID_SUFFIX = "@s.whatsapp.net"


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    message: str
    details: str = ""


def _parse_body(resp: requests.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"raw_text": resp.text}
    if isinstance(data, dict):
        return data
    return {"items": data}


def _extract_qr(data: Dict[str, Any]) -> Optional[str]:
    # Different Evolution API versions put the pairing code in different places
    for container, key in (("hash", "qr"), ("qrcode", "base64")):
        nested = data.get(container)
        if isinstance(nested, dict) and nested.get(key):
            return nested[key]
    return data.get("qr") or None


class EvolutionClient:
    def __init__(
        self,
        settings: EvolutionSettings,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._settings.api_key:
            headers["apikey"] = self._settings.api_key
        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = self._settings.url_for(endpoint)
        return self._session.request(
            method,
            url,
            json=payload if method != "GET" else None,
            headers=self._headers(),
            timeout=self._settings.timeout_seconds,
        )

    # ---------------------------------------------------------
    # SESSION MESSAGE (auto-reply)
    # ---------------------------------------------------------
    def send_text(self, *, phone_number: str, text: str, instance_name: str) -> SendResult:
        payload = {
            "number": f"{phone_number}{WHATSAPP_JID_SUFFIX}",
            "text": text,
        }

        try:
            resp = self._request("POST", f"message/sendText/{instance_name}", payload)
        except ProviderConfigError:
            logger.error("EVOLUTION_API_URL not configured; reply to %s not sent", phone_number)
            return SendResult(ok=False, category=CATEGORY_CONFIG)
        except requests.RequestException as exc:
            logger.error(
                "Error sending WhatsApp message to %s via %s: %s",
                phone_number,
                instance_name,
                exc,
            )
            return SendResult(ok=False, category=CATEGORY_TRANSPORT)

        data = _parse_body(resp)

        if not 200 <= resp.status_code < 300:
            category = classify_status(resp.status_code)
            logger.error(
                "Failed to send WhatsApp message (HTTP %s, %s): %s",
                resp.status_code,
                describe(category, resp.status_code),
                data,
            )
            return SendResult(
                ok=False,
                status_code=resp.status_code,
                category=category,
                response_json=data,
            )

        logger.info("WhatsApp message sent to %s via %s", phone_number, instance_name)
        return SendResult(ok=True, status_code=resp.status_code, response_json=data)

    # ---------------------------------------------------------
    # INSTANCE LIFECYCLE (dashboard setup flow)
    # ---------------------------------------------------------
    def create_instance(self, instance_name: str) -> Optional[str]:
        """
        Ask the provider for a new instance and return its QR pairing code.

        Returns None when the provider answered successfully without a QR
        (the instance usually exists already or is connected).
        Raises ProviderAPIError on non-2xx responses and transport failures.
        """
        try:
            resp = self._request(
                "POST",
                "instance/create",
                {"instanceName": instance_name, "qrcode": True},
            )
        except requests.RequestException as exc:
            raise ProviderAPIError(None, CATEGORY_TRANSPORT, str(exc)) from exc

        data = _parse_body(resp)
        if not 200 <= resp.status_code < 300:
            raise ProviderAPIError(resp.status_code, classify_status(resp.status_code), data)

        qr = _extract_qr(data)
        if not qr:
            logger.warning("Instance %s created but no QR code returned: %s", instance_name, data)
        return qr

    def connection_state(self, instance_name: str) -> str:
        try:
            resp = self._request("GET", f"instance/connectionState/{instance_name}")
        except requests.RequestException as exc:
            logger.warning("Connection state check failed for %s: %s", instance_name, exc)
            return UNKNOWN_STATE

        data = _parse_body(resp)
        if not 200 <= resp.status_code < 300:
            logger.info(
                "Connection state unavailable for %s (HTTP %s)",
                instance_name,
                resp.status_code,
            )
            return UNKNOWN_STATE

        instance = data.get("instance")
        if isinstance(instance, dict) and instance.get("state"):
            return instance["state"]
        return data.get("state") or UNKNOWN_STATE

    def wait_until_connected(
        self,
        instance_name: str,
        *,
        timeout: float = 120.0,
        interval: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> bool:
        deadline = clock() + timeout
        while True:
            if self.connection_state(instance_name) == OPEN_STATE:
                return True
            if clock() + interval > deadline:
                return False
            sleep(interval)

    # ---------------------------------------------------------
    # OPERATOR CONNECTION TEST
    # ---------------------------------------------------------
    def test_connection(self) -> ConnectionTestResult:
        if not self._settings.api_url:
            return ConnectionTestResult(
                success=False,
                message="EVOLUTION_API_URL is not configured.",
                details="The Evolution API URL is required to connect to WhatsApp.",
            )
        if not self._settings.api_key:
            return ConnectionTestResult(
                success=False,
                message="EVOLUTION_API_KEY is not configured.",
                details="The API key is required for authentication.",
            )

        try:
            resp = self._request("GET", "instance/fetchInstances")
        except requests.RequestException as exc:
            return ConnectionTestResult(
                success=False,
                message=describe(CATEGORY_TRANSPORT),
                details=f"{type(exc).__name__}: {exc}",
            )

        if not 200 <= resp.status_code < 300:
            category = classify_status(resp.status_code)
            return ConnectionTestResult(
                success=False,
                message=describe(category, resp.status_code),
                details=f"Status: {resp.status_code}, Response: {resp.text}",
            )

        return ConnectionTestResult(
            success=True,
            message="Connection to the Evolution API established.",
            details="The API is responding. You can proceed with instance creation.",
        )
