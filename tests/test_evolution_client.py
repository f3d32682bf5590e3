import pytest
import requests

from zapbot.outbound.errors import (
    CATEGORY_AUTH,
    CATEGORY_CONFIG,
    CATEGORY_NOT_FOUND,
    CATEGORY_SERVER,
    CATEGORY_TRANSPORT,
    ProviderAPIError,
    ProviderConfigError,
    classify_status,
)
from zapbot.outbound.evolution import EvolutionClient
from zapbot.outbound.gateway import UNKNOWN_STATE
from zapbot.outbound.settings import EvolutionSettings, load_evolution_settings


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append(
            {"method": method, "url": url, "json": json, "headers": headers, "timeout": timeout}
        )
        if self.error:
            raise self.error
        return self.responses.pop(0)


def make_client(session, url="https://evo.example.com/", key="secret"):
    settings = EvolutionSettings(api_url=url, api_key=key, timeout_seconds=30)
    return EvolutionClient(settings=settings, session=session)


# -------------------------------------------------------------------
# send_text
# -------------------------------------------------------------------
def test_send_text_posts_to_instance_endpoint():
    session = FakeSession(FakeResponse(201, {"key": {"id": "ABC"}}))

    result = make_client(session).send_text(
        phone_number="5511999990000", text="Olá!", instance_name="bot-1"
    )

    assert result.ok is True
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://evo.example.com/message/sendText/bot-1"
    assert call["json"] == {"number": "5511999990000@s.whatsapp.net", "text": "Olá!"}
    assert call["headers"]["apikey"] == "secret"
    assert call["timeout"] == 30


def test_send_text_without_api_key_omits_header():
    session = FakeSession(FakeResponse(200, {}))

    make_client(session, key=None).send_text(phone_number="1", text="x", instance_name="bot-1")

    assert "apikey" not in session.calls[0]["headers"]


def test_send_text_classifies_http_failure():
    session = FakeSession(FakeResponse(401, {"error": "Unauthorized"}))

    result = make_client(session).send_text(phone_number="1", text="x", instance_name="bot-1")

    assert result.ok is False
    assert result.status_code == 401
    assert result.category == CATEGORY_AUTH


def test_send_text_timeout_is_a_failure_not_an_exception():
    session = FakeSession(error=requests.Timeout("read timed out"))

    result = make_client(session).send_text(phone_number="1", text="x", instance_name="bot-1")

    assert result.ok is False
    assert result.category == CATEGORY_TRANSPORT


def test_send_text_without_url_reports_configuration_error():
    session = FakeSession()

    result = make_client(session, url=None).send_text(phone_number="1", text="x", instance_name="bot-1")

    assert result.ok is False
    assert result.category == CATEGORY_CONFIG
    assert session.calls == []


def test_send_text_tolerates_non_json_body():
    session = FakeSession(FakeResponse(502, None, text="Bad Gateway"))

    result = make_client(session).send_text(phone_number="1", text="x", instance_name="bot-1")

    assert result.category == CATEGORY_SERVER
    assert result.response_json == {"raw_text": "Bad Gateway"}


# -------------------------------------------------------------------
# Instance lifecycle
# -------------------------------------------------------------------
@pytest.mark.parametrize(
    "body",
    [
        {"hash": {"qr": "QR1"}},
        {"qr": "QR1"},
        {"qrcode": {"base64": "QR1"}},
    ],
)
def test_create_instance_returns_qr(body):
    session = FakeSession(FakeResponse(201, body))

    assert make_client(session).create_instance("bot-1") == "QR1"
    assert session.calls[0]["json"] == {"instanceName": "bot-1", "qrcode": True}


def test_create_instance_without_qr_returns_none():
    session = FakeSession(FakeResponse(201, {"instance": {"instanceName": "bot-1"}}))

    assert make_client(session).create_instance("bot-1") is None


def test_create_instance_raises_on_provider_error():
    session = FakeSession(FakeResponse(404, {"error": "Not Found"}))

    with pytest.raises(ProviderAPIError) as excinfo:
        make_client(session).create_instance("bot-1")

    assert excinfo.value.status_code == 404
    assert excinfo.value.category == CATEGORY_NOT_FOUND


def test_create_instance_without_url_is_a_configuration_error():
    with pytest.raises(ProviderConfigError):
        make_client(FakeSession(), url=None).create_instance("bot-1")


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"state": "open"}, "open"),
        ({"instance": {"instanceName": "bot-1", "state": "connecting"}}, "connecting"),
        ({}, UNKNOWN_STATE),
    ],
)
def test_connection_state_reads_state(body, expected):
    session = FakeSession(FakeResponse(200, body))

    assert make_client(session).connection_state("bot-1") == expected
    assert session.calls[0]["method"] == "GET"
    assert session.calls[0]["url"] == "https://evo.example.com/instance/connectionState/bot-1"
    assert session.calls[0]["json"] is None


def test_connection_state_unknown_on_failure():
    assert make_client(FakeSession(FakeResponse(404, {}))).connection_state("bot-1") == UNKNOWN_STATE
    assert (
        make_client(FakeSession(error=requests.ConnectionError("down"))).connection_state("bot-1")
        == UNKNOWN_STATE
    )


def test_wait_until_connected_polls_until_open():
    session = FakeSession(
        FakeResponse(200, {"state": "connecting"}),
        FakeResponse(200, {"state": "connecting"}),
        FakeResponse(200, {"state": "open"}),
    )
    sleeps = []

    connected = make_client(session).wait_until_connected(
        "bot-1", timeout=60, interval=5, sleep=sleeps.append, clock=lambda: 0.0
    )

    assert connected is True
    assert sleeps == [5, 5]


def test_wait_until_connected_gives_up_after_timeout():
    session = FakeSession(*[FakeResponse(200, {"state": "close"}) for _ in range(10)])
    now = [0.0]

    def sleep(seconds):
        now[0] += seconds

    connected = make_client(session).wait_until_connected(
        "bot-1", timeout=10, interval=5, sleep=sleep, clock=lambda: now[0]
    )

    assert connected is False
    assert len(session.calls) == 3


# -------------------------------------------------------------------
# Connection test + settings
# -------------------------------------------------------------------
def test_connection_test_success():
    session = FakeSession(FakeResponse(200, []))

    result = make_client(session).test_connection()

    assert result.success is True
    assert session.calls[0]["url"] == "https://evo.example.com/instance/fetchInstances"


def test_connection_test_reports_missing_key_without_calling():
    session = FakeSession()

    result = make_client(session, key=None).test_connection()

    assert result.success is False
    assert "EVOLUTION_API_KEY" in result.message
    assert session.calls == []


def test_connection_test_reports_server_error():
    result = make_client(FakeSession(FakeResponse(503, None, text="down"))).test_connection()

    assert result.success is False
    assert "internal error" in result.message


@pytest.mark.parametrize(
    "status_code, category",
    [(401, "auth_failure"), (403, "auth_failure"), (404, "not_found"), (500, "server_error"), (422, "client_error")],
)
def test_classify_status(status_code, category):
    assert classify_status(status_code) == category


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("EVOLUTION_API_URL", " https://evo.example.com/ ")
    monkeypatch.setenv("EVOLUTION_API_KEY", "k")
    monkeypatch.delenv("EVOLUTION_API_TIMEOUT", raising=False)

    settings = load_evolution_settings()

    assert settings.base_url == "https://evo.example.com"
    assert settings.api_key == "k"
    assert settings.timeout_seconds == 30.0


def test_missing_url_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("EVOLUTION_API_URL", raising=False)

    with pytest.raises(ProviderConfigError):
        load_evolution_settings().url_for("instance/create")
