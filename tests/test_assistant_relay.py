import time

import pytest
import requests

from assistant_relay import SYSTEM_PROMPT, AssistantRelay, build_evidence_text
from config import Settings
from domain_info import analyze_domain
from errors import EmptyCompletionError, RelayError
from html_parser import unavailable_content
from models import Message
from report_assembler import assemble_report
from tests.fakes import FakeResponse, FakeSession


def _reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def test_payload_orders_system_history_then_new_turn(settings):
    relay = AssistantRelay(settings, FakeSession())
    history = [Message("user", "first scan"), Message("assistant", "looks fine")]

    payload = relay.build_payload(history, "is it safe?")

    contents = payload["contents"]
    assert contents[0]["parts"][0]["text"] == SYSTEM_PROMPT
    assert [c["role"] for c in contents] == ["user", "user", "model", "user"]
    assert contents[-1]["parts"][0]["text"] == "is it safe?"
    assert payload["generationConfig"] == {
        "temperature": 0.7,
        "topK": 40,
        "topP": 0.95,
        "maxOutputTokens": 2048,
    }


def test_send_returns_candidate_text(settings):
    session = FakeSession(FakeResponse(json_data=_reply("🟢 Looks safe"), text="{}"))
    relay = AssistantRelay(settings, session)

    assert relay.send([], "evidence") == "🟢 Looks safe"
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url.endswith("/models/gemini-2.5-flash:generateContent")
    assert kwargs["headers"]["x-goog-api-key"] == "test-key"
    assert kwargs["timeout"] == settings.relay_timeout


def test_missing_api_key_fails_before_any_request():
    session = FakeSession(FakeResponse(json_data=_reply("x")))

    with pytest.raises(RelayError, match="GEMINI_API_KEY"):
        AssistantRelay(Settings(), session).send([], "evidence")
    assert session.calls == []


def test_http_error_keeps_status_and_body(settings):
    session = FakeSession(FakeResponse(status_code=429, text='{"error": "quota"}'))

    with pytest.raises(RelayError) as excinfo:
        AssistantRelay(settings, session).send([], "evidence")

    assert excinfo.value.status == 429
    assert "quota" in excinfo.value.body
    assert "HTTP 429" in str(excinfo.value)


def test_timeout_is_a_relay_error(settings):
    session = FakeSession(exc=requests.exceptions.ReadTimeout("slow"))

    with pytest.raises(RelayError, match="timed out"):
        AssistantRelay(settings, session).send([], "evidence")


def test_empty_candidates_raise(settings):
    session = FakeSession(FakeResponse(json_data={"candidates": []}, text="{}"))

    with pytest.raises(EmptyCompletionError):
        AssistantRelay(settings, session).send([], "evidence")


def test_blank_text_raises(settings):
    session = FakeSession(FakeResponse(json_data=_reply("   "), text="{}"))

    with pytest.raises(EmptyCompletionError):
        AssistantRelay(settings, session).send([], "evidence")


def test_invalid_json_raises(settings):
    session = FakeSession(FakeResponse(text="<html>gateway</html>"))

    with pytest.raises(RelayError, match="invalid JSON"):
        AssistantRelay(settings, session).send([], "evidence")


def test_slow_api_is_cut_off_at_the_deadline():
    session = FakeSession(FakeResponse(json_data=_reply("late"), text="{}"), delay=2.0)
    settings = Settings(gemini_api_key="test-key", relay_timeout=0.3)

    started = time.monotonic()
    with pytest.raises(RelayError, match="timed out after 0.3s"):
        AssistantRelay(settings, session).send([], "evidence")
    assert time.monotonic() - started < 1.5


def test_malformed_candidates_raise_relay_errors(settings):
    for data in ({"candidates": ["oops"]}, {"candidates": [{"content": "text"}]},
                 {"candidates": [{"content": {"parts": [{"text": 42}]}}]}, {"candidates": "x"}):
        session = FakeSession(FakeResponse(json_data=data, text="{}"))

        with pytest.raises(EmptyCompletionError):
            AssistantRelay(settings, session).send([], "evidence")


def test_evidence_text_names_url_and_degradation():
    domain = analyze_domain("secureupdate.top")
    content = unavailable_content("Page content unavailable (HTTP 404); analysis is domain-only")
    report = assemble_report(domain, content, url="http://secureupdate.top")

    text = build_evidence_text("http://secureupdate.top", domain, content, report)

    assert text.startswith("Scan http://secureupdate.top for phishing.")
    assert "Unavailable: Page content unavailable (HTTP 404)" in text
    assert "High-abuse top-level domain" in text
