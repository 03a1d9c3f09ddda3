"""
Tests for the OpenAI completion client and reply extraction.
"""

import asyncio
from types import SimpleNamespace

import httpx
import openai

from coach_relay.llm.completions import (
    MAX_TOKENS,
    CompletionFailure,
    CompletionSuccess,
    OpenAICompletionClient,
    build_completion_client,
    extract_reply,
)
from conftest import FakeCompletions, completion_with, fake_openai

MESSAGES = [{"role": "user", "content": "Rate my opening"}]


def complete(completions: FakeCompletions, **overrides):
    client = OpenAICompletionClient(fake_openai(completions))
    kwargs = {"model": "gpt-4o-mini", "temperature": 0.2, "messages": MESSAGES}
    kwargs.update(overrides)
    return asyncio.run(client.complete(**kwargs))


# ── Reply extraction ─────────────────────────────────────────


def test_reply_is_trimmed():
    assert extract_reply(completion_with("  Good job!  ")) == "Good job!"


def test_first_choice_wins():
    assert extract_reply(completion_with("first", "second")) == "first"


def test_no_choices_gives_empty_reply():
    assert extract_reply(SimpleNamespace(choices=[])) == ""


def test_null_content_gives_empty_reply():
    assert extract_reply(completion_with(None)) == ""


def test_missing_message_gives_empty_reply():
    assert extract_reply(SimpleNamespace(choices=[SimpleNamespace(message=None)])) == ""


# ── Upstream call ────────────────────────────────────────────


def test_request_shape_and_token_cap():
    completions = FakeCompletions(response=completion_with("ok"))
    complete(completions, model="gpt-4o", temperature=1.3)
    assert completions.calls == [
        {"model": "gpt-4o", "temperature": 1.3, "messages": MESSAGES, "max_tokens": MAX_TOKENS}
    ]
    assert MAX_TOKENS == 600


def test_success_result():
    result = complete(FakeCompletions(response=completion_with("\nWell played.\n")))
    assert result == CompletionSuccess(reply="Well played.")


def test_connection_error_becomes_failure():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.APIConnectionError(request=request)
    result = complete(FakeCompletions(error=error))
    assert isinstance(result, CompletionFailure)
    assert result.cause is error


def test_malformed_content_becomes_failure():
    result = complete(FakeCompletions(response=completion_with(12345)))
    assert isinstance(result, CompletionFailure)


def test_failure_detail_prefers_provider_body():
    cause = RuntimeError("bad request")
    cause.body = {"error": {"message": "model not found"}}
    assert CompletionFailure(cause=cause).detail == {"error": {"message": "model not found"}}
    assert CompletionFailure(cause=RuntimeError("boom")).detail.args == ("boom",)


# ── Through the app ──────────────────────────────────────────


def test_relay_trims_sdk_reply(make_client):
    completions = FakeCompletions(response=completion_with("  Good job!  "))
    client = make_client(completion_client=OpenAICompletionClient(fake_openai(completions)))
    resp = client.post("/api/chat", json={"messages": MESSAGES})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "reply": "Good job!"}


def test_relay_with_no_choices(make_client):
    completions = FakeCompletions(response=SimpleNamespace(choices=[]))
    client = make_client(completion_client=OpenAICompletionClient(fake_openai(completions)))
    resp = client.post("/api/chat", json={"messages": MESSAGES})
    assert resp.json() == {"ok": True, "reply": ""}


def test_caller_cannot_override_max_tokens(make_client):
    completions = FakeCompletions(response=completion_with("ok"))
    client = make_client(completion_client=OpenAICompletionClient(fake_openai(completions)))
    client.post("/api/chat", json={"messages": MESSAGES, "max_tokens": 4000})
    assert completions.calls[0]["max_tokens"] == 600


def test_relay_hides_sdk_error(make_client):
    completions = FakeCompletions(error=ValueError("invalid_api_key sk-abc123"))
    client = make_client(completion_client=OpenAICompletionClient(fake_openai(completions)))
    resp = client.post("/api/chat", json={"messages": MESSAGES})
    assert resp.status_code == 500
    assert resp.json() == {"ok": False, "error": "Coach error"}
    assert "sk-abc123" not in resp.text


# ── Client construction ──────────────────────────────────────


def test_no_client_without_key(make_settings):
    assert build_completion_client(make_settings()) is None


def test_client_built_without_retries(make_settings):
    client = build_completion_client(make_settings(OPENAI_API_KEY="sk-test"))
    assert isinstance(client, OpenAICompletionClient)
    assert client.openai_client.max_retries == 0
    assert client.openai_client.api_key == "sk-test"
