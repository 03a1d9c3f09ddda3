"""Shared fixtures: settings from a controlled environment, stub upstreams, apps."""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from loguru import logger

from coach_relay.core.config import Settings
from coach_relay.llm.completions import CompletionFailure, CompletionSuccess
from coach_relay.main import create_app

INDEX_HTML = "<!doctype html><html><body><div id=app>coach</div></body></html>"
APP_JS = "console.log('coach');\n" * 400

ENV_VARS = (
    "OPENAI_API_KEY",
    "CORS_ORIGIN",
    "PORT",
    "HOST",
    "ENVIRONMENT",
    "DEBUG",
    "LOG_LEVEL",
    "STATIC_DIR",
    "RATE_LIMIT_API",
    "TRUSTED_PROXY_HOPS",
)


# ── Stub upstreams ───────────────────────────────────────────


class StubCompletionClient:
    """Records every call and answers with a canned result."""

    def __init__(self, result=None):
        self.result = result if result is not None else CompletionSuccess(reply="Nice move!")
        self.calls = []

    async def complete(self, model, temperature, messages):
        self.calls.append({"model": model, "temperature": temperature, "messages": messages})
        return self.result


class FakeCompletions:
    """Stands in for ``AsyncOpenAI().chat.completions``."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def fake_openai(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def completion_with(*contents):
    """SDK-shaped completion with one choice per content value."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(role="assistant", content=c)) for c in contents]
    )


# ── Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def static_dir(tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text(INDEX_HTML)
    (public / "app.js").write_text(APP_JS)
    (public / "style.css").write_text("body { margin: 0; }")
    return public


@pytest.fixture
def make_settings(monkeypatch, static_dir):
    """Build Settings from a clean environment plus the given overrides."""

    def _make(**env):
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("STATIC_DIR", str(static_dir))
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        return Settings()

    return _make


@pytest.fixture
def stub_upstream():
    return StubCompletionClient()


@pytest.fixture
def make_client(make_settings, stub_upstream):
    def _make(completion_client=None, rate_limit_store=None, **env):
        env.setdefault("OPENAI_API_KEY", "sk-test")
        settings = make_settings(**env)
        app = create_app(
            settings=settings,
            completion_client=completion_client or stub_upstream,
            rate_limit_store=rate_limit_store,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def failure():
    return CompletionFailure(cause=RuntimeError("upstream exploded: sk-live-secret"))
