"""Upstream chat completion client.

Failures never escape as exceptions: every call returns either a
``CompletionSuccess`` carrying the trimmed reply or a ``CompletionFailure``
carrying the cause, and the caller decides what the browser gets to see.
"""
from dataclasses import dataclass
from typing import Any, Protocol

from openai import AsyncOpenAI

from coach_relay.core.config import Settings

MAX_TOKENS = 600


@dataclass(frozen=True)
class CompletionSuccess:
    reply: str


@dataclass(frozen=True)
class CompletionFailure:
    cause: BaseException

    @property
    def detail(self) -> Any:
        """Provider error body when the SDK attached one, else the exception."""
        return getattr(self.cause, "body", None) or self.cause


CompletionResult = CompletionSuccess | CompletionFailure


class CompletionClient(Protocol):
    async def complete(
        self, model: str, temperature: float, messages: list[Any]
    ) -> CompletionResult: ...


def extract_reply(completion: Any) -> str:
    """First choice's message content, trimmed. Missing content is ``""``."""
    choices = getattr(completion, "choices", None)
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    return (content or "").strip()


class OpenAICompletionClient:
    def __init__(self, openai_client: AsyncOpenAI):
        self.openai_client = openai_client

    async def complete(
        self, model: str, temperature: float, messages: list[Any]
    ) -> CompletionResult:
        try:
            response = await self.openai_client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=messages,
                max_tokens=MAX_TOKENS,
            )
            return CompletionSuccess(reply=extract_reply(response))
        except Exception as e:
            return CompletionFailure(cause=e)


def build_completion_client(settings: Settings) -> OpenAICompletionClient | None:
    """Client for the configured credential, or None when no key is set."""
    if not settings.OPENAI_API_KEY:
        return None
    openai_client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, max_retries=0)
    return OpenAICompletionClient(openai_client)
