from typing import Any

from loguru import logger
from pydantic import ValidationError

from coach_relay.core.config import Settings
from coach_relay.core.exceptions import (
    InvalidPayloadError,
    MissingCredentialError,
    UpstreamError,
)
from coach_relay.llm.completions import CompletionClient, CompletionFailure
from coach_relay.schemas.chat import ChatRequest, ChatResponse

FIELD_EXPECTATIONS = {
    "messages": "an array",
    "model": "a string",
    "temperature": "a number",
}


def parse_chat_request(payload: Any) -> ChatRequest:
    """
    Validate a decoded JSON body into a ChatRequest.

    Anything that is not a JSON object is treated as an empty payload, so it
    fails on the missing ``messages`` array. ``model`` and ``temperature`` are
    type-checked only; their values pass through unchanged.
    """
    if not isinstance(payload, dict):
        payload = {}
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as e:
        failed = {str(error["loc"][0]) for error in e.errors() if error["loc"]}
        for field, expected in FIELD_EXPECTATIONS.items():
            if field in failed:
                raise InvalidPayloadError(field, expected)
        raise InvalidPayloadError()


class ChatRelay:
    """Forwards chat requests upstream with the server-held credential."""

    def __init__(self, settings: Settings, completion_client: CompletionClient | None):
        self.settings = settings
        self.completion_client = completion_client

    async def relay(self, payload: Any) -> ChatResponse:
        chat_request = parse_chat_request(payload)

        if not self.settings.OPENAI_API_KEY or self.completion_client is None:
            raise MissingCredentialError()

        result = await self.completion_client.complete(
            model=chat_request.model,
            temperature=chat_request.temperature,
            messages=chat_request.messages,
        )

        if isinstance(result, CompletionFailure):
            logger.error(f"Chat proxy error: {result.detail}")
            raise UpstreamError()

        return ChatResponse.success(result.reply)
