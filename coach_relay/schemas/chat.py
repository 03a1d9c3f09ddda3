from typing import Any

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.2


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: list[Any]
    # Strict types: supplied values go upstream exactly as sent.
    model: StrictStr = DEFAULT_MODEL
    temperature: StrictFloat | StrictInt = DEFAULT_TEMPERATURE


class ChatResponse(BaseModel):
    ok: bool
    reply: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, reply: str) -> "ChatResponse":
        return cls(ok=True, reply=reply)

    @classmethod
    def failure(cls, error: str) -> "ChatResponse":
        return cls(ok=False, error=error)

    def to_envelope(self) -> dict:
        """Serialize with only the branch that applies."""
        return self.model_dump(exclude_none=True)
