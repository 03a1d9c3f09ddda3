from fastapi import Request
from fastapi.responses import JSONResponse

from coach_relay.schemas.chat import ChatResponse


class RelayError(Exception):
    status_code: int = 500
    message: str = "Coach error"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidPayloadError(RelayError):
    status_code = 400

    def __init__(self, field: str = "messages", expected: str = "an array"):
        super().__init__(f"Invalid payload: {field} must be {expected}")


class MissingCredentialError(RelayError):
    status_code = 500
    message = "Server missing OPENAI_API_KEY"


class UpstreamError(RelayError):
    status_code = 500
    message = "Coach error"


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ChatResponse.failure(exc.message).to_envelope(),
    )
