import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from coach_relay.api.dependencies import get_chat_relay
from coach_relay.schemas.chat import ChatResponse
from coach_relay.services.chat_relay import ChatRelay

router = APIRouter()


async def read_json_payload(request: Request):
    """Decoded JSON body, or None when the body is empty or not JSON."""
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


@router.post("/api/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(request: Request, relay: ChatRelay = Depends(get_chat_relay)):
    """
    Chat completion proxy.

    Forwards ``{model, temperature, messages}`` to OpenAI with the server's
    API key and returns ``{ok, reply}``. Errors are raised as RelayError and
    rendered as ``{ok: false, error}`` by the app's exception handler.
    """
    payload = await read_json_payload(request)
    chat_response = await relay.relay(payload)
    return JSONResponse(status_code=200, content=chat_response.to_envelope())
