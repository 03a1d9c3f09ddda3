from fastapi import Request

from coach_relay.services.chat_relay import ChatRelay


def get_chat_relay(request: Request) -> ChatRelay:
    return request.app.state.chat_relay
