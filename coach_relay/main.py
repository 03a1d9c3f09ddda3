from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from loguru import logger

from coach_relay.api.routes import chat, health
from coach_relay.api.static import SpaStaticFiles
from coach_relay.core.config import Settings, settings as default_settings
from coach_relay.core.exceptions import RelayError, relay_error_handler
from coach_relay.core.logging import configure_logging
from coach_relay.core.middleware import (
    AccessLogMiddleware,
    ApiRateLimitMiddleware,
    BodySizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from coach_relay.core.rate_limit import RateLimitStore
from coach_relay.llm.completions import CompletionClient, build_completion_client
from coach_relay.services.chat_relay import ChatRelay


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    app_settings: Settings = app.state.settings
    if not app_settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY is not set; /api/chat will answer 500")
    logger.info(f"Server listening on http://localhost:{app_settings.PORT}")
    yield
    logger.info("Shutting down")


def create_app(
    settings: Settings | None = None,
    completion_client: CompletionClient | None = None,
    rate_limit_store: RateLimitStore | None = None,
) -> FastAPI:
    """
    Build the relay application.

    Collaborators default to the ones described by ``settings``; tests pass
    their own completion client and rate limit store.
    """
    settings = settings or default_settings
    configure_logging(settings)

    if completion_client is None:
        completion_client = build_completion_client(settings)
    if rate_limit_store is None:
        rate_limit_store = RateLimitStore(settings.RATE_LIMIT_API)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.rate_limit_store = rate_limit_store
    app.state.chat_relay = ChatRelay(settings, completion_client)

    app.add_exception_handler(RelayError, relay_error_handler)

    # Middleware runs outermost-last-added: security headers, compression,
    # access log, body limit, CORS, then the API rate limit.
    app.add_middleware(
        ApiRateLimitMiddleware,
        store=rate_limit_store,
        prefix="/api",
        trusted_hops=settings.TRUSTED_PROXY_HOPS,
    )
    if settings.CORS_ORIGIN:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.CORS_ORIGIN],
            allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
            allow_headers=["*"],
        )
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
    app.add_middleware(
        AccessLogMiddleware,
        combined=settings.is_production,
        trusted_hops=settings.TRUSTED_PROXY_HOPS,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(SecurityHeadersMiddleware)

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(chat.router, tags=["chat"])

    # Static front-end last: it answers every remaining GET
    app.mount("/", SpaStaticFiles(directory=settings.STATIC_DIR), name="static")

    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        app,
        host=default_settings.HOST,
        port=default_settings.PORT,
        proxy_headers=False,
        access_log=False,
    )


if __name__ == "__main__":
    run()
