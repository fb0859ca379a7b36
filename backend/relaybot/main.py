"""FastAPI entrypoint for the relay bot."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from relaybot.api.routes_webhook import router as webhook_router
from relaybot.config import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.app_name)
    app.include_router(webhook_router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route("/{path:path}", methods=["GET", "POST"], include_in_schema=False)
    def fallback(path: str) -> PlainTextResponse:
        return PlainTextResponse("No handler for this request")

    return app


app = create_app()
