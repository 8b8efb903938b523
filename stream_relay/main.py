from __future__ import annotations

import httpx
import uvicorn
from fastapi import FastAPI

from stream_relay.core.config import Settings
from stream_relay.dependencies import register_exception_handlers
from stream_relay.internal import admin
from stream_relay.routers import proxy
from stream_relay.streaming.relay import StreamRelay


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.relay = StreamRelay(settings, transport=transport)

    register_exception_handlers(app)

    app.include_router(proxy.router)
    app.include_router(admin.router)

    return app


app = create_app()


def run() -> None:
    settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())

