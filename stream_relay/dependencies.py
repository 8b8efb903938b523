from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stream_relay.core.config import Settings
from stream_relay.core.errors import RelayError
from stream_relay.proxy.adapter import cors_headers
from stream_relay.streaming.relay import StreamRelay


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_relay(request: Request) -> StreamRelay:
    return request.app.state.relay


def request_cors_headers(request: Request) -> dict[str, str]:
    settings = get_settings(request)
    return cors_headers(request.headers.get("origin"), settings.allowed_origin_list)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def handle_relay_error(request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.to_error()},
            headers=request_cors_headers(request),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        first_error = exc.errors()[0]["msg"] if exc.errors() else "Invalid request"
        error = RelayError(status_code=400, message=first_error, code="invalid_request")
        return JSONResponse(
            status_code=error.status_code,
            content={"error": error.to_error()},
            headers=request_cors_headers(request),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        error = RelayError(
            status_code=500,
            message=str(exc) or "Request failed.",
            code="internal_error",
        )
        return JSONResponse(
            status_code=error.status_code,
            content={"error": error.to_error()},
            headers=request_cors_headers(request),
        )
