from __future__ import annotations

from stream_relay.core.types import GenerationRequest

from .schemas import ProxyRequest

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"


def to_generation_request(payload: ProxyRequest) -> GenerationRequest:
    return GenerationRequest(
        target_url=payload.target_url or "",
        headers=dict(payload.headers or {}),
        body=dict(payload.body or {}),
        is_ollama=payload.is_ollama,
    )


def resolve_allowed_origin(origin: str | None, allowed_origins: list[str]) -> str:
    """Echo the caller's origin when allowed, otherwise the first allowed one."""

    if origin and origin in allowed_origins:
        return origin
    return allowed_origins[0]


def cors_headers(origin: str | None, allowed_origins: list[str]) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": resolve_allowed_origin(origin, allowed_origins),
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }


def event_stream_headers(cors: dict[str, str]) -> dict[str, str]:
    return {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        **cors,
    }
