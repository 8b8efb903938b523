from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from stream_relay.dependencies import get_relay, request_cors_headers
from stream_relay.proxy.adapter import event_stream_headers, to_generation_request
from stream_relay.proxy.schemas import ProxyRequest
from stream_relay.streaming.relay import StreamRelay

router = APIRouter(prefix="/api", tags=["proxy"])


@router.options("/stream-proxy")
@router.options("/proxy")
async def preflight(request: Request) -> Response:
    return Response(status_code=200, headers=request_cors_headers(request))


@router.post("/stream-proxy")
async def stream_proxy(
    payload: ProxyRequest,
    request: Request,
    relay: StreamRelay = Depends(get_relay),
):
    iterator = await relay.open_stream(to_generation_request(payload))

    return StreamingResponse(
        iterator,
        media_type="text/event-stream",
        headers=event_stream_headers(request_cors_headers(request)),
    )


@router.post("/proxy")
async def proxy(
    payload: ProxyRequest,
    request: Request,
    relay: StreamRelay = Depends(get_relay),
):
    response_payload = await relay.complete(to_generation_request(payload))
    return JSONResponse(content=response_payload, headers=request_cors_headers(request))
