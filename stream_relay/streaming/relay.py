from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx

from stream_relay.core.config import Settings
from stream_relay.core.errors import (
    MissingTargetError,
    RelayError,
    UpstreamDecodeError,
    UpstreamHttpError,
    UpstreamTimeoutError,
    UpstreamTransportError,
)
from stream_relay.core.logger import get_logger
from stream_relay.core.types import GenerationRequest

from .dialects import UpstreamDialect, select_dialect, strict_json_loads
from .lines import LineAssembler

DONE_FRAME = b"data: [DONE]\n\n"


@dataclass
class PreparedUpstreamCall:
    dialect: UpstreamDialect
    url: str
    headers: dict[str, str]
    body: dict[str, Any]


class StreamRelay:
    """Relays one generation request to an upstream LLM API.

    The relay itself holds only configuration. Every call owns its own
    ``httpx.AsyncClient``, upstream response and line buffer, all of which are
    released when the call finishes, fails or is cancelled.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._logger = get_logger(__name__, settings.log_level)

    def prepare(self, request: GenerationRequest, *, stream: bool = True) -> PreparedUpstreamCall:
        if not request.target_url:
            raise MissingTargetError()

        dialect = select_dialect(request, self.settings.default_ollama_model)
        return PreparedUpstreamCall(
            dialect=dialect,
            url=dialect.resolve_url(request.target_url),
            headers=dialect.shape_headers(dict(request.headers)),
            body=dialect.shape_request(dict(request.body), stream=stream),
        )

    async def open_stream(self, request: GenerationRequest) -> AsyncIterator[bytes]:
        """Start the upstream call and return the normalized SSE byte stream.

        Raises a ``RelayError`` if the call fails before the upstream answers
        with a 2xx status; once the stream is returned, failures are reported
        in-band as a final error frame.
        """

        prepared = self.prepare(request, stream=True)
        self._logger.info(
            "Relaying %s stream to %s", prepared.dialect.kind.value, prepared.url
        )

        deadline = self._deadline()
        client = self._new_client()
        try:
            response = await self._send(client, prepared, deadline, stream=True)
        except BaseException:
            await client.aclose()
            raise

        return self._relay_frames(client, response, prepared.dialect, deadline)

    async def complete(self, request: GenerationRequest) -> Any:
        """Non-streaming relay: one upstream call, one normalized JSON body."""

        prepared = self.prepare(request, stream=False)
        self._logger.info(
            "Relaying %s completion to %s", prepared.dialect.kind.value, prepared.url
        )

        deadline = self._deadline()
        async with self._new_client() as client:
            response = await self._send(client, prepared, deadline, stream=False)

        try:
            payload = strict_json_loads(response.content)
        except ValueError as exc:
            raise UpstreamDecodeError() from exc

        return prepared.dialect.normalize_completion(payload)

    async def _send(
        self,
        client: httpx.AsyncClient,
        prepared: PreparedUpstreamCall,
        deadline: float,
        *,
        stream: bool,
    ) -> httpx.Response:
        try:
            upstream_request = client.build_request(
                "POST",
                prepared.url,
                json=prepared.body,
                headers=prepared.headers,
            )
            async with asyncio.timeout_at(deadline):
                response = await client.send(upstream_request, stream=stream)
                if not response.is_success:
                    try:
                        await response.aread()
                    finally:
                        await response.aclose()
                    self._logger.error(
                        "Upstream %s answered %s: %s",
                        prepared.url,
                        response.status_code,
                        response.text,
                    )
                    raise UpstreamHttpError.from_response(
                        response.status_code, response.text
                    )
        except RelayError:
            raise
        except Exception as exc:
            raise map_upstream_error(exc, self.settings.upstream_timeout_seconds) from exc

        return response

    async def _relay_frames(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        dialect: UpstreamDialect,
        deadline: float,
    ) -> AsyncIterator[bytes]:
        assembler = LineAssembler()
        chunks = response.aiter_bytes()

        try:
            while True:
                async with asyncio.timeout_at(deadline):
                    data = await anext(chunks, None)

                lines = assembler.flush() if data is None else assembler.feed(data)
                for line in lines:
                    result = dialect.normalize_line(line)
                    if result.warning is not None:
                        self._logger.warning(
                            "Skipping undecodable upstream line %r: %s",
                            result.warning.line[:200],
                            result.warning.reason,
                        )
                        continue

                    for frame in result.frames:
                        yield sse_data(frame)

                    if result.done:
                        yield DONE_FRAME
                        return

                if data is None:
                    return

        except Exception as exc:
            error = map_upstream_error(exc, self.settings.upstream_timeout_seconds)
            self._logger.exception("Upstream stream failed: %s", error.message)
            yield sse_data({"error": {"message": error.message}})

        finally:
            await response.aclose()
            await client.aclose()

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(self.settings.upstream_timeout_seconds),
            follow_redirects=True,
        )

    def _deadline(self) -> float:
        return asyncio.get_running_loop().time() + self.settings.upstream_timeout_seconds


def map_upstream_error(exc: Exception, timeout_seconds: float) -> RelayError:
    """Map failures of the upstream call to relay errors."""

    if isinstance(exc, RelayError):
        return exc

    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return UpstreamTimeoutError(
            message=f"Upstream request timed out after {timeout_seconds:g} seconds."
        )

    if isinstance(exc, httpx.HTTPError):
        return UpstreamTransportError(message=f"Upstream request failed: {exc}")

    return RelayError(status_code=500, message=str(exc) or "Stream processing failed.")


def sse_data(payload: Any) -> bytes:
    encoded = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    try:
        return f"data: {encoded}\n\n".encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates (split emoji pairs) only survive as \u escapes.
        encoded = json.dumps(payload, ensure_ascii=True, separators=(",", ":"))
        return f"data: {encoded}\n\n".encode("utf-8")
