from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from stream_relay.core.types import DONE_SENTINEL, JSON_CONTENT_TYPE, GenerationRequest

SSE_DATA_PREFIX = "data: "
OLLAMA_GENERATE_PATH = "/api/generate"
OLLAMA_API_SEGMENT = "/api/"


class DialectKind(str, Enum):
    OPENAI_COMPATIBLE = "openai_compatible"
    OLLAMA = "ollama"


@dataclass(slots=True)
class DecodeWarning:
    line: str
    reason: str


@dataclass(slots=True)
class LineResult:
    """Outcome of normalizing one complete upstream line.

    ``frames`` are emitted in order, then the stream ends if ``done`` is set.
    A line that could not be decoded carries a ``warning`` and no frames.
    """

    frames: list[Any] = field(default_factory=list)
    done: bool = False
    warning: DecodeWarning | None = None


class UpstreamDialect(Protocol):
    kind: DialectKind

    def resolve_url(self, target_url: str) -> str: ...

    def shape_headers(self, headers: dict[str, str]) -> dict[str, str]: ...

    def shape_request(self, body: dict[str, Any], *, stream: bool = True) -> dict[str, Any]: ...

    def normalize_line(self, line: str) -> LineResult: ...

    def normalize_completion(self, payload: Any) -> Any: ...


class OpenAICompatibleDialect:
    """OpenAI, Grok, DeepSeek and any other chat-completions compatible API.

    The upstream already streams ``chat.completion.chunk`` objects, so lines
    are unwrapped from their SSE prefix and passed through unchanged.
    """

    kind = DialectKind.OPENAI_COMPATIBLE

    def resolve_url(self, target_url: str) -> str:
        return prefer_loopback_address(target_url)

    def shape_headers(self, headers: dict[str, str]) -> dict[str, str]:
        return {"Content-Type": JSON_CONTENT_TYPE, **headers}

    def shape_request(self, body: dict[str, Any], *, stream: bool = True) -> dict[str, Any]:
        return {**body, "stream": stream}

    def normalize_line(self, line: str) -> LineResult:
        line = line.strip()
        if not line:
            return LineResult()

        if line.startswith(SSE_DATA_PREFIX):
            data = line[len(SSE_DATA_PREFIX) :]
            if data == DONE_SENTINEL:
                return LineResult(done=True)
            return _pass_through(line, data)

        # Some backends stream bare JSON lines without the SSE prefix.
        return _pass_through(line, line)

    def normalize_completion(self, payload: Any) -> Any:
        return payload


class OllamaDialect:
    """Ollama ``/api/generate`` with newline-delimited JSON responses."""

    kind = DialectKind.OLLAMA

    def __init__(self, model: str) -> None:
        self.model = model

    def resolve_url(self, target_url: str) -> str:
        url = target_url
        if OLLAMA_GENERATE_PATH not in url:
            if OLLAMA_API_SEGMENT in url:
                url = url[: url.index(OLLAMA_API_SEGMENT)]
            url = f"{url}{OLLAMA_GENERATE_PATH}"
        return prefer_loopback_address(url)

    def shape_headers(self, headers: dict[str, str]) -> dict[str, str]:
        return {"Content-Type": JSON_CONTENT_TYPE}

    def shape_request(self, body: dict[str, Any], *, stream: bool = True) -> dict[str, Any]:
        messages = body.get("messages")
        if isinstance(messages, list) and messages:
            prompt = _message_content(messages[-1])
            system = _message_content(messages[0])
        else:
            prompt = body.get("prompt")
            system = None

        shaped: dict[str, Any] = {"model": self.model}
        if prompt is not None:
            shaped["prompt"] = prompt
        if system is not None:
            shaped["system"] = system
        shaped["stream"] = stream
        return shaped

    def normalize_line(self, line: str) -> LineResult:
        line = line.strip()
        if not line or line == f"{SSE_DATA_PREFIX}{DONE_SENTINEL}":
            return LineResult()

        try:
            payload = strict_json_loads(line)
        except ValueError as exc:
            return LineResult(warning=DecodeWarning(line=line, reason=str(exc)))

        if not isinstance(payload, dict):
            return LineResult(
                warning=DecodeWarning(line=line, reason="expected a JSON object")
            )

        done = bool(payload.get("done"))
        frames: list[Any] = []
        text = payload.get("response")
        if isinstance(text, str) and text:
            frames.append(self._chunk(text, finished=done))

        return LineResult(frames=frames, done=done)

    def normalize_completion(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            return payload

        return {
            "id": f"chatcmpl-{uuid.uuid4().hex}",
            "object": "chat.completion",
            "created": int(time.time()),
            "model": payload.get("model") or self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {
                        "role": "assistant",
                        "content": payload.get("response", ""),
                    },
                    "finish_reason": "stop",
                }
            ],
        }

    def _chunk(self, text: str, *, finished: bool) -> dict[str, Any]:
        now = time.time()
        return {
            "id": f"ollama-{int(now * 1000)}",
            "object": "chat.completion.chunk",
            "created": int(now),
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": {"content": text},
                    "finish_reason": "stop" if finished else None,
                }
            ],
        }


def select_dialect(request: GenerationRequest, default_ollama_model: str) -> UpstreamDialect:
    if request.is_ollama:
        return OllamaDialect(model=request.body.get("model") or default_ollama_model)
    return OpenAICompatibleDialect()


def prefer_loopback_address(url: str) -> str:
    # Some platforms resolve localhost to ::1 while local model servers bind IPv4 only.
    return url.replace("localhost", "127.0.0.1", 1)


def strict_json_loads(data: str | bytes) -> Any:
    """Parse JSON the way browsers do: NaN and Infinity are rejected."""

    return json.loads(data, parse_constant=_reject_constant)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not valid JSON")


def _pass_through(line: str, data: str) -> LineResult:
    try:
        payload = strict_json_loads(data)
    except ValueError as exc:
        return LineResult(warning=DecodeWarning(line=line, reason=str(exc)))
    return LineResult(frames=[payload])


def _message_content(message: Any) -> Any:
    if isinstance(message, dict):
        return message.get("content")
    return None
