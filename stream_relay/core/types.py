from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

JSON_CONTENT_TYPE = "application/json"
DONE_SENTINEL = "[DONE]"


@dataclass(slots=True)
class GenerationRequest:
    target_url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    is_ollama: bool = False
