from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProxyRequest(BaseModel):
    target_url: str | None = Field(default=None, alias="targetUrl")
    headers: dict[str, str] | None = None
    body: dict[str, Any] | None = None
    is_ollama: bool = Field(default=False, alias="isOllama")

    model_config = ConfigDict(extra="allow", populate_by_name=True)
