from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class RelayError(Exception):
    """Error raised before a response stream is opened."""

    status_code: int
    message: str
    code: str | None = None

    def __str__(self) -> str:
        return self.message

    def to_error(self) -> dict[str, Any]:
        error: dict[str, Any] = {"message": self.message}
        if self.code is not None:
            error["code"] = self.code
        return error


@dataclass
class MissingTargetError(RelayError):
    status_code: int = 400
    message: str = "Missing target API URL."
    code: str | None = "missing_target_url"


@dataclass
class UpstreamHttpError(RelayError):
    code: str | None = "upstream_http_error"

    @classmethod
    def from_response(cls, status_code: int, body: str) -> "UpstreamHttpError":
        return cls(status_code=status_code, message=f"{status_code} {body}")


@dataclass
class UpstreamTimeoutError(RelayError):
    status_code: int = 504
    message: str = "Upstream request timed out."
    code: str | None = "upstream_timeout"


@dataclass
class UpstreamTransportError(RelayError):
    status_code: int = 502
    message: str = "Upstream request failed."
    code: str | None = "upstream_unreachable"


@dataclass
class UpstreamDecodeError(RelayError):
    status_code: int = 502
    message: str = "Upstream returned a body that is not valid JSON."
    code: str | None = "upstream_invalid_json"
