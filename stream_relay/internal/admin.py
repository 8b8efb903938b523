from __future__ import annotations

from fastapi import APIRouter, Depends

from stream_relay.core.config import Settings
from stream_relay.dependencies import get_settings

router = APIRouter(prefix="/internal", tags=["internal"])


@router.get("/healthz")
async def healthz(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "service": settings.app_name}
