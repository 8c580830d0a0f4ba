"""Read and submit lightning strikes."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from ..errors import ValidationError
from ..models import AppConfig
from ..services.lightning_store import LightningStore
from .deps import get_config, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/lightning", tags=["lightning"])


@router.get("")
def list_recent_strikes(
    store: LightningStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
):
    """Most recent strikes, newest first."""
    strikes = store.recent(config.lightning.api_limit)
    return [strike.model_dump(mode="json", exclude_none=True) for strike in strikes]


@router.post("")
def submit_strike(
    payload: Any = Body(default=None),
    store: LightningStore = Depends(get_store),
):
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid lightning strike"})
    try:
        strike = store.add(payload)
    except ValidationError as exc:
        logger.warning("[lightning] Rejected strike: %s", exc)
        return JSONResponse(status_code=400, content={"error": "Invalid lightning strike", "detail": str(exc)})
    except Exception as exc:  # noqa: BLE001
        logger.error("[lightning] Add lightning strike error: %s", exc, exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to add lightning strike"})
    return strike.model_dump(mode="json", exclude_none=True)
