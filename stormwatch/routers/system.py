from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from ..config_manager import ConfigManager
from ..secret_store import ENV_FALLBACKS, SecretStore
from ..services.lightning_simulator import LightningSimulator
from ..services.lightning_store import LightningStore
from ..services.offline_state import get_offline_state
from .deps import get_config_manager, get_secret_store, get_simulator, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["system"])


class SecretUpdateRequest(BaseModel):
    items: Dict[str, Optional[str]]


@router.get("/health")
def health_check(
    store: LightningStore = Depends(get_store),
    simulator: LightningSimulator = Depends(get_simulator),
) -> Dict[str, Any]:
    """Health check for systemd/scripts, with provider and simulator state."""
    return {
        "status": "ok",
        "providers": get_offline_state(),
        "lightning": {
            "stored": len(store),
            "simulator_running": simulator.running,
            "cycles": simulator.cycles,
            "failures": simulator.failures,
        },
    }


@router.get("/secrets")
def get_secrets_status(secret_store: SecretStore = Depends(get_secret_store)) -> Dict[str, bool]:
    """Returns which provider keys are set (true/false). Does not return values."""
    return {key: secret_store.has_secret(key) for key in ENV_FALLBACKS}


@router.post("/secrets")
def update_secrets(
    req: SecretUpdateRequest,
    secret_store: SecretStore = Depends(get_secret_store),
) -> Dict[str, Any]:
    """Update provider keys. Empty values delete the stored key."""
    updated: List[str] = []
    ignored: List[str] = []
    for key, value in req.items.items():
        if key not in ENV_FALLBACKS:
            ignored.append(key)
            continue
        secret_store.set_secret(key, value or None)
        updated.append(key)

    logger.info("[config] Secrets updated: %s", updated)
    return {"ok": True, "updated": updated, "ignored": ignored}


@router.get("/config")
def get_config_file(config_manager: ConfigManager = Depends(get_config_manager)) -> Dict[str, Any]:
    config = config_manager.read()
    return {"source": config_manager.config_source, "config": config.model_dump(mode="json")}


@router.post("/config")
def update_config_file(
    payload: Any = Body(default=None),
    config_manager: ConfigManager = Depends(get_config_manager),
):
    """Persist a partial config. Takes effect on the next start."""
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Config must be a JSON object"})
    try:
        config = config_manager.update(payload)
    except ValidationError as exc:
        logger.warning("[config] Rejected config update: %s", exc)
        return JSONResponse(status_code=400, content={"error": "Invalid config", "detail": str(exc)})
    return {"ok": True, "restart_required": True, "config": config.model_dump(mode="json")}
