"""Health, readiness y métricas."""

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness: el proceso responde."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness: el store de perfiles responde a un ping."""
    store = request.app.state.store
    ping = getattr(store, "ping", None)
    if ping is None:
        return {"status": "ready"}
    try:
        await asyncio.to_thread(ping)
        return {"status": "ready"}
    except Exception:
        # No exponer detalles del error al cliente
        logger.exception("[API] Store readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")


@router.get("/metrics")
def metrics():
    """Exposición Prometheus: lecturas, conexiones, sesiones y barridos."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
