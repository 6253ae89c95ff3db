"""Dependencias FastAPI compartidas por los routers."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable

from fastapi import HTTPException, Request

from ..core.emitter import SimulationController
from ..infrastructure.persistence import ProfileStore

logger = logging.getLogger(__name__)


def get_store(request: Request) -> ProfileStore:
    return request.app.state.store


def get_controller(request: Request) -> SimulationController:
    return request.app.state.controller


async def store_call(fn: Callable[..., Any], *args: Any) -> Any:
    """Ejecuta una operación del store fuera del event loop.

    Cualquier fallo del store se traduce a 500, igual que en los endpoints
    de ingesta: detalle mínimo salvo con SIM_DEBUG_ERRORS=1.
    """
    try:
        return await asyncio.to_thread(fn, *args)
    except Exception as e:
        logger.exception(
            "[API] Store error op=%s err=%s",
            getattr(fn, "__name__", "store"),
            type(e).__name__,
        )
        detail = f"DB error: {type(e).__name__}"
        if os.getenv("SIM_DEBUG_ERRORS", "").strip() == "1":
            detail = f"{detail}: {e}"
        raise HTTPException(status_code=500, detail=detail)
