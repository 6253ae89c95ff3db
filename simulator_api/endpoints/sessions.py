"""Diagnóstico de sesiones y reconciliación bajo demanda."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..core.emitter import SimulationController
from ..schemas import ReconcileOut, SessionsOut
from .deps import get_controller

router = APIRouter(tags=["sessions"])


@router.get("/sessions", response_model=SessionsOut)
async def list_sessions(controller: SimulationController = Depends(get_controller)):
    return SessionsOut(
        active=controller.list_active_session_ids(),
        sessions=controller.registry.snapshot(),
    )


@router.post("/reconcile", response_model=ReconcileOut)
async def reconcile(controller: SimulationController = Depends(get_controller)):
    result = await controller.reconcile_now()
    return ReconcileOut(**result.to_dict())
