"""Rutas del formulario HTML de gestión de perfiles.

Reciben ``application/x-www-form-urlencoded`` y redirigen a ``/`` (303).
El checkbox ``fixed`` llega como ``on`` o no llega.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from ..core.emitter import SimulationController
from ..infrastructure.persistence import ProfileStore
from ..schemas import ProfileIn
from .deps import get_controller, get_store, store_call
from .profiles import (
    create_profile,
    delete_all_profiles,
    delete_profile,
    set_running,
    update_profile,
)

router = APIRouter(tags=["forms"])


def _home() -> RedirectResponse:
    return RedirectResponse(url="/", status_code=303)


async def _form_fields(request: Request) -> Dict[str, Any]:
    form = await request.form()
    # Inputs vacíos = campo no enviado
    data: Dict[str, Any] = {k: v for k, v in form.items() if isinstance(v, str) and v.strip() != ""}
    data["fixed"] = data.get("fixed") == "on"
    return data


def _validate(data: Dict[str, Any]) -> ProfileIn:
    try:
        return ProfileIn.model_validate(data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.post("/add")
async def add_form(
    request: Request,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    data = await _form_fields(request)
    data.setdefault("running", True)
    await create_profile(_validate(data), store, controller)
    return _home()


@router.post("/update/{profile_id}")
async def update_form(
    profile_id: str,
    request: Request,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    current = await store_call(store.find_by_id, profile_id)
    if current is None:
        raise HTTPException(status_code=404, detail=f"profile not found: {profile_id}")

    data = await _form_fields(request)
    data.setdefault("running", current.running)
    # El formulario reemplaza el perfil completo.
    fields = _validate(data).to_fields()
    await update_profile(profile_id, fields, store, controller)
    return _home()


@router.post("/start/{profile_id}")
async def start_form(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    await set_running(profile_id, True, store, controller)
    return _home()


@router.post("/stop/{profile_id}")
async def stop_form(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    await set_running(profile_id, False, store, controller)
    return _home()


@router.post("/delete/{profile_id}")
async def delete_form(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    await delete_profile(profile_id, store, controller)
    return _home()


@router.post("/delete-all")
async def delete_all_form(
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    await delete_all_profiles(store, controller)
    return _home()
