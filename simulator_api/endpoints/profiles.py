"""Endpoints JSON de perfiles.

Cada acción muta el store y luego notifica al controller, que arranca o
detiene sesiones y reconcilia.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import ValidationError

from ..core.domain.profile import Profile
from ..core.emitter import SimulationController
from ..infrastructure.persistence import ProfileStore
from ..schemas import IndexOut, ProfileIn, ProfileOut, ProfileUpdate
from .deps import get_controller, get_store, store_call

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profiles"])


def _out(profile: Profile, controller: SimulationController) -> ProfileOut:
    return ProfileOut.from_profile(profile, live=controller.registry.is_live(profile.id))


def _not_found(profile_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"profile not found: {profile_id}")


# ---------------------------------------------------------------------------
# Acciones compartidas con las rutas de formulario
# ---------------------------------------------------------------------------


async def create_profile(
    payload: ProfileIn,
    store: ProfileStore,
    controller: SimulationController,
) -> Profile:
    profile = await store_call(store.create, payload.to_fields())
    logger.info("[API] Profile created id=%s running=%s", profile.id, profile.running)
    await controller.on_profile_created(profile)
    return profile


async def update_profile(
    profile_id: str,
    changes: Dict[str, Any],
    store: ProfileStore,
    controller: SimulationController,
) -> Profile:
    current = await store_call(store.find_by_id, profile_id)
    if current is None:
        raise _not_found(profile_id)

    # Validar el perfil resultante completo (rangos, modo fijo).
    try:
        merged = ProfileIn.model_validate({**current.to_dict(), **changes})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    fields = merged.to_fields()
    profile = await store_call(store.update_by_id, profile_id, fields)
    if profile is None:
        raise _not_found(profile_id)

    await controller.on_profile_updated(profile)
    return profile


async def set_running(
    profile_id: str,
    running: bool,
    store: ProfileStore,
    controller: SimulationController,
) -> Profile:
    profile = await store_call(store.update_by_id, profile_id, {"running": running})
    if profile is None:
        raise _not_found(profile_id)

    if running:
        await controller.on_profile_started(profile)
    else:
        await controller.on_profile_stopped(profile_id)
    return profile


async def delete_profile(
    profile_id: str,
    store: ProfileStore,
    controller: SimulationController,
) -> Profile:
    profile = await store_call(store.delete_by_id, profile_id)
    if profile is None:
        raise _not_found(profile_id)
    logger.info("[API] Profile deleted id=%s", profile_id)
    await controller.on_profile_deleted(profile_id)
    return profile


async def delete_all_profiles(store: ProfileStore, controller: SimulationController) -> None:
    await store_call(store.delete_all)
    await controller.on_delete_all()


# ---------------------------------------------------------------------------
# Rutas
# ---------------------------------------------------------------------------


@router.get("/", response_model=IndexOut)
async def index(
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profiles = await store_call(store.find_all)
    return IndexOut(
        profiles=[_out(p, controller) for p in profiles],
        active_sessions=controller.list_active_session_ids(),
    )


@router.get("/profiles", response_model=List[ProfileOut])
async def list_profiles(
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profiles = await store_call(store.find_all)
    return [_out(p, controller) for p in profiles]


@router.post("/profiles", response_model=ProfileOut, status_code=201)
async def create_profile_endpoint(
    payload: ProfileIn,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profile = await create_profile(payload, store, controller)
    return _out(profile, controller)


@router.get("/profiles/{profile_id}", response_model=ProfileOut)
async def get_profile(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profile = await store_call(store.find_by_id, profile_id)
    if profile is None:
        raise _not_found(profile_id)
    return _out(profile, controller)


@router.put("/profiles/{profile_id}", response_model=ProfileOut)
async def update_profile_endpoint(
    profile_id: str,
    payload: ProfileUpdate,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profile = await update_profile(profile_id, payload.to_fields(), store, controller)
    return _out(profile, controller)


@router.post("/profiles/{profile_id}/start", response_model=ProfileOut)
async def start_profile(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profile = await set_running(profile_id, True, store, controller)
    return _out(profile, controller)


@router.post("/profiles/{profile_id}/stop", response_model=ProfileOut)
async def stop_profile(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    profile = await set_running(profile_id, False, store, controller)
    return _out(profile, controller)


@router.delete("/profiles/{profile_id}", status_code=204)
async def delete_profile_endpoint(
    profile_id: str,
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    await delete_profile(profile_id, store, controller)
    return Response(status_code=204)


@router.delete("/profiles", status_code=204)
async def delete_all_endpoint(
    store: ProfileStore = Depends(get_store),
    controller: SimulationController = Depends(get_controller),
):
    await delete_all_profiles(store, controller)
    return Response(status_code=204)
