"""Interfaz Control Surface → Core.

Las rutas HTTP mutan el Profile Store y luego notifican al controller, que
traduce cada acción a operaciones del registry. Toda acción mutante termina
con un barrido de reconciliación.
"""

from __future__ import annotations

import logging
from typing import List

from ..domain.profile import Profile
from .reconciler import ReconcileResult, Reconciler
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


class SimulationController:
    def __init__(self, registry: SessionRegistry, reconciler: Reconciler):
        self._registry = registry
        self._reconciler = reconciler

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def on_profile_created(self, profile: Profile) -> None:
        if profile.running:
            await self._registry.start(profile)
        await self.reconcile_now()

    async def on_profile_updated(self, profile: Profile) -> None:
        # El snapshot de una sesión viva no cambia: se reinicia con los nuevos valores.
        if profile.running:
            await self._registry.start(profile)
        else:
            await self._registry.stop(profile.id)
        await self.reconcile_now()

    async def on_profile_started(self, profile: Profile) -> None:
        await self._registry.start(profile)
        await self.reconcile_now()

    async def on_profile_stopped(self, profile_id: str) -> None:
        await self._registry.stop(profile_id)
        await self.reconcile_now()

    async def on_profile_deleted(self, profile_id: str) -> None:
        await self._registry.stop(profile_id)
        await self.reconcile_now()

    async def on_delete_all(self) -> None:
        stopped = await self._registry.stop_all()
        logger.info("[CONTROL] All profiles deleted, stopped=%d", len(stopped))
        await self.reconcile_now()

    async def reconcile_now(self) -> ReconcileResult:
        return await self._reconciler.reconcile()

    def list_active_session_ids(self) -> List[str]:
        return self._registry.live_ids()
