"""Reconciliación entre el Profile Store (estado deseado) y el registry (estado real).

Flujo de cada barrido:
1. Leer todos los perfiles del store
2. Detener sesiones huérfanas (perfil borrado) o de perfiles con running=False
3. Iniciar los perfiles running que no tienen sesión viva

Se ejecuta al arrancar, después de cada acción de control y cada 30 s.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..monitoring.metrics import RECONCILE_RUNS
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    stopped: List[str] = field(default_factory=list)
    started: List[str] = field(default_factory=list)
    ok: bool = True

    def to_dict(self) -> dict:
        return {"stopped": self.stopped, "started": self.started, "ok": self.ok}


class Reconciler:
    def __init__(
        self,
        registry: SessionRegistry,
        store: Any,
        *,
        interval_ms: int = 30000,
    ):
        self._registry = registry
        self._store = store
        self._interval_ms = interval_ms
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._runs = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def runs(self) -> int:
        return self._runs

    async def reconcile(self) -> ReconcileResult:
        """Un barrido completo. Los barridos nunca se solapan."""
        async with self._lock:
            result = ReconcileResult()
            try:
                profiles = await asyncio.to_thread(self._store.find_all)
            except Exception as e:
                logger.warning("[RECONCILER] Store unavailable, sweep skipped err=%s", e)
                RECONCILE_RUNS.labels(status="failed").inc()
                result.ok = False
                return result

            wanted = {p.id for p in profiles if p.running}
            for profile_id in self._registry.live_ids():
                if profile_id not in wanted:
                    if await self._registry.stop(profile_id):
                        result.stopped.append(profile_id)

            try:
                running = await asyncio.to_thread(self._store.find_running)
            except Exception as e:
                logger.warning("[RECONCILER] Could not load running profiles err=%s", e)
                RECONCILE_RUNS.labels(status="failed").inc()
                result.ok = False
                return result

            for profile in running:
                if not self._registry.is_live(profile.id):
                    await self._registry.start(profile)
                    result.started.append(profile.id)

            self._runs += 1
            RECONCILE_RUNS.labels(status="ok").inc()

        if result.stopped or result.started:
            logger.info(
                "[RECONCILER] stopped=%s started=%s live=%d",
                result.stopped,
                result.started,
                len(self._registry),
            )
        return result

    def start(self) -> None:
        """Arranca el barrido periódico en background."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="reconciler")
        logger.info("[RECONCILER] Periodic sweep every %d ms", self._interval_ms)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait({task})
        logger.info("[RECONCILER] Stopped after %d sweeps", self._runs)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_ms / 1000.0)
            try:
                await self.reconcile()
            except Exception:
                logger.exception("[RECONCILER] Sweep failed")
