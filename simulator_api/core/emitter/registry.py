"""Registry de sesiones de emisión.

Única fuente de verdad de "este perfil está emitiendo". Se construye una vez
en el arranque de la aplicación y se pasa al controller y al reconciler.

GARANTÍAS:
- Como máximo una sesión viva por profile_id
- start/stop del mismo id nunca se intercalan (lock por id)
- start cierra por completo la sesión anterior antes de crear la nueva
- La entrada se elimina del mapa antes de cualquier await
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import defaultdict
from typing import Any, Dict, List, Optional

from ..domain.profile import Profile
from ..monitoring.metrics import LIVE_SESSIONS
from ..readings.generator import DEFAULT_PRECISION, ReadingPrecision
from .session import Connector, EmitterSession, SessionTimings

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Mapa profile_id → EmitterSession con sus operaciones de mutación."""

    def __init__(
        self,
        *,
        url: str,
        store: Any,
        connector: Optional[Connector] = None,
        timings: SessionTimings = SessionTimings(),
        precision: ReadingPrecision = DEFAULT_PRECISION,
        rng: Optional[random.Random] = None,
    ):
        self._url = url
        self._store = store
        self._connector = connector
        self._timings = timings
        self._precision = precision
        self._rng = rng

        self._sessions: Dict[str, EmitterSession] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def start(self, profile: Profile) -> EmitterSession:
        """Inicia la sesión del perfil, reemplazando la anterior si existe."""
        async with self._locks[profile.id]:
            previous = self._sessions.pop(profile.id, None)
            if previous is not None:
                logger.info("[REGISTRY] Replacing live session profile=%s", profile.id)
                await previous.close()

            session = EmitterSession(
                profile,
                url=self._url,
                store=self._store,
                connector=self._connector,
                timings=self._timings,
                precision=self._precision,
                rng=self._rng,
                on_terminated=self._on_session_terminated,
            )
            self._sessions[profile.id] = session
            session.start()
            self._update_gauge()

        logger.info(
            "[REGISTRY] Session started profile=%s username=%s live=%d",
            profile.id,
            profile.username,
            len(self._sessions),
        )
        return session

    async def stop(self, profile_id: str) -> bool:
        """Detiene la sesión del perfil. No-op si no hay sesión.

        Returns:
            True si había una sesión y se detuvo
        """
        async with self._locks[profile_id]:
            session = self._sessions.pop(profile_id, None)
            self._update_gauge()
            if session is None:
                return False
            await session.close()

        logger.info("[REGISTRY] Session stopped profile=%s live=%d", profile_id, len(self._sessions))
        return True

    async def stop_all(self) -> List[str]:
        ids = self.live_ids()
        for profile_id in ids:
            await self.stop(profile_id)
        return ids

    def is_live(self, profile_id: str) -> bool:
        return profile_id in self._sessions

    def live_ids(self) -> List[str]:
        return list(self._sessions)

    def get(self, profile_id: str) -> Optional[EmitterSession]:
        return self._sessions.get(profile_id)

    def snapshot(self) -> List[dict]:
        """Estado de cada sesión viva, para diagnóstico."""
        return [s.describe() for s in self._sessions.values()]

    def __len__(self) -> int:
        return len(self._sessions)

    def _on_session_terminated(self, session: EmitterSession) -> None:
        # Solo se elimina si la entrada sigue apuntando a esta sesión.
        if self._sessions.get(session.profile_id) is session:
            del self._sessions[session.profile_id]
            self._update_gauge()
            logger.info("[REGISTRY] Session removed after termination profile=%s", session.profile_id)

    def _update_gauge(self) -> None:
        LIVE_SESSIONS.set(len(self._sessions))
