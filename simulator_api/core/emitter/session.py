"""Sesión de emisión: un socket WebSocket saliente por perfil.

Máquina de estados (una task asyncio por sesión, sin callbacks anidados):

    idle → connecting → open → awaiting_reconnect → connecting → ...
                      ↘ awaiting_reconnect        (fallo al abrir)
    cualquier estado → terminated

Mientras la sesión está ``open`` corren dos loops independientes:
- envío: cada ``interval`` ms genera una lectura y la escribe como frame JSON
- keep-alive: cada 25 s envía un ping; el pong solo se registra en logs

Al cerrarse el socket:
- si la sesión fue detenida (``close()``), termina
- si no, consulta el store: perfil borrado → termina; perfil presente →
  espera el backoff, vuelve a consultar y reconecta con el mismo snapshot
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ..domain.profile import EmissionParams, Profile
from ..monitoring.metrics import (
    CONNECT_ATTEMPTS,
    READINGS_SENT,
    READINGS_SKIPPED,
    RECONNECTS_SCHEDULED,
)
from ..monitoring.stats import SessionStats
from ..readings.generator import DEFAULT_PRECISION, ReadingPrecision, generate_reading

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000

Connector = Callable[[str], Awaitable[Any]]


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    AWAITING_RECONNECT = "awaiting_reconnect"
    TERMINATED = "terminated"


TRANSITIONS: Dict[SessionState, FrozenSet[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.CONNECTING, SessionState.TERMINATED}),
    SessionState.CONNECTING: frozenset(
        {SessionState.OPEN, SessionState.AWAITING_RECONNECT, SessionState.TERMINATED}
    ),
    SessionState.OPEN: frozenset({SessionState.AWAITING_RECONNECT, SessionState.TERMINATED}),
    SessionState.AWAITING_RECONNECT: frozenset({SessionState.CONNECTING, SessionState.TERMINATED}),
    SessionState.TERMINATED: frozenset(),
}


class InvalidTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class SessionTimings:
    """Periodos fijos de la sesión, en milisegundos."""

    keepalive_interval_ms: int = 25000
    reconnect_delay_ms: int = 5000

    @classmethod
    def from_settings(cls, settings: Any) -> "SessionTimings":
        return cls(
            keepalive_interval_ms=settings.keepalive_interval_ms,
            reconnect_delay_ms=settings.reconnect_delay_ms,
        )

    @property
    def keepalive_seconds(self) -> float:
        return self.keepalive_interval_ms / 1000.0

    @property
    def reconnect_seconds(self) -> float:
        return self.reconnect_delay_ms / 1000.0


def websocket_connector(open_timeout: float = 10.0) -> Connector:
    """Conector por defecto basado en ``websockets``.

    El keep-alive propio de la librería se desactiva: la sesión envía sus
    propios pings con el periodo configurado.
    """

    def _connect(url: str):
        return connect(url, ping_interval=None, open_timeout=open_timeout, close_timeout=5)

    return _connect


def _is_open(ws: Any) -> bool:
    return getattr(ws, "state", None) is State.OPEN


class EmitterSession:
    """Una conexión saliente con sus timers para un perfil.

    Uso:
        session = EmitterSession(profile, url=url, store=store)
        session.start()
        ...
        await session.close()
    """

    def __init__(
        self,
        profile: Profile,
        *,
        url: str,
        store: Any,
        connector: Optional[Connector] = None,
        timings: SessionTimings = SessionTimings(),
        precision: ReadingPrecision = DEFAULT_PRECISION,
        rng: Optional[random.Random] = None,
        on_terminated: Optional[Callable[["EmitterSession"], None]] = None,
    ):
        self.profile_id = profile.id
        self.params = EmissionParams.from_profile(profile)
        self.stats = SessionStats()

        self._url = url
        self._store = store
        self._connector = connector or websocket_connector()
        self._timings = timings
        self._precision = precision
        self._rng = rng or random.Random()
        self._on_terminated = on_terminated

        self._state = SessionState.IDLE
        self._should_reconnect = True
        self._cancel_sent = False
        self._task: Optional[asyncio.Task] = None
        self._ws: Any = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def should_reconnect(self) -> bool:
        return self._should_reconnect

    @property
    def is_open(self) -> bool:
        return self._state is SessionState.OPEN and _is_open(self._ws)

    @property
    def is_terminated(self) -> bool:
        return self._state is SessionState.TERMINATED

    def start(self) -> None:
        """Lanza la task de la sesión. Requiere un event loop en marcha."""
        if self._task is not None or self._state is not SessionState.IDLE:
            raise RuntimeError(f"session {self.profile_id} already started")
        self._task = asyncio.create_task(self._run(), name=f"emitter-{self.profile_id}")

    async def close(self) -> None:
        """Detiene la sesión y espera a que el socket quede cerrado.

        Idempotente. Cancela también un open en curso: el handler de open
        de ese intento ya no arma timers.
        """
        self._should_reconnect = False

        task = self._task
        if task is None:
            if self._state is SessionState.IDLE:
                self._transition(SessionState.TERMINATED)
            return
        if task is asyncio.current_task():
            return

        if not task.done() and not self._cancel_sent:
            # Un solo cancel: el cierre ordenado del socket corre en el finally.
            self._cancel_sent = True
            task.cancel()
        await asyncio.wait({task})

        # Cancelada antes de su primer paso: _run nunca entró al try.
        if self._state is SessionState.IDLE:
            self._transition(SessionState.TERMINATED)

    def describe(self) -> dict:
        return {
            "profile_id": self.profile_id,
            "username": self.params.username,
            "state": self._state.value,
            "interval_ms": self.params.interval_ms,
            "stats": self.stats.to_dict(),
        }

    # ------------------------------------------------------------------
    # Máquina de estados
    # ------------------------------------------------------------------

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in TRANSITIONS[self._state]:
            raise InvalidTransition(f"{self._state.value} -> {new_state.value}")
        logger.debug(
            "[EMITTER] profile=%s %s -> %s",
            self.profile_id,
            self._state.value,
            new_state.value,
        )
        self._state = new_state

    async def _run(self) -> None:
        try:
            while self._should_reconnect:
                ws = await self._connect()
                if ws is not None:
                    await self._serve(ws)

                if not self._should_reconnect:
                    break
                if not await self._profile_exists():
                    logger.info(
                        "[EMITTER] Profile deleted, not reconnecting profile=%s",
                        self.profile_id,
                    )
                    break

                self._transition(SessionState.AWAITING_RECONNECT)
                self.stats.reconnects += 1
                RECONNECTS_SCHEDULED.inc()
                logger.info(
                    "[EMITTER] Reconnect scheduled profile=%s delay_ms=%d",
                    self.profile_id,
                    self._timings.reconnect_delay_ms,
                )
                await asyncio.sleep(self._timings.reconnect_seconds)

                # El perfil pudo borrarse durante el backoff.
                if not await self._profile_exists():
                    logger.info(
                        "[EMITTER] Profile deleted during backoff profile=%s",
                        self.profile_id,
                    )
                    break
        except Exception:
            logger.exception("[EMITTER] Unexpected session error profile=%s", self.profile_id)
        finally:
            await self._release_socket()
            self._should_reconnect = False
            self._transition(SessionState.TERMINATED)
            logger.info("[EMITTER] Session terminated profile=%s %s", self.profile_id, self.stats)
            if self._on_terminated is not None:
                self._on_terminated(self)

    async def _connect(self) -> Any:
        self._transition(SessionState.CONNECTING)
        self.stats.connect_attempts += 1
        logger.info("[EMITTER] Connecting profile=%s url=%s", self.profile_id, self._url)

        try:
            ws = await self._connector(self._url)
        except Exception as e:
            self.stats.connect_failures += 1
            CONNECT_ATTEMPTS.labels(status="failed").inc()
            logger.warning(
                "[EMITTER] Connection failed profile=%s err=%s",
                self.profile_id,
                e,
            )
            return None

        # Se asigna antes de cualquier await para que close() siempre lo cierre.
        self._ws = ws
        CONNECT_ATTEMPTS.labels(status="success").inc()

        if not self._should_reconnect:
            return None

        self._transition(SessionState.OPEN)
        self.stats.mark_connected()
        logger.info(
            "[EMITTER] Connected profile=%s username=%s interval_ms=%d",
            self.profile_id,
            self.params.username,
            self.params.interval_ms,
        )
        return ws

    async def _serve(self, ws: Any) -> None:
        sender = asyncio.create_task(self._send_loop(ws))
        pinger = asyncio.create_task(self._keepalive_loop(ws))
        try:
            await self._drain(ws)
        finally:
            sender.cancel()
            pinger.cancel()
            await asyncio.gather(sender, pinger, return_exceptions=True)
        self._ws = None

    async def _drain(self, ws: Any) -> None:
        """Consume frames del servidor hasta que el socket se cierra."""
        try:
            async for message in ws:
                logger.debug(
                    "[EMITTER] Server frame profile=%s size=%d",
                    self.profile_id,
                    len(message),
                )
        except ConnectionClosed as e:
            logger.warning("[EMITTER] Connection lost profile=%s err=%s", self.profile_id, e)
            return
        logger.info("[EMITTER] Connection closed by server profile=%s", self.profile_id)

    async def _send_loop(self, ws: Any) -> None:
        interval = self.params.interval_seconds
        while True:
            await asyncio.sleep(interval)

            if not _is_open(ws):
                self._skip_tick()
                continue

            try:
                reading = generate_reading(self.params, rng=self._rng, precision=self._precision)
                await ws.send(json.dumps(reading.to_payload()))
            except ConnectionClosed:
                self._skip_tick()
                continue
            except Exception as e:
                logger.error("[EMITTER] Reading not sent profile=%s err=%s", self.profile_id, e)
                self._skip_tick()
                continue

            self.stats.mark_sent()
            READINGS_SENT.inc()

            if self.stats.readings_sent % 100 == 0:
                logger.info("[EMITTER] profile=%s %s", self.profile_id, self.stats)

    def _skip_tick(self) -> None:
        self.stats.readings_skipped += 1
        READINGS_SKIPPED.inc()
        logger.debug("[EMITTER] Tick skipped, socket not open profile=%s", self.profile_id)

    async def _keepalive_loop(self, ws: Any) -> None:
        while True:
            await asyncio.sleep(self._timings.keepalive_seconds)

            if not _is_open(ws):
                continue

            try:
                pong_waiter = await ws.ping()
            except ConnectionClosed:
                continue

            self.stats.pings_sent += 1
            pong_waiter.add_done_callback(self._on_pong)

    def _on_pong(self, fut: "asyncio.Future[Any]") -> None:
        if fut.cancelled() or fut.exception() is not None:
            return
        logger.debug("[EMITTER] Pong profile=%s latency=%s", self.profile_id, fut.result())

    async def _profile_exists(self) -> bool:
        """Consulta el store. Si no responde, se asume que el perfil sigue existiendo."""
        try:
            return bool(await asyncio.to_thread(self._store.exists_by_id, self.profile_id))
        except Exception as e:
            logger.warning(
                "[EMITTER] Store unavailable, keeping session alive profile=%s err=%s",
                self.profile_id,
                e,
            )
            return True

    async def _release_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        if getattr(ws, "state", None) in (State.CONNECTING, State.OPEN):
            try:
                await ws.close(code=NORMAL_CLOSURE, reason="simulation stopped")
            except Exception as e:
                logger.debug("[EMITTER] Close error profile=%s err=%s", self.profile_id, e)
