"""Fixtures compartidos: conexiones WebSocket falsas, perfiles y stores."""

import asyncio
import random
from typing import Any, Callable, List
from unittest.mock import MagicMock

import pytest
from websockets.exceptions import ConnectionClosedOK
from websockets.protocol import State

from simulator_api.common.config import Settings
from simulator_api.core.domain.profile import Profile
from simulator_api.core.emitter import SessionTimings
from simulator_api.infrastructure.persistence import InMemoryProfileStore


# =============================================================================
# FAKES
# =============================================================================

class FakeConnection:
    """Conexión cliente mínima con la interfaz que usa EmitterSession."""

    def __init__(self):
        self.state = State.OPEN
        self.sent: List[str] = []
        self.pings = 0
        self.close_codes: List[int] = []
        self._closed = asyncio.Event()

    async def send(self, message: str) -> None:
        if self.state is not State.OPEN:
            raise ConnectionClosedOK(None, None)
        self.sent.append(message)

    async def ping(self):
        self.pings += 1
        fut = asyncio.get_running_loop().create_future()
        fut.set_result(0.001)
        return fut

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_codes.append(code)
        self.state = State.CLOSED
        self._closed.set()

    def drop(self) -> None:
        """Simula una caída de red (cierre sin handshake)."""
        self.state = State.CLOSED
        self._closed.set()

    def __aiter__(self):
        return self

    async def __anext__(self):
        await self._closed.wait()
        raise StopAsyncIteration


class FakeConnector:
    """Conector inyectable: registra URLs y conexiones creadas."""

    def __init__(self, fail_times: int = 0):
        self.fail_times = fail_times
        self.urls: List[str] = []
        self.connections: List[FakeConnection] = []

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise OSError("connection refused")
        ws = FakeConnection()
        self.connections.append(ws)
        return ws

    @property
    def open_connections(self) -> List[FakeConnection]:
        return [c for c in self.connections if c.state is State.OPEN]


class GatedConnector(FakeConnector):
    """El open queda en vuelo hasta que se libera ``gate``."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()

    async def __call__(self, url: str) -> FakeConnection:
        self.entered.set()
        await self.gate.wait()
        return await super().__call__(url)


async def wait_until(predicate: Callable[[], Any], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


def make_profile(profile_id: str = "p1", **overrides) -> Profile:
    values = dict(
        id=profile_id,
        username="sensor-lab",
        min_t=18.0,
        max_t=26.0,
        min_h=40.0,
        max_h=60.0,
        min_ds_t=20.0,
        max_ds_t=25.0,
        fixed=False,
        interval=10,
        running=True,
    )
    values.update(overrides)
    return Profile(**values)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def timings() -> SessionTimings:
    return SessionTimings(keepalive_interval_ms=20, reconnect_delay_ms=30)


@pytest.fixture
def stub_store() -> MagicMock:
    """Store mínimo: el perfil existe salvo que el test diga lo contrario."""
    store = MagicMock()
    store.exists_by_id = MagicMock(return_value=True)
    return store


@pytest.fixture
def memory_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        telemetry_ws_url="ws://telemetry.test",
        keepalive_interval_ms=50,
        reconnect_delay_ms=50,
        reconcile_interval_ms=60000,
        open_timeout_seconds=1.0,
        temperature_decimals=2,
        humidity_decimals=2,
        host="127.0.0.1",
        port=3005,
        log_level="INFO",
    )
