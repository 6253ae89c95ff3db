"""Aplicación FastAPI del simulador de dispositivos.

El lifespan construye una sola vez store, registry, reconciler y controller
y los deja en ``app.state``; no hay registry global de módulo.

Arranque:
1. Store (SQL por defecto) + esquema
2. Reconciliación inicial: arranca todos los perfiles running
3. Barrido periódico cada SIM_RECONCILE_INTERVAL_MS

Parada: detiene el barrido y cierra todas las sesiones (código 1000).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .common.config import Settings, get_settings
from .common.db import get_engine
from .core.emitter import (
    Reconciler,
    SessionRegistry,
    SessionTimings,
    SimulationController,
    websocket_connector,
)
from .core.emitter.session import Connector
from .core.readings.generator import ReadingPrecision
from .endpoints import forms_router, health_router, profiles_router, sessions_router
from .infrastructure.persistence import ProfileStore, SqlProfileStore

logger = logging.getLogger(__name__)


def _build_store(settings: Settings) -> ProfileStore:
    store = SqlProfileStore(get_engine(settings))
    store.ensure_schema()
    return store


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[ProfileStore] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    """Construye la app. ``store`` y ``connector`` son inyectables para tests."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        profile_store = store if store is not None else _build_store(cfg)

        registry = SessionRegistry(
            url=cfg.telemetry_ws_url,
            store=profile_store,
            connector=connector or websocket_connector(cfg.open_timeout_seconds),
            timings=SessionTimings.from_settings(cfg),
            precision=ReadingPrecision(
                temperature=cfg.temperature_decimals,
                humidity=cfg.humidity_decimals,
                ds_temperature=cfg.temperature_decimals,
            ),
        )
        reconciler = Reconciler(registry, profile_store, interval_ms=cfg.reconcile_interval_ms)
        controller = SimulationController(registry, reconciler)

        app.state.settings = cfg
        app.state.store = profile_store
        app.state.registry = registry
        app.state.reconciler = reconciler
        app.state.controller = controller

        logger.info("[API] Simulator starting endpoint=%s", cfg.telemetry_ws_url)
        result = await reconciler.reconcile()
        logger.info("[API] Initial reconcile started=%d", len(result.started))
        reconciler.start()
        try:
            yield
        finally:
            await reconciler.stop()
            stopped = await registry.stop_all()
            logger.info("[API] Simulator stopped sessions_closed=%d", len(stopped))

    app = FastAPI(title="Device Simulator Service", version=__version__, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(profiles_router)
    app.include_router(forms_router)
    app.include_router(sessions_router)
    return app


app = create_app()
