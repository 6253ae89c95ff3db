from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .config import Settings, get_settings


logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Crea el engine SQLAlchemy para el store de perfiles.

    SQLite necesita ``check_same_thread=False`` porque las rutas síncronas y
    el core (via ``asyncio.to_thread``) usan conexiones desde otros hilos.
    La variante en memoria comparte una única conexión (``StaticPool``).
    """
    url = make_url(database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True, pool_recycle=300, future=True)

    if url.database in (None, "", ":memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )

    # Crear el directorio del archivo SQLite si no existe (data/ por defecto).
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        url,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
        future=True,
    )


def get_engine(settings: Optional[Settings] = None) -> Engine:
    settings = settings or get_settings()

    # Log sin credenciales
    safe_url = make_url(settings.database_url).render_as_string(hide_password=True)
    logger.info("[DB] Crear engine url=%s", safe_url)

    engine = build_engine(settings.database_url)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    return engine
