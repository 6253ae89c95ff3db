"""Profile Store - persistencia de perfiles de simulación.

El core depende solo de la interfaz ``ProfileStore``; la implementación SQL
usa SQLAlchemy con SQL explícito (``text()``), igual para SQLite o
PostgreSQL.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Engine

from ...core.domain.profile import Profile

logger = logging.getLogger(__name__)

# Campo del perfil -> columna. "interval" es palabra reservada en PostgreSQL.
_COLUMNS: Dict[str, str] = {
    "id": "id",
    "username": "username",
    "min_t": "min_t",
    "max_t": "max_t",
    "min_h": "min_h",
    "max_h": "max_h",
    "min_ds_t": "min_ds_t",
    "max_ds_t": "max_ds_t",
    "fixed": "fixed",
    "temperature": "temperature",
    "humidity": "humidity",
    "ds_temperature": "ds_temperature",
    "door_status": "door_status",
    "interval": "interval_ms",
    "running": "running",
}

_SELECT = "SELECT " + ", ".join(_COLUMNS.values()) + " FROM profiles"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id VARCHAR(36) PRIMARY KEY,
    username VARCHAR(255) NOT NULL,
    min_t FLOAT,
    max_t FLOAT,
    min_h FLOAT,
    max_h FLOAT,
    min_ds_t FLOAT,
    max_ds_t FLOAT,
    fixed BOOLEAN NOT NULL DEFAULT FALSE,
    temperature FLOAT,
    humidity FLOAT,
    ds_temperature FLOAT,
    door_status VARCHAR(64),
    interval_ms INTEGER NOT NULL DEFAULT 2000,
    running BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
)
"""


class ProfileStore(Protocol):
    """Interfaz abstracta del store de perfiles.

    El core (sesiones, registry, reconciler) solo debe depender de esta
    interfaz. Todas las operaciones son síncronas; el core las ejecuta con
    ``asyncio.to_thread``.
    """

    def find_all(self) -> List[Profile]:
        ...

    def find_by_id(self, profile_id: str) -> Optional[Profile]:
        ...

    def exists_by_id(self, profile_id: str) -> bool:
        ...

    def find_running(self) -> List[Profile]:
        ...

    def create(self, fields: Mapping[str, Any]) -> Profile:
        """Crea el perfil y asigna ``id``."""
        ...

    def update_by_id(self, profile_id: str, fields: Mapping[str, Any]) -> Optional[Profile]:
        """Actualización parcial; None si el perfil no existe."""
        ...

    def delete_by_id(self, profile_id: str) -> Optional[Profile]:
        """Devuelve el perfil eliminado o None."""
        ...

    def delete_all(self) -> None:
        ...


def new_profile_id() -> str:
    return str(uuid.uuid4())


def clean_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Filtra a campos conocidos del perfil; ``id`` nunca es modificable."""
    unknown = set(fields) - set(_COLUMNS)
    if unknown:
        raise ValueError(f"unknown profile fields: {sorted(unknown)}")
    return {k: v for k, v in fields.items() if k != "id"}


def _row_to_profile(row: Mapping[str, Any]) -> Profile:
    def opt_float(key: str) -> Optional[float]:
        value = row[key]
        return float(value) if value is not None else None

    return Profile(
        id=str(row["id"]),
        username=str(row["username"]),
        min_t=opt_float("min_t"),
        max_t=opt_float("max_t"),
        min_h=opt_float("min_h"),
        max_h=opt_float("max_h"),
        min_ds_t=opt_float("min_ds_t"),
        max_ds_t=opt_float("max_ds_t"),
        # SQLite devuelve 0/1
        fixed=bool(row["fixed"]),
        temperature=opt_float("temperature"),
        humidity=opt_float("humidity"),
        ds_temperature=opt_float("ds_temperature"),
        door_status=str(row["door_status"]) if row["door_status"] is not None else None,
        interval=int(row["interval_ms"]),
        running=bool(row["running"]),
    )


class SqlProfileStore:
    """Store de perfiles sobre SQLAlchemy."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def ensure_schema(self) -> None:
        """Crea la tabla si no existe. Seguro de llamar varias veces."""
        logger.info("[STORE] Ensuring schema exists")
        with self._engine.begin() as conn:
            conn.execute(text(_SCHEMA))

    def ping(self) -> bool:
        with self._engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def find_all(self) -> List[Profile]:
        with self._engine.connect() as conn:
            rows = conn.execute(text(f"{_SELECT} ORDER BY created_at ASC")).mappings().all()
        return [_row_to_profile(r) for r in rows]

    def find_by_id(self, profile_id: str) -> Optional[Profile]:
        with self._engine.connect() as conn:
            row = (
                conn.execute(text(f"{_SELECT} WHERE id = :id"), {"id": profile_id})
                .mappings()
                .first()
            )
        return _row_to_profile(row) if row else None

    def exists_by_id(self, profile_id: str) -> bool:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT 1 FROM profiles WHERE id = :id"),
                {"id": profile_id},
            ).first()
        return row is not None

    def find_running(self) -> List[Profile]:
        with self._engine.connect() as conn:
            rows = (
                conn.execute(
                    text(f"{_SELECT} WHERE running = :running ORDER BY created_at ASC"),
                    {"running": True},
                )
                .mappings()
                .all()
            )
        return [_row_to_profile(r) for r in rows]

    def create(self, fields: Mapping[str, Any]) -> Profile:
        values = Profile(id=new_profile_id(), **clean_fields(fields)).to_dict()

        params = {_COLUMNS[k]: v for k, v in values.items()}
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        params["created_at"] = now
        params["updated_at"] = now

        columns = ", ".join(params)
        placeholders = ", ".join(f":{c}" for c in params)
        with self._engine.begin() as conn:
            stmt = text(f"INSERT INTO profiles ({columns}) VALUES ({placeholders})").bindparams(
                bindparam("created_at", type_=DateTime()),
                bindparam("updated_at", type_=DateTime()),
            )
            conn.execute(stmt, params)

        logger.info("[STORE] Profile created id=%s username=%s", values["id"], values["username"])
        return _row_to_profile(params)

    def update_by_id(self, profile_id: str, fields: Mapping[str, Any]) -> Optional[Profile]:
        changes = clean_fields(fields)
        params: Dict[str, Any] = {_COLUMNS[k]: v for k, v in changes.items()}
        params["updated_at"] = datetime.now(timezone.utc).replace(tzinfo=None)

        assignments = ", ".join(f"{c} = :{c}" for c in params)
        with self._engine.begin() as conn:
            result = conn.execute(
                text(f"UPDATE profiles SET {assignments} WHERE id = :profile_id").bindparams(
                    bindparam("updated_at", type_=DateTime())
                ),
                {**params, "profile_id": profile_id},
            )
            if result.rowcount == 0:
                return None

        logger.info("[STORE] Profile updated id=%s fields=%s", profile_id, sorted(changes))
        return self.find_by_id(profile_id)

    def delete_by_id(self, profile_id: str) -> Optional[Profile]:
        with self._engine.begin() as conn:
            row = (
                conn.execute(text(f"{_SELECT} WHERE id = :id"), {"id": profile_id})
                .mappings()
                .first()
            )
            if row is None:
                return None
            conn.execute(text("DELETE FROM profiles WHERE id = :id"), {"id": profile_id})

        logger.info("[STORE] Profile deleted id=%s", profile_id)
        return _row_to_profile(row)

    def delete_all(self) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(text("DELETE FROM profiles"))
        logger.info("[STORE] All profiles deleted count=%s", result.rowcount)
