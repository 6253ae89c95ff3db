"""Generador de lecturas sintéticas.

Función pura: recibe el snapshot del perfil, el instante actual y una fuente
aleatoria, y devuelve la lectura que se envía por el socket.

Formato del payload:
    {username, temperature, humidity, dsTemperature, doorStatus?, datetime}
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from ..domain.profile import EmissionParams


@dataclass(frozen=True)
class ReadingPrecision:
    """Decimales de redondeo. Constante del servicio, no del perfil."""

    temperature: int = 2
    humidity: int = 2
    ds_temperature: int = 2


DEFAULT_PRECISION = ReadingPrecision()


@dataclass(frozen=True)
class Reading:
    username: str
    temperature: float
    humidity: float
    ds_temperature: float
    datetime: str
    door_status: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "username": self.username,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "dsTemperature": self.ds_temperature,
        }
        if self.door_status is not None:
            payload["doorStatus"] = self.door_status
        payload["datetime"] = self.datetime
        return payload


def format_timestamp(now: datetime) -> str:
    """ISO-8601 UTC con milisegundos y sufijo Z (2024-01-01T12:00:00.000Z)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    utc = now.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _draw(bounds: Tuple[float, float], rng: random.Random) -> float:
    # Sin validar min <= max: un rango invertido produce valores en [max, min].
    low, high = bounds
    return low + rng.random() * (high - low)


def _round(value: float, decimals: int) -> float:
    if decimals <= 0:
        return int(round(value))
    return round(value, decimals)


def _literal(name: str, value: Optional[float]) -> float:
    if value is None:
        raise ValueError(f"fixed profile without literal {name}")
    return float(value)


def generate_reading(
    params: EmissionParams,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    precision: ReadingPrecision = DEFAULT_PRECISION,
) -> Reading:
    """Genera una lectura para el perfil.

    Args:
        params: Snapshot del perfil
        now: Instante de la lectura (UTC por defecto)
        rng: Fuente aleatoria; inyectable para tests reproducibles
        precision: Decimales de redondeo

    Returns:
        Reading lista para serializar con ``to_payload()``
    """
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()

    if params.fixed:
        temperature = _literal("temperature", params.temperature)
        humidity = _literal("humidity", params.humidity)
        ds_temperature = _literal("dsTemperature", params.ds_temperature)
    else:
        # Tres sorteos independientes, sin correlación entre ellos.
        temperature = _draw(params.temperature_range, rng)
        humidity = _draw(params.humidity_range, rng)
        ds_temperature = _draw(params.ds_temperature_range, rng)

    return Reading(
        username=params.username,
        temperature=_round(temperature, precision.temperature),
        humidity=_round(humidity, precision.humidity),
        ds_temperature=_round(ds_temperature, precision.ds_temperature),
        datetime=format_timestamp(now),
        door_status=params.door_status,
    )
