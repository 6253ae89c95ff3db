"""Perfil de dispositivo simulado.

El perfil vive en el Profile Store; el core solo lo referencia por ``id`` y
toma un snapshot inmutable (``EmissionParams``) al iniciar cada sesión.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple

# Rango del DS18B20 cuando el perfil no define minDsT/maxDsT (esquema antiguo).
LEGACY_DS_RANGE: Tuple[float, float] = (20.0, 25.0)

DEFAULT_INTERVAL_MS = 2000


@dataclass(frozen=True)
class Profile:
    id: str
    username: str
    min_t: Optional[float] = None
    max_t: Optional[float] = None
    min_h: Optional[float] = None
    max_h: Optional[float] = None
    min_ds_t: Optional[float] = None
    max_ds_t: Optional[float] = None
    fixed: bool = False
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    ds_temperature: Optional[float] = None
    door_status: Optional[str] = None
    interval: int = DEFAULT_INTERVAL_MS
    running: bool = True

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.field_names()}


@dataclass(frozen=True)
class EmissionParams:
    """Snapshot de los parámetros de emisión tomados al iniciar la sesión.

    Cambios posteriores en el store no afectan a una sesión ya en marcha.
    """

    profile_id: str
    username: str
    temperature_range: Tuple[float, float]
    humidity_range: Tuple[float, float]
    ds_temperature_range: Tuple[float, float]
    fixed: bool
    temperature: Optional[float]
    humidity: Optional[float]
    ds_temperature: Optional[float]
    door_status: Optional[str]
    interval_ms: int

    @classmethod
    def from_profile(cls, profile: Profile) -> "EmissionParams":
        if profile.min_ds_t is None and profile.max_ds_t is None:
            ds_range = LEGACY_DS_RANGE
        else:
            ds_range = (_num(profile.min_ds_t), _num(profile.max_ds_t))

        return cls(
            profile_id=profile.id,
            username=profile.username,
            temperature_range=(_num(profile.min_t), _num(profile.max_t)),
            humidity_range=(_num(profile.min_h), _num(profile.max_h)),
            ds_temperature_range=ds_range,
            fixed=bool(profile.fixed),
            temperature=profile.temperature,
            humidity=profile.humidity,
            ds_temperature=profile.ds_temperature,
            door_status=profile.door_status,
            interval_ms=int(profile.interval),
        )

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0


def _num(value: Optional[float]) -> float:
    return float(value) if value is not None else 0.0
