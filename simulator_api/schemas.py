from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .core.domain.profile import DEFAULT_INTERVAL_MS, Profile

_RANGES = (
    ("min_t", "max_t", "minT/maxT"),
    ("min_h", "max_h", "minH/maxH"),
    ("min_ds_t", "max_ds_t", "minDsT/maxDsT"),
)

_LITERALS = (
    ("temperature", "temperature"),
    ("humidity", "humidity"),
    ("ds_temperature", "dsTemperature"),
)


class _ProfileFields(BaseModel):
    # Nombres del formulario web (camelCase) o snake_case.
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = Field(default=None, min_length=1, max_length=255)
    min_t: Optional[float] = Field(default=None, alias="minT")
    max_t: Optional[float] = Field(default=None, alias="maxT")
    min_h: Optional[float] = Field(default=None, alias="minH")
    max_h: Optional[float] = Field(default=None, alias="maxH")
    min_ds_t: Optional[float] = Field(default=None, alias="minDsT")
    max_ds_t: Optional[float] = Field(default=None, alias="maxDsT")
    fixed: Optional[bool] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    ds_temperature: Optional[float] = Field(default=None, alias="dsTemperature")
    door_status: Optional[str] = Field(default=None, alias="doorStatus", max_length=64)
    interval: Optional[int] = Field(default=None, gt=0)
    running: Optional[bool] = None

    @model_validator(mode="after")
    def _ranges_not_reversed(self):
        for low_name, high_name, label in _RANGES:
            low = getattr(self, low_name)
            high = getattr(self, high_name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{label}: min must be <= max")
        return self

    def to_fields(self) -> Dict[str, Any]:
        """Campos del perfil en snake_case, sin los no enviados."""
        return self.model_dump(exclude_unset=True, by_alias=False)


class ProfileIn(_ProfileFields):
    username: str = Field(..., min_length=1, max_length=255)
    fixed: bool = False
    interval: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)
    running: bool = True

    @model_validator(mode="after")
    def _mode_fields_present(self):
        if self.fixed:
            missing = [label for name, label in _LITERALS if getattr(self, name) is None]
            if missing:
                raise ValueError(f"fixed profile requires {', '.join(missing)}")
        else:
            for low_name, high_name, label in _RANGES[:2]:
                if getattr(self, low_name) is None or getattr(self, high_name) is None:
                    raise ValueError(f"random profile requires {label}")
        return self

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=False)


class ProfileUpdate(_ProfileFields):
    """Actualización parcial; solo se aplican los campos enviados."""


class ProfileOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    min_t: Optional[float] = Field(default=None, alias="minT")
    max_t: Optional[float] = Field(default=None, alias="maxT")
    min_h: Optional[float] = Field(default=None, alias="minH")
    max_h: Optional[float] = Field(default=None, alias="maxH")
    min_ds_t: Optional[float] = Field(default=None, alias="minDsT")
    max_ds_t: Optional[float] = Field(default=None, alias="maxDsT")
    fixed: bool
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    ds_temperature: Optional[float] = Field(default=None, alias="dsTemperature")
    door_status: Optional[str] = Field(default=None, alias="doorStatus")
    interval: int
    running: bool
    live: bool = False

    @classmethod
    def from_profile(cls, profile: Profile, *, live: bool = False) -> "ProfileOut":
        return cls(**profile.to_dict(), live=live)


class IndexOut(BaseModel):
    profiles: List[ProfileOut] = Field(default_factory=list)
    active_sessions: List[str] = Field(default_factory=list)


class SessionsOut(BaseModel):
    active: List[str] = Field(default_factory=list)
    sessions: List[Dict[str, Any]] = Field(default_factory=list)


class ReconcileOut(BaseModel):
    stopped: List[str] = Field(default_factory=list)
    started: List[str] = Field(default_factory=list)
    ok: bool = True
