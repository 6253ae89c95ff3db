from __future__ import annotations

import dataclasses
import threading
from typing import Any, Dict, List, Mapping, Optional

from ...core.domain.profile import Profile
from .profile_store import ProfileStore, clean_fields, new_profile_id


class InMemoryProfileStore(ProfileStore):
    """Implementación sencilla en memoria del store de perfiles.

    - Sin persistencia: se pierde al terminar el proceso.
    - Pensada para tests y para ejecutar el simulador sin base de datos.
    - Lock simple porque el core la consulta desde ``asyncio.to_thread``.
    """

    def __init__(self) -> None:
        self._profiles: Dict[str, Profile] = {}
        self._lock = threading.Lock()

    def find_all(self) -> List[Profile]:  # type: ignore[override]
        with self._lock:
            return list(self._profiles.values())

    def find_by_id(self, profile_id: str) -> Optional[Profile]:  # type: ignore[override]
        with self._lock:
            return self._profiles.get(profile_id)

    def exists_by_id(self, profile_id: str) -> bool:  # type: ignore[override]
        with self._lock:
            return profile_id in self._profiles

    def find_running(self) -> List[Profile]:  # type: ignore[override]
        with self._lock:
            return [p for p in self._profiles.values() if p.running]

    def create(self, fields: Mapping[str, Any]) -> Profile:  # type: ignore[override]
        profile = Profile(id=new_profile_id(), **clean_fields(fields))
        with self._lock:
            self._profiles[profile.id] = profile
        return profile

    def update_by_id(self, profile_id: str, fields: Mapping[str, Any]) -> Optional[Profile]:  # type: ignore[override]
        changes = clean_fields(fields)
        with self._lock:
            current = self._profiles.get(profile_id)
            if current is None:
                return None
            updated = dataclasses.replace(current, **changes)
            self._profiles[profile_id] = updated
            return updated

    def delete_by_id(self, profile_id: str) -> Optional[Profile]:  # type: ignore[override]
        with self._lock:
            return self._profiles.pop(profile_id, None)

    def delete_all(self) -> None:  # type: ignore[override]
        with self._lock:
            self._profiles.clear()
