"""Estadísticas por sesión de emisión."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionStats:
    """Contadores de una sesión, expuestos en /sessions."""

    readings_sent: int = 0
    readings_skipped: int = 0
    pings_sent: int = 0
    connect_attempts: int = 0
    connect_failures: int = 0
    reconnects: int = 0
    last_sent_at: Optional[datetime] = None
    connected_at: Optional[datetime] = None
    started_at: datetime = field(default_factory=_utc_now)

    def __str__(self) -> str:
        return (
            f"Stats: sent={self.readings_sent} skipped={self.readings_skipped} "
            f"reconnects={self.reconnects}"
        )

    def mark_sent(self) -> None:
        self.readings_sent += 1
        self.last_sent_at = _utc_now()

    def mark_connected(self) -> None:
        self.connected_at = _utc_now()

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "readings_sent": self.readings_sent,
            "readings_skipped": self.readings_skipped,
            "pings_sent": self.pings_sent,
            "connect_attempts": self.connect_attempts,
            "connect_failures": self.connect_failures,
            "reconnects": self.reconnects,
            "last_sent_at": self.last_sent_at.isoformat() if self.last_sent_at else None,
            "connected_at": self.connected_at.isoformat() if self.connected_at else None,
            "started_at": self.started_at.isoformat(),
        }
