"""Ciclo de vida de conexiones y emisión por perfil."""

from .controller import SimulationController
from .reconciler import ReconcileResult, Reconciler
from .registry import SessionRegistry
from .session import (
    EmitterSession,
    InvalidTransition,
    SessionState,
    SessionTimings,
    websocket_connector,
)

__all__ = [
    "EmitterSession",
    "InvalidTransition",
    "ReconcileResult",
    "Reconciler",
    "SessionRegistry",
    "SessionState",
    "SessionTimings",
    "SimulationController",
    "websocket_connector",
]
