"""Módulo de endpoints HTTP.

Contiene los endpoints del simulador organizados por función.
"""

from .forms import router as forms_router
from .health import router as health_router
from .profiles import router as profiles_router
from .sessions import router as sessions_router

__all__ = [
    "forms_router",
    "health_router",
    "profiles_router",
    "sessions_router",
]
