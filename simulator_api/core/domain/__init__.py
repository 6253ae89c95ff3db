from .profile import DEFAULT_INTERVAL_MS, EmissionParams, Profile

__all__ = ["DEFAULT_INTERVAL_MS", "EmissionParams", "Profile"]
