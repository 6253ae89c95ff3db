"""Core module - Ciclo de vida de los dispositivos simulados.

Estructura:
- domain/      → Perfil y snapshot de emisión
- readings/    → Generador de lecturas sintéticas
- emitter/     → Sesiones WebSocket, registry, reconciler y controller
- monitoring/  → Métricas y estadísticas por sesión
"""
