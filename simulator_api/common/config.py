from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_TELEMETRY_WS_URL = "wss://bio-data-production.up.railway.app"


def _default_env_file() -> str:
    # .env junto al pyproject, compartido con el despliegue local.
    repo_root = Path(__file__).resolve().parents[2]
    return str(repo_root / ".env")


@dataclass(frozen=True)
class Settings:
    database_url: str
    telemetry_ws_url: str

    keepalive_interval_ms: int
    reconnect_delay_ms: int
    reconcile_interval_ms: int
    open_timeout_seconds: float

    temperature_decimals: int
    humidity_decimals: int

    host: str
    port: int
    log_level: str


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("SIM_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    database_url = os.getenv("DATABASE_URL", "sqlite:///./data/simulator.db")
    telemetry_ws_url = os.getenv("SIM_TELEMETRY_WS_URL", DEFAULT_TELEMETRY_WS_URL)

    # Tiempos en milisegundos, igual que el intervalo de cada perfil.
    keepalive_interval_ms = int(os.getenv("SIM_KEEPALIVE_INTERVAL_MS", "25000"))
    reconnect_delay_ms = int(os.getenv("SIM_RECONNECT_DELAY_MS", "5000"))
    reconcile_interval_ms = int(os.getenv("SIM_RECONCILE_INTERVAL_MS", "30000"))
    open_timeout_seconds = float(os.getenv("SIM_OPEN_TIMEOUT_SECONDS", "10"))

    temperature_decimals = int(os.getenv("SIM_TEMPERATURE_DECIMALS", "2"))
    humidity_decimals = int(os.getenv("SIM_HUMIDITY_DECIMALS", "2"))

    return Settings(
        database_url=database_url,
        telemetry_ws_url=telemetry_ws_url,
        keepalive_interval_ms=keepalive_interval_ms,
        reconnect_delay_ms=reconnect_delay_ms,
        reconcile_interval_ms=reconcile_interval_ms,
        open_timeout_seconds=open_timeout_seconds,
        temperature_decimals=temperature_decimals,
        humidity_decimals=humidity_decimals,
        host=os.getenv("SIM_HOST", "0.0.0.0"),
        port=int(os.getenv("SIM_PORT", "3005")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
