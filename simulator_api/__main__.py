"""CLI entry point: ``python -m simulator_api``."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from .common.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    p = argparse.ArgumentParser(description="Simulador de dispositivos IoT (WebSocket)")
    p.add_argument("--host", default=settings.host)
    p.add_argument("--port", type=int, default=settings.port)
    p.add_argument("--log-level", default=settings.log_level)
    args = p.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    logger.info("Simulador iniciado en http://%s:%d", args.host, args.port)
    uvicorn.run(
        "simulator_api.main:app",
        host=args.host,
        port=args.port,
        log_level=str(args.log_level).lower(),
    )


if __name__ == "__main__":
    main()
