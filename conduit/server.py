"""
Process entry point: ``conduit-server`` / ``python -m conduit.server``.

Exits with status 1 when the configuration is invalid or the database
cannot be reached at startup, and with 0 after a clean shutdown.
"""
import asyncio
import logging
import sys

import uvicorn
from pydantic import ValidationError

logger = logging.getLogger("conduit.server")


async def _check_database() -> None:
    from conduit.database import engine, ping

    try:
        await ping(engine)
    finally:
        # Pooled connections are bound to this event loop; uvicorn runs its own.
        await engine.dispose()


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        from conduit.config import settings
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    from conduit.main import app

    try:
        asyncio.run(_check_database())
    except Exception as exc:
        logger.error("Database unreachable: %s", exc)
        return 1

    logger.info("Starting Conduit API %s on %s:%d", settings.APP_VERSION, settings.SERVER_HOST, settings.SERVER_PORT)
    uvicorn.run(
        app,
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        timeout_keep_alive=settings.SERVER_IDLE_TIMEOUT,
        timeout_graceful_shutdown=settings.SHUTDOWN_TIMEOUT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
