"""
FastAPI application for the login coordinator.

This module wires the world-node websocket listener and the health endpoint
around one shared :class:`SessionCoordinator`. World nodes connect to ``/``
(or ``/ws``) and exchange JSON frames; see :mod:`login_server.protocol`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from login_server import __version__
from login_server.api.routes import health, world
from login_server.core.coordinator import SessionCoordinator
from login_server.db.schema import init_database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_database()
    logger.info("Login server ready (version %s)", __version__)
    yield
    logger.info("Login server stopping; %d channel(s) open", len(app.state.channels))


def create_app(coordinator: SessionCoordinator | None = None) -> FastAPI:
    """Build the application around ``coordinator`` (a default one if omitted)."""
    app = FastAPI(title="Login Server", version=__version__, lifespan=lifespan)

    channels: set[world.WorldChannel] = set()
    app.state.coordinator = coordinator if coordinator is not None else SessionCoordinator()
    app.state.channels = channels

    app.include_router(world.router(app.state.coordinator, channels))
    app.include_router(health.router(channels))
    return app


def start_server(host: str | None = None, port: int | None = None) -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    from login_server.config import config

    uvicorn.run(
        create_app(),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


app = create_app()
