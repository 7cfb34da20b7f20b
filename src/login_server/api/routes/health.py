"""Health endpoint.

Reports liveness, the package version and how many world nodes currently hold
a channel open.
"""

from __future__ import annotations

from collections.abc import Sized

from fastapi import APIRouter

from login_server import __version__


def router(channels: Sized) -> APIRouter:
    api = APIRouter(tags=["health"])

    @api.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": __version__, "connected_nodes": len(channels)}

    return api
