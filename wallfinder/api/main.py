"""HTTP entrypoint for the calibration engine.

Serves status and configuration, MJPEG depth/color streams and per-frame
metadata over a WebSocket. The engine is created lazily by the first route
that needs it and stopped when the app shuts down.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wallfinder.api.routes import config, health, status, stream
from wallfinder.api.services.state import get_settings, stop_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info(
        "WallFinder API starting (frame_source=%s, edge_mode=%s, give=%.1f)",
        settings.frame_source,
        settings.edge_mode,
        settings.give,
    )
    yield
    stop_engine()
    logger.info("Calibration engine stopped")


def create_app() -> FastAPI:
    app = FastAPI(title="WallFinder API", version="0.1.0", lifespan=lifespan)
    # Viewers load the MJPEG streams from other origins.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    for module in (health, config, status, stream):
        app.include_router(module.router)
    return app


app = create_app()


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the wall calibration API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    uvicorn.run("wallfinder.api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
