"""Asset server FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from retroasset import __version__
from retroasset.config import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings: Settings = app.state.settings
    setup_logging(settings)
    logger.info("%s v%s started", settings.app_name, __version__)

    try:
        yield
    finally:
        for proxy in app.state.proxies:
            await proxy.aclose()
        logger.info("%s shutting down", settings.app_name)


def setup_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # one line per proxied request is too chatty at INFO
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Application factory; ``transport`` replaces the upstream network in tests."""
    from retroasset.api.routes import mount_assets

    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.proxies = mount_assets(app, settings, transport=transport)
    return app


def run() -> None:
    """Serve with environment settings; ``uvicorn --factory retroasset.main:create_app`` also works."""
    from retroasset.server import build_server

    settings = get_settings()
    setup_logging(settings)
    build_server(settings).start()


if __name__ == "__main__":
    run()
