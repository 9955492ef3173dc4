"""podserve - Main application entry point."""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from podserve import __version__
from podserve.api import feed_router, files_router, health_router, static_router
from podserve.api.routes_static import load_cover
from podserve.catalog import (
    CatalogStore,
    RefreshLoop,
    build_snapshot,
    metadata_from_settings,
)
from podserve.config import Settings, get_settings
from podserve.logging import setup_logging
from podserve.middleware import AccessLogMiddleware

logger = logging.getLogger("podserve")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the first catalog, run the refresh loop, stop it on shutdown."""
    settings: Settings = app.state.settings
    metadata = metadata_from_settings(settings)

    # Startup: the store is never empty once the server accepts connections.
    snapshot = await asyncio.to_thread(build_snapshot, metadata)
    store = CatalogStore(snapshot)
    app.state.store = store
    app.state.cover = load_cover(settings.cover_file)

    refresher = RefreshLoop(store, metadata, interval=settings.refresh_interval_seconds)
    app.state.refresher = refresher
    refresher.start()

    logger.info(f"Finished initialization, serving {len(snapshot.items)} files.")
    logger.info(f"Add {settings.base_url}feed to your podcast app.")
    try:
        yield
    finally:
        # Shutdown
        await refresher.stop()


class PodcastServer(uvicorn.Server):
    """uvicorn server that also stops the catalog refresh on SIGINT/SIGTERM.

    Lifespan shutdown only runs after the graceful-shutdown period, so the
    refresh loop is stopped here, when the signal arrives, instead.
    """

    def handle_exit(self, sig, frame) -> None:
        super().handle_exit(sig, frame)
        refresher = getattr(self.config.app.state, "refresher", None)
        if refresher is not None:
            refresher.request_stop()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="podserve",
        description="Serve a directory of audio files as a podcast feed",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    app.add_middleware(AccessLogMiddleware)

    # Include routers; the file router's catch-all path must come last.
    app.include_router(health_router)
    app.include_router(feed_router)
    app.include_router(static_router)
    app.include_router(files_router)

    return app


def main(argv: list[str] | None = None) -> None:
    """Entry point for running the server."""
    settings = Settings(
        _cli_parse_args=argv if argv is not None else sys.argv[1:],
        _cli_prog_name="podserve",
    )
    setup_logging(settings)

    if not settings.dir.is_dir():
        logger.error(f"media directory {settings.dir} does not exist")
        sys.exit(1)

    config = uvicorn.Config(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        log_config=None,
        access_log=False,
    )
    server = PodcastServer(config)
    server.run()

    # Lifespan startup failures (e.g. the first scan) return without starting.
    if not server.started:
        sys.exit(1)


if __name__ == "__main__":
    main()
