"""hexwatch FastAPI application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hexwatch import config
from hexwatch.broadcaster import SnapshotBroadcaster
from hexwatch.observability import initialize as initialize_observability, shutdown as shutdown_observability
from hexwatch.routers.sessions import live_router, sessions_router
from hexwatch.scanner import SessionScanner
from hexwatch.watcher import SessionWatcher, WatcherStartError

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("hexwatch")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("hexwatch starting up")
    initialize_observability(app)

    scanner = SessionScanner(config.PROJECTS_DIR)
    broadcaster = SnapshotBroadcaster()
    watcher = SessionWatcher(scanner, broadcaster)
    app.state.scanner = scanner
    app.state.broadcaster = broadcaster
    app.state.watcher = watcher

    try:
        await watcher.start()
    except WatcherStartError as e:
        logger.error(f"Cannot watch Claude sessions: {e}")
        shutdown_observability(app)
        raise

    yield

    logger.info("hexwatch shutting down")
    await watcher.stop()
    shutdown_observability(app)


app = FastAPI(
    title="hexwatch API",
    description="Live view of Claude Code sessions",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions_router)
app.include_router(live_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    broadcaster = getattr(app.state, "broadcaster", None)
    watcher = getattr(app.state, "watcher", None)
    return {
        "status": "ok",
        "sessions": len(broadcaster.snapshot.sessions) if broadcaster else 0,
        "watcher": watcher.state.value if watcher and watcher.is_running else "stopped",
    }
