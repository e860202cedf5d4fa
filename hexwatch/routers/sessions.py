"""Session snapshot API: REST reads plus the live WebSocket feed."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from hexwatch.broadcaster import SnapshotBroadcaster
from hexwatch.models import Snapshot, SnapshotMessage
from hexwatch.scanner import SessionScanner

logger = logging.getLogger("hexwatch.api")

sessions_router = APIRouter(prefix="/api", tags=["sessions"])
live_router = APIRouter(tags=["live"])


def _get_scanner(request: Request) -> SessionScanner:
    scanner = getattr(request.app.state, "scanner", None)
    if not scanner:
        raise HTTPException(status_code=503, detail="Session scanner not initialized")
    return scanner


def _get_broadcaster(app) -> SnapshotBroadcaster:
    broadcaster = getattr(app.state, "broadcaster", None)
    if not broadcaster:
        raise HTTPException(status_code=503, detail="Snapshot broadcaster not initialized")
    return broadcaster


@sessions_router.get("/sessions")
async def list_sessions(request: Request):
    """Rescan the projects root on demand."""
    scanner = _get_scanner(request)
    snapshot = await asyncio.to_thread(scanner.scan)
    return {"sessions": [s.model_dump(mode="json") for s in snapshot.sessions]}


@sessions_router.get("/snapshot", response_model=SnapshotMessage)
async def get_snapshot(request: Request):
    """Return the snapshot currently pushed to live subscribers."""
    return SnapshotMessage.from_snapshot(_get_broadcaster(request.app).snapshot)


@live_router.websocket("/ws")
async def ws_sessions(websocket: WebSocket):
    """Push every snapshot as a full-replacement message until the client leaves."""
    broadcaster = _get_broadcaster(websocket.app)
    await websocket.accept()
    logger.info("Client connected")

    async def send_snapshot(snapshot: Snapshot) -> None:
        await websocket.send_json(SnapshotMessage.from_snapshot(snapshot).model_dump(mode="json"))

    unsubscribe = await broadcaster.subscribe(send_snapshot)
    try:
        while True:
            # Clients have nothing to say; reading just detects the disconnect.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Client disconnected")
    finally:
        unsubscribe()
