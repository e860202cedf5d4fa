import asyncio
import json
import tempfile
import types
import unittest
from pathlib import Path

from fastapi import HTTPException, WebSocketDisconnect

from hexwatch.broadcaster import SnapshotBroadcaster
from hexwatch.models import SessionRecord, Snapshot
from hexwatch.routers import sessions as sessions_router
from hexwatch.scanner import SessionScanner


def _app(**state) -> types.SimpleNamespace:
    return types.SimpleNamespace(state=types.SimpleNamespace(**state))


class _FakeWebSocket:
    def __init__(self, app) -> None:
        self.app = app
        self.accepted = False
        self.sent: list[dict] = []
        self.disconnect = asyncio.Event()

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data) -> None:
        self.sent.append(data)

    async def receive_text(self) -> str:
        await self.disconnect.wait()
        raise WebSocketDisconnect(code=1000)


class SessionsRouterTests(unittest.IsolatedAsyncioTestCase):
    async def test_list_sessions_scans_on_demand(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "-work-app" / "session-0001.jsonl"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"type": "user", "timestamp": "2026-02-16T10:00:00Z"}), encoding="utf-8")
        request = types.SimpleNamespace(app=_app(scanner=SessionScanner(Path(tmpdir.name))))

        response = await sessions_router.list_sessions(request)

        self.assertEqual(len(response["sessions"]), 1)
        session = response["sessions"][0]
        self.assertEqual(session["id"], "session-0001")
        self.assertEqual(session["displayName"], "app/0001")
        self.assertEqual(session["workingDirectory"], "/work/app")
        self.assertEqual(session["recentFileChanges"], [])

    async def test_list_sessions_503_without_scanner(self) -> None:
        request = types.SimpleNamespace(app=_app())

        with self.assertRaises(HTTPException) as ctx:
            await sessions_router.list_sessions(request)

        self.assertEqual(ctx.exception.status_code, 503)

    async def test_get_snapshot_returns_held_snapshot_envelope(self) -> None:
        broadcaster = SnapshotBroadcaster()
        await broadcaster.publish(Snapshot(sessions=(SessionRecord(id="s1", displayName="x/s1"),)))
        request = types.SimpleNamespace(app=_app(broadcaster=broadcaster))

        message = await sessions_router.get_snapshot(request)

        self.assertEqual(message.type, "init")
        self.assertEqual([s.id for s in message.sessions], ["s1"])

    async def test_websocket_gets_replay_then_updates_until_disconnect(self) -> None:
        broadcaster = SnapshotBroadcaster()
        await broadcaster.publish(Snapshot(sessions=(SessionRecord(id="s1", displayName="x/s1"),)))
        websocket = _FakeWebSocket(_app(broadcaster=broadcaster))

        handler = asyncio.create_task(sessions_router.ws_sessions(websocket))
        while not websocket.sent:
            await asyncio.sleep(0.01)

        await broadcaster.publish(Snapshot(sessions=(SessionRecord(id="s2", displayName="x/s2"),)))
        websocket.disconnect.set()
        await asyncio.wait_for(handler, timeout=1.0)

        self.assertTrue(websocket.accepted)
        self.assertEqual([m["type"] for m in websocket.sent], ["init", "init"])
        self.assertEqual(websocket.sent[0]["sessions"][0]["id"], "s1")
        self.assertEqual(websocket.sent[1]["sessions"][0]["id"], "s2")
        self.assertEqual(websocket.sent[1]["sessions"][0]["status"], "completed")
        self.assertEqual(broadcaster.subscriber_count, 0)


if __name__ == "__main__":
    unittest.main()
