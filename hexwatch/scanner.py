"""Session repository scanner.

Discovers transcript files under the projects root, builds one record per file
and assembles the ranked snapshot handed to the broadcaster.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from hexwatch import config
from hexwatch.date_utils import iso_to_epoch, utc_now
from hexwatch.models import SessionRecord, Snapshot
from hexwatch.observability import record_scan, start_span
from hexwatch.parsers.sessions import parse_session_file

logger = logging.getLogger("hexwatch.scanner")

Clock = Callable[[], datetime]


def rank_sessions(records: list[SessionRecord], limit: int) -> tuple[SessionRecord, ...]:
    """Most recent activity first, one record per id, at most ``limit`` records."""
    ordered = sorted(records, key=lambda r: iso_to_epoch(r.lastActivity), reverse=True)
    seen: set[str] = set()
    ranked: list[SessionRecord] = []
    for record in ordered:
        if len(ranked) >= limit:
            break
        if record.id in seen:
            continue
        seen.add(record.id)
        ranked.append(record)
    return tuple(ranked)


class SessionScanner:
    """Stateless between calls; callers are responsible for serializing scans."""

    def __init__(
        self,
        root: Optional[Path] = None,
        *,
        suffix: Optional[str] = None,
        max_sessions: Optional[int] = None,
        clock: Clock = utc_now,
    ):
        self.root = Path(root) if root is not None else config.PROJECTS_DIR
        self.suffix = suffix or config.SESSION_SUFFIX
        self.max_sessions = config.MAX_SESSIONS if max_sessions is None else max_sessions
        self._clock = clock

    def discover(self) -> list[Path]:
        return sorted(p for p in self.root.rglob(f"*{self.suffix}") if p.is_file())

    def scan(self) -> Snapshot:
        started = time.monotonic()
        now = self._clock()
        with start_span("hexwatch.scan", {"root": str(self.root)}):
            if not self.root.exists():
                logger.info("Claude projects directory not found: %s", self.root)
                record_scan("missing_root", (time.monotonic() - started) * 1000)
                return Snapshot.empty()

            try:
                files = self.discover()
            except OSError as exc:
                logger.error("Error scanning sessions under %s: %s", self.root, exc)
                record_scan("error", (time.monotonic() - started) * 1000)
                return Snapshot.empty()

            logger.debug("Found %d session files", len(files))
            records: list[SessionRecord] = []
            for path in files:
                record = parse_session_file(path, now=now)
                if record is not None:
                    records.append(record)

            snapshot = Snapshot(sessions=rank_sessions(records, self.max_sessions))

        record_scan("success", (time.monotonic() - started) * 1000, session_count=len(snapshot.sessions))
        return snapshot
