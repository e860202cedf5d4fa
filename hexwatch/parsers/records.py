"""Line-level parsing of Claude Code JSONL transcripts into RawEvent models."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator

from pydantic import ValidationError

from hexwatch.models import EventKind, MessagePayload, RawEvent

logger = logging.getLogger("hexwatch.parser")

# On-disk `type` values -> event kinds. The long names are accepted too.
_KIND_BY_TYPE: dict[str, EventKind] = {
    "user": EventKind.USER_MESSAGE,
    "assistant": EventKind.ASSISTANT_MESSAGE,
    "tool_use": EventKind.TOOL_INVOCATION,
    "tool_result": EventKind.TOOL_RESULT,
    **{kind.value: kind for kind in EventKind},
}


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _message_payload(raw: Any) -> MessagePayload | None:
    if not isinstance(raw, dict):
        return None
    usage = raw.get("usage")
    return MessagePayload(
        role=str(raw.get("role") or ""),
        content=raw.get("content"),
        model=_optional_str(raw.get("model")),
        usage=usage if isinstance(usage, dict) else None,
    )


def event_from_record(rec: dict[str, Any]) -> RawEvent | None:
    """Map one decoded JSON object onto a RawEvent, or None if it is not an event."""
    kind = _KIND_BY_TYPE.get(str(rec.get("type") or ""))
    if kind is None:
        return None
    timestamp = rec.get("timestamp")
    return RawEvent(
        kind=kind,
        timestamp=timestamp if isinstance(timestamp, str) else "",
        workingDirectory=_optional_str(rec.get("cwd")),
        branchName=_optional_str(rec.get("gitBranch")),
        message=_message_payload(rec.get("message")),
    )


def parse_line(line: str) -> RawEvent | None:
    """Parse a single transcript line.

    Every line is a complete record, so a bad line is simply skipped and never
    affects its neighbours.
    """
    line = line.strip()
    if not line:
        return None
    try:
        rec = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed transcript line: %.80s", line)
        return None
    if not isinstance(rec, dict):
        return None
    try:
        return event_from_record(rec)
    except ValidationError as exc:
        logger.debug("Skipping transcript record that failed validation: %s", exc)
        return None


def iter_events(path: Path) -> Iterator[RawEvent]:
    """Stream events from a transcript in on-disk order.

    I/O errors propagate; line-level problems do not.
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        for line in f:
            event = parse_line(line)
            if event is not None:
                yield event
