"""Fold a transcript's events into a SessionRecord."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

from hexwatch import config
from hexwatch.date_utils import file_metadata_dates, parse_iso_datetime, utc_now
from hexwatch.models import (
    EventKind,
    FileAction,
    FileChange,
    GitCommit,
    RawEvent,
    SessionRecord,
    SessionStatus,
    TokenUsage,
)
from hexwatch.observability import record_parser_failure
from hexwatch.parsers.records import iter_events

logger = logging.getLogger("hexwatch.parser")

# Tool names reported in a tool result payload -> file action.
_FILE_ACTION_BY_TOOL: dict[str, FileAction] = {
    "Read": "read",
    "ReadFile": "read",
    "Write": "create",
    "WriteFile": "create",
    "Edit": "edit",
    "MultiEdit": "edit",
    "Delete": "delete",
    "DeleteFile": "delete",
}

# Minutes since last activity -> status; first bound that is not reached wins.
_STATUS_THRESHOLDS: tuple[tuple[float, SessionStatus], ...] = (
    (1.0, SessionStatus.WORKING),
    (5.0, SessionStatus.ACTIVE),
    (30.0, SessionStatus.IDLE),
)

_SUMMARY_MARKER = "summary"


def is_summary_artifact(source_path: Path) -> bool:
    return _SUMMARY_MARKER in source_path.stem


def decode_project_path(encoded: str) -> str:
    """Turn an encoded project folder name back into a directory path.

    Claude Code stores transcripts under a folder named after the working
    directory with every '/' replaced by '-'. The reverse mapping is lossy: a
    directory whose real name contains '-' decodes into extra path segments.
    """
    if encoded.startswith("-"):
        encoded = "/" + encoded[1:]
    return encoded.replace("-", "/")


def classify_status(elapsed_minutes: float | None) -> SessionStatus:
    if elapsed_minutes is None:
        return SessionStatus.COMPLETED
    for bound, status in _STATUS_THRESHOLDS:
        if elapsed_minutes < bound:
            return status
    return SessionStatus.COMPLETED


def status_for(last_activity: str, now: datetime) -> SessionStatus:
    last_dt = parse_iso_datetime(last_activity)
    if last_dt is None:
        return classify_status(None)
    return classify_status((now - last_dt).total_seconds() / 60.0)


def make_display_name(working_directory: str, session_id: str, budget: int | None = None) -> str:
    limit = config.DISPLAY_NAME_BUDGET if budget is None else budget
    dir_name = Path(working_directory).name if working_directory else ""
    name = f"{dir_name}/{session_id[-4:]}"
    if len(name) > limit:
        return name[-limit:]
    return name


def _keep_latest(items: list, cap: int) -> tuple:
    if cap <= 0:
        return ()
    return tuple(items[-cap:])


def _file_change(event: RawEvent) -> FileChange | None:
    path = event.file_path()
    if not path:
        return None
    action = _FILE_ACTION_BY_TOOL.get(event.tool_name() or "", "edit")
    return FileChange(path=path, action=action, timestamp=event.timestamp)


def build_session(
    events: Iterable[RawEvent],
    source_path: Path,
    created_at: str,
    modified_at: str,
    now: datetime,
) -> SessionRecord | None:
    """Build one session record from events in file order.

    ``created_at``/``modified_at`` stand in for the first/last event timestamp
    when those are empty. Returns None for summary artifacts and for sources
    without a single parsed event.
    """
    if is_summary_artifact(source_path):
        return None

    first: RawEvent | None = None
    last: RawEvent | None = None
    message_count = 0
    tool_count = 0
    file_changes: list[FileChange] = []
    commits: list[GitCommit] = []
    working_directory = ""
    branch_name = ""
    model = ""
    tokens_in = 0
    tokens_out = 0

    for event in events:
        if first is None:
            first = event
        last = event

        if event.kind.is_message:
            message_count += 1
        elif event.kind.is_tool:
            tool_count += 1
            if event.kind is EventKind.TOOL_RESULT:
                change = _file_change(event)
                if change is not None:
                    file_changes.append(change)

        if event.workingDirectory:
            working_directory = event.workingDirectory
        if event.branchName:
            branch_name = event.branchName

        if event.kind is EventKind.ASSISTANT_MESSAGE:
            model = event.assistant_model() or model
            in_tok, out_tok = event.token_usage()
            tokens_in += in_tok
            tokens_out += out_tok

    if first is None or last is None:
        return None

    if not working_directory:
        working_directory = decode_project_path(source_path.parent.name)

    session_id = source_path.stem
    last_activity = last.timestamp or modified_at

    return SessionRecord(
        id=session_id,
        displayName=make_display_name(working_directory, session_id),
        status=status_for(last_activity, now),
        workingDirectory=working_directory,
        branchName=branch_name or None,
        startTime=first.timestamp or created_at,
        lastActivity=last_activity,
        messageCount=message_count,
        toolCount=tool_count,
        recentFileChanges=_keep_latest(file_changes, config.MAX_FILE_CHANGES),
        recentCommits=_keep_latest(commits, config.MAX_COMMITS),
        model=model or None,
        tokenUsage=TokenUsage(input=tokens_in, output=tokens_out) if (tokens_in or tokens_out) else None,
        sourcePath=str(source_path),
    )


def parse_session_file(path: Path, now: datetime | None = None) -> SessionRecord | None:
    """Parse one transcript file; any failure excludes the file instead of raising."""
    if is_summary_artifact(path):
        return None
    try:
        dates = file_metadata_dates(path)
        return build_session(
            iter_events(path),
            path,
            created_at=dates["createdAt"],
            modified_at=dates["updatedAt"],
            now=now or utc_now(),
        )
    except Exception as exc:
        logger.warning("Error parsing session file %s: %s", path, exc)
        record_parser_failure("session_file")
        return None
