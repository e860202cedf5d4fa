"""Pydantic models matching the frontend TypeScript types."""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Raw transcript events ───────────────────────────────────────────

class EventKind(str, Enum):
    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    TOOL_INVOCATION = "tool_invocation"
    TOOL_RESULT = "tool_result"

    @property
    def is_message(self) -> bool:
        return self in (EventKind.USER_MESSAGE, EventKind.ASSISTANT_MESSAGE)

    @property
    def is_tool(self) -> bool:
        return self in (EventKind.TOOL_INVOCATION, EventKind.TOOL_RESULT)


class MessagePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str = ""
    content: Any = None
    model: Optional[str] = None
    usage: Optional[dict[str, Any]] = None


_PAYLOAD_PATH_KEYS = ("path", "file_path", "filePath")


class RawEvent(BaseModel):
    """One parsed transcript line.

    The payload is loosely structured, so callers go through the accessors
    below instead of probing ``message.content`` themselves.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    timestamp: str = ""
    workingDirectory: Optional[str] = None
    branchName: Optional[str] = None
    message: Optional[MessagePayload] = None

    def _content_dict(self) -> dict[str, Any]:
        if self.message is None or not isinstance(self.message.content, dict):
            return {}
        return self.message.content

    def file_path(self) -> Optional[str]:
        content = self._content_dict()
        for key in _PAYLOAD_PATH_KEYS:
            value = content.get(key)
            if isinstance(value, str) and value.strip():
                return value
        return None

    def tool_name(self) -> Optional[str]:
        value = self._content_dict().get("tool")
        return value if isinstance(value, str) and value else None

    def assistant_model(self) -> Optional[str]:
        if self.message is None:
            return None
        return self.message.model or None

    def token_usage(self) -> tuple[int, int]:
        if self.message is None or not isinstance(self.message.usage, dict):
            return 0, 0
        return (
            _coerce_int(self.message.usage.get("input_tokens")),
            _coerce_int(self.message.usage.get("output_tokens")),
        )


def _coerce_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


# ── Session-related models ──────────────────────────────────────────

class SessionStatus(str, Enum):
    WORKING = "working"
    ACTIVE = "active"
    IDLE = "idle"
    COMPLETED = "completed"
    ERROR = "error"  # reserved for the frontend; never produced by a scan


FileAction = Literal["read", "edit", "create", "delete"]


class FileChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    action: FileAction = "edit"
    timestamp: str = ""


class GitCommit(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    message: str = ""
    timestamp: str = ""
    author: str = ""


class TokenUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0


class SessionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    displayName: str
    status: SessionStatus = SessionStatus.COMPLETED
    workingDirectory: str = ""
    branchName: Optional[str] = None
    startTime: str = ""
    lastActivity: str = ""
    messageCount: int = 0
    toolCount: int = 0
    recentFileChanges: tuple[FileChange, ...] = ()
    recentCommits: tuple[GitCommit, ...] = ()
    model: Optional[str] = None
    tokenUsage: Optional[TokenUsage] = None
    sourcePath: str = ""


class Snapshot(BaseModel):
    """Ordered, immutable view of the most recently active sessions."""

    model_config = ConfigDict(frozen=True)

    sessions: tuple[SessionRecord, ...] = ()

    @classmethod
    def empty(cls) -> Snapshot:
        return cls()


# ── Wire envelopes ──────────────────────────────────────────────────

class SnapshotMessage(BaseModel):
    """Full-replacement message: the receiver drops whatever it held."""

    type: Literal["init"] = "init"
    sessions: list[SessionRecord] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> SnapshotMessage:
        return cls(sessions=list(snapshot.sessions))


class SessionUpdate(BaseModel):
    type: Literal["session_update", "session_add", "session_remove", "file_change", "commit"]
    sessionId: str
    data: Union[FileChange, GitCommit, dict[str, Any]] = Field(default_factory=dict)


class UpdateMessage(BaseModel):
    type: Literal["update"] = "update"
    update: SessionUpdate


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    error: str
