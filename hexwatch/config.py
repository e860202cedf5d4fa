"""hexwatch configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Claude Code writes one JSONL transcript per session under ~/.claude/projects
CLAUDE_DIR = Path.home() / ".claude"
PROJECTS_DIR = Path(os.getenv("HEXWATCH_PROJECTS_DIR", str(CLAUDE_DIR / "projects"))).expanduser()
SESSION_SUFFIX = os.getenv("HEXWATCH_SESSION_SUFFIX", ".jsonl")

# Snapshot shape
MAX_SESSIONS = _env_int("HEXWATCH_MAX_SESSIONS", 50)
MAX_FILE_CHANGES = _env_int("HEXWATCH_MAX_FILE_CHANGES", 10)
MAX_COMMITS = _env_int("HEXWATCH_MAX_COMMITS", 5)
DISPLAY_NAME_BUDGET = _env_int("HEXWATCH_DISPLAY_NAME_BUDGET", 20)

# Watcher tuning
DEBOUNCE_MS = _env_int("HEXWATCH_DEBOUNCE_MS", 500)
WATCH_STEP_MS = _env_int("HEXWATCH_WATCH_STEP_MS", 50)
SEND_TIMEOUT_SECONDS = _env_float("HEXWATCH_SEND_TIMEOUT_SECONDS", 5.0)

# Observability
LOG_LEVEL = os.getenv("HEXWATCH_LOG_LEVEL", "INFO").upper()
OTEL_ENABLED = _env_bool("HEXWATCH_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("HEXWATCH_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("HEXWATCH_OTEL_SERVICE_NAME", "hexwatch")
PROM_PORT = _env_int("HEXWATCH_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("HEXWATCH_HOST", "0.0.0.0")
PORT = _env_int("HEXWATCH_PORT", 3847)

# CORS
FRONTEND_ORIGIN = os.getenv("HEXWATCH_FRONTEND_ORIGIN", "http://localhost:5173")
