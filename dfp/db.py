from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from . import settings as _settings_mod

SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  level TEXT NOT NULL,
  service_name TEXT,
  stage TEXT,
  message TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS reconfigurations (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  service_name TEXT,
  ok INTEGER NOT NULL,
  stage TEXT NOT NULL, -- validate|check|reload|confirm|done
  status_code INTEGER NOT NULL,
  message TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
CREATE INDEX IF NOT EXISTS idx_reconfigurations_service ON reconfigurations(service_name);
"""

# Paths whose schema has been created by this process.
_ready: set[str] = set()
_ready_lock = Lock()


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist on the host shows up as a
    directory inside the container; in that case the DB file goes inside it.
    """
    p = os.path.abspath(_settings_mod.settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "dfp.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    """Open the journal, creating its tables on first use of a path."""
    p = _resolve_db_path()
    with _ready_lock:
        needs_schema = p not in _ready or not os.path.exists(p)
        conn = sqlite3.connect(p, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if needs_schema:
            conn.executescript(SCHEMA)
            _ready.add(p)
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(SCHEMA)


def log_event(level: str, message: str, service_name: str | None = None, stage: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, service_name, stage, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level.upper(), service_name, stage, message),
        )


@dataclass(frozen=True)
class AttemptRow:
    id: int
    ts: str
    service_name: str | None
    ok: int
    stage: str
    status_code: int
    message: str


def record_attempt(service_name: str | None, ok: bool, stage: str, status_code: int, message: str) -> None:
    with connect() as conn:
        conn.execute(
            """
            INSERT INTO reconfigurations (ts, service_name, ok, stage, status_code, message)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (utc_now(), service_name, int(ok), stage, int(status_code), message),
        )


def list_attempts(service_name: str | None = None, limit: int = 100) -> list[AttemptRow]:
    with connect() as conn:
        if service_name:
            rows = conn.execute(
                "SELECT * FROM reconfigurations WHERE service_name=? ORDER BY id DESC LIMIT ?",
                (service_name, limit),
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM reconfigurations ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [AttemptRow(**dict(r)) for r in rows]


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
