# bananabill/infra/migrations.py
"""
Schema migrations for the local session file, driven by PRAGMA user_version.

V1: key/value `session` table (tokens and cached user profile)
"""

from __future__ import annotations

from typing import List

from .db import connect


SCHEMA_V1: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS session (
        name TEXT PRIMARY KEY,
        value TEXT,
        updated_at TEXT
    );
    """,
]


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def apply_migrations(db_path: str) -> None:
    """Applies incremental migrations according to PRAGMA user_version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
