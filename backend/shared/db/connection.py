"""SQLite database connection and schema management."""

import os
import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

# score_records holds personal bests only: the primary key is the
# "0 or 1 row per (user, game, bucket)" invariant.
_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS score_records (
    user_id TEXT NOT NULL,
    game TEXT NOT NULL,
    bucket TEXT NOT NULL,
    score INTEGER NOT NULL CHECK (score >= 0),
    secondary_metric INTEGER NOT NULL DEFAULT 0,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    session_id TEXT,
    PRIMARY KEY (user_id, game, bucket)
);

CREATE INDEX IF NOT EXISTS idx_score_records_bucket
    ON score_records (game, bucket, score DESC);

CREATE TABLE IF NOT EXISTS wallets (
    user_id TEXT PRIMARY KEY,
    xp INTEGER NOT NULL DEFAULT 0 CHECK (xp >= 0),
    gold INTEGER NOT NULL DEFAULT 0 CHECK (gold >= 0),
    level INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS settlements (
    session_id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    settled_at TEXT NOT NULL,
    outcome TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    display_name TEXT NOT NULL,
    data TEXT NOT NULL
);
"""


_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA busy_timeout=5000",
)
# WAL mode keeps database content in the -wal and -shm siblings as well
_DB_FILE_SUFFIXES = ("", "-wal", "-shm")


class Database:
    """
    One SQLite file holding scores, wallets, the settlement ledger and profiles.

    Runs in autocommit mode (``isolation_level=None``): transactions are opened
    and closed explicitly by the repositories.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    @property
    def path(self) -> str:
        return self._path

    def connect(self) -> None:
        """Open (creating if needed) the file and apply the schema."""
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
        for pragma in _PRAGMAS:
            conn.execute(pragma)
        conn.executescript(_SCHEMA_SQL)
        self._conn = conn
        self._restrict_file_modes()
        logger.info("database connected", path=self._path)

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None

    def _restrict_file_modes(self) -> None:
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in _DB_FILE_SUFFIXES:
            file_path = Path(f"{self._path}{suffix}")
            if not file_path.exists():
                continue
            try:
                file_path.chmod(_DB_FILE_PERMISSIONS)
            except OSError:
                logger.warning("could not restrict database file mode", path=str(file_path))
