"""SQLite-backed best-score and wallet repository."""

from __future__ import annotations

import asyncio
import contextlib
import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.dal.exceptions import NotFoundError, PersistenceError
from shared.dal.models import ScoreRecord, Wallet
from shared.dal.score_repository import ScoreRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shared.db.connection import Database

logger = structlog.get_logger()

_RECORD_COLUMNS = "user_id, game, bucket, score, secondary_metric, duration_ms, created_at, session_id"


def _row_to_record(row: tuple) -> ScoreRecord:
    return ScoreRecord(
        user_id=row[0],
        game=row[1],
        bucket=row[2],
        score=row[3],
        secondary_metric=row[4],
        duration_ms=row[5],
        created_at=row[6],
        session_id=row[7],
    )


class SqliteScoreRepository(ScoreRepository):
    """SQLite implementation of ScoreRepository.

    One submission is one ``BEGIN IMMEDIATE`` transaction held under an
    asyncio lock, so two settlements never interleave on this connection and
    other processes sharing the file wait on SQLite's write lock. Personal
    bests are replaced with a single upsert guarded by ``excluded.score >
    score``; wallet credits are additive ``SET xp = xp + ?`` updates.
    Any sqlite3.Error is mapped to PersistenceError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()
        self._in_transaction = False

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise PersistenceError("could not begin transaction") from exc
            self._in_transaction = True
            try:
                yield
            except BaseException:
                self._rollback(conn)
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as exc:
                    self._rollback(conn)
                    raise PersistenceError("could not commit transaction") from exc
            finally:
                self._in_transaction = False

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("rollback failed")

    def _require_transaction(self, operation: str) -> None:
        if not self._in_transaction:
            raise RuntimeError(f"{operation} must run inside transaction()")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self._db.connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc

    async def get_best(self, user_id: str, game: str, bucket: str) -> ScoreRecord | None:
        """Return the stored personal best, or None when the user has no row in the bucket."""
        row = self._execute(
            f"SELECT {_RECORD_COLUMNS} FROM score_records WHERE user_id = ? AND game = ? AND bucket = ?",  # noqa: S608
            (user_id, game, bucket),
        ).fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    async def get_global_best(self, game: str, bucket: str) -> int:
        """Return the highest stored score in the bucket (0 when empty)."""
        row = self._execute(
            "SELECT MAX(score) FROM score_records WHERE game = ? AND bucket = ?",
            (game, bucket),
        ).fetchone()
        return row[0] if row and row[0] is not None else 0

    async def replace_best(self, record: ScoreRecord) -> bool:
        self._require_transaction("replace_best")
        cursor = self._execute(
            f"INSERT INTO score_records ({_RECORD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "  # noqa: S608
            "ON CONFLICT (user_id, game, bucket) DO UPDATE SET "
            "score = excluded.score, "
            "secondary_metric = excluded.secondary_metric, "
            "duration_ms = excluded.duration_ms, "
            "created_at = excluded.created_at, "
            "session_id = excluded.session_id "
            "WHERE excluded.score > score_records.score",
            (
                record.user_id,
                record.game,
                record.bucket,
                record.score,
                record.secondary_metric,
                record.duration_ms,
                record.created_at.isoformat(),
                record.session_id,
            ),
        )
        return cursor.rowcount > 0

    async def get_bucket_records(self, game: str, bucket: str) -> list[ScoreRecord]:
        rows = self._execute(
            f"SELECT {_RECORD_COLUMNS} FROM score_records WHERE game = ? AND bucket = ? "  # noqa: S608
            "ORDER BY score DESC, created_at ASC",
            (game, bucket),
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    async def get_user_records(self, user_id: str, game: str) -> list[ScoreRecord]:
        rows = self._execute(
            f"SELECT {_RECORD_COLUMNS} FROM score_records WHERE user_id = ? AND game = ? ORDER BY bucket",  # noqa: S608
            (user_id, game),
        ).fetchall()
        return [_row_to_record(row) for row in rows]

    async def create_wallet(self, user_id: str) -> Wallet:
        """Create an empty wallet. Existing wallets are left untouched."""
        async with self._lock:
            self._execute("INSERT OR IGNORE INTO wallets (user_id) VALUES (?)", (user_id,))
        wallet = await self.get_wallet(user_id)
        if wallet is None:  # pragma: no cover
            raise PersistenceError(f"wallet for '{user_id}' was not created")
        return wallet

    async def get_wallet(self, user_id: str) -> Wallet | None:
        row = self._execute(
            "SELECT user_id, xp, gold, level FROM wallets WHERE user_id = ?",
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return Wallet(user_id=row[0], xp=row[1], gold=row[2], level=row[3])

    async def update_wallet(self, user_id: str, delta_xp: int, delta_gold: int, new_level: int) -> Wallet:
        """Add the deltas to the wallet and store the recomputed level."""
        self._require_transaction("update_wallet")
        if delta_xp < 0 or delta_gold < 0:
            raise ValueError("wallet deltas must be non-negative")
        cursor = self._execute(
            "UPDATE wallets SET xp = xp + ?, gold = gold + ?, level = ? WHERE user_id = ?",
            (delta_xp, delta_gold, new_level, user_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"No wallet for user '{user_id}'")
        wallet = await self.get_wallet(user_id)
        if wallet is None:  # pragma: no cover
            raise PersistenceError(f"wallet for '{user_id}' vanished during update")
        return wallet

    async def get_settlement(self, session_id: str) -> tuple[str, str] | None:
        row = self._execute(
            "SELECT user_id, outcome FROM settlements WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        return (row[0], row[1]) if row else None

    async def record_settlement(self, session_id: str, user_id: str, outcome_json: str) -> None:
        self._require_transaction("record_settlement")
        self._execute(
            "INSERT INTO settlements (session_id, user_id, settled_at, outcome) VALUES (?, ?, ?, ?)",
            (session_id, user_id, datetime.now(tz=UTC).isoformat(), outcome_json),
        )
