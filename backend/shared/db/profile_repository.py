"""SQLite-backed profile directory (display names and equipped cosmetics)."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import TYPE_CHECKING

from shared.dal.models import PlayerProfile
from shared.dal.profile_directory import ProfileDirectory

if TYPE_CHECKING:
    from shared.db.connection import Database


class SqliteProfileRepository(ProfileDirectory):
    """SQLite implementation of ProfileDirectory.

    Profiles are owned by the account/shop side of the platform; this
    repository only reads them. ``upsert_profile`` exists for seeding.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def upsert_profile(self, profile: PlayerProfile) -> None:
        self._db.connection.execute(
            "INSERT INTO profiles (id, display_name, data) VALUES (?, ?, ?) "
            "ON CONFLICT (id) DO UPDATE SET display_name = excluded.display_name, data = excluded.data",
            (profile.user_id, profile.display_name, profile.model_dump_json()),
        )

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, PlayerProfile]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        rows = self._db.connection.execute(
            f"SELECT data FROM profiles WHERE id IN ({placeholders})",  # noqa: S608
            ids,
        ).fetchall()
        profiles = [PlayerProfile.model_validate(json.loads(row[0])) for row in rows]
        return {p.user_id: p for p in profiles}
