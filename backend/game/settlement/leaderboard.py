"""
Leaderboard aggregation over committed personal bests.

Read-only and lock-free: a ranking may lag behind a submission that is still
committing, which is acceptable for leaderboards.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.enums import GAME_BUCKETS, GameKind
from game.settlement.models import LeaderboardEntry
from shared.dal.exceptions import NotFoundError
from shared.dal.models import EquippedCosmetics

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.models import ScoreRecord
    from shared.dal.profile_directory import ProfileDirectory
    from shared.dal.score_repository import ScoreRepository

UNKNOWN_PLAYER_NAME = "Unknown"


def best_per_user(records: Iterable[ScoreRecord]) -> list[ScoreRecord]:
    """
    Keep one record per user: the highest score, earliest on ties.

    Result is sorted by score descending, then created_at ascending.
    """
    best: dict[str, ScoreRecord] = {}
    for record in records:
        current = best.get(record.user_id)
        if (
            current is None
            or record.score > current.score
            or (record.score == current.score and record.created_at < current.created_at)
        ):
            best[record.user_id] = record
    return sorted(best.values(), key=lambda r: (-r.score, r.created_at))


class LeaderboardAggregator:
    def __init__(self, repository: ScoreRepository, profiles: ProfileDirectory) -> None:
        self._repository = repository
        self._profiles = profiles

    async def get_top_n(self, game: str, bucket: str, n: int) -> list[LeaderboardEntry]:
        """Top n players of a bucket, ranked from 1, hydrated with profile data."""
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        records = best_per_user(await self._repository.get_bucket_records(game, bucket))[:n]
        if not records:
            return []
        profiles = await self._profiles.get_profiles(r.user_id for r in records)
        entries = []
        for rank, record in enumerate(records, start=1):
            profile = profiles.get(record.user_id)
            entries.append(
                LeaderboardEntry(
                    rank=rank,
                    user_id=record.user_id,
                    display_name=profile.display_name if profile else UNKNOWN_PLAYER_NAME,
                    score=record.score,
                    achieved_at=record.created_at,
                    equipped=profile.equipped if profile else EquippedCosmetics(),
                ),
            )
        return entries

    async def get_all_buckets(self, game: str, n: int) -> dict[str, list[LeaderboardEntry]]:
        """Top n of every bucket the game keeps. Raises NotFoundError for an unknown game."""
        try:
            kind = GameKind(game)
        except ValueError as e:
            raise NotFoundError(f"Unknown game '{game}'") from e
        return {bucket.value: await self.get_top_n(kind, bucket, n) for bucket in GAME_BUCKETS[kind]}

    async def get_personal_bests(self, user_id: str, game: str) -> list[ScoreRecord]:
        """The user's stored best in every bucket of a game."""
        return await self._repository.get_user_records(user_id, game)
