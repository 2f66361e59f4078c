"""Value types produced by score settlement and leaderboard queries."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from game.logic.rewards import Rewards
from shared.dal.models import EquippedCosmetics, Wallet


class SubmissionErrorCode(StrEnum):
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"
    REJECTED = "rejected"


class SecondaryMetrics(BaseModel):
    """Session figures besides the score that settlement stores or rewards."""

    model_config = ConfigDict(frozen=True)

    performance_metric: int = Field(default=0, ge=0)  # words completed / correct answers / words found
    duration_ms: int = Field(default=0, ge=0)


class SettlementOutcome(BaseModel):
    """Committed result of one score submission."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    game: str
    bucket: str
    score: int
    is_new_personal_best: bool
    is_new_global_best: bool
    previous_personal_best: int
    previous_global_best: int
    personal_best: int
    rewards: Rewards
    wallet: Wallet
    level_before: int
    session_id: str | None = None
    is_duplicate: bool = False

    @property
    def leveled_up(self) -> bool:
        return self.wallet.level > self.level_before


class RewardSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    xp_earned: int
    gold_earned: int
    new_level: int | None = None  # only set when the player leveled up


class SubmissionResponse(BaseModel):
    """
    Answer of the submission entrypoint.

    success=False means nothing was applied; success=True with
    is_new_personal_best=False is a normal attempt that did not beat the record.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    rewards: RewardSummary | None = None
    is_new_personal_best: bool | None = None
    is_new_global_best: bool | None = None
    personal_best: int | None = None
    is_duplicate: bool | None = None
    error: str | None = None
    error_code: SubmissionErrorCode | None = None

    @classmethod
    def from_outcome(cls, outcome: SettlementOutcome) -> SubmissionResponse:
        return cls(
            success=True,
            rewards=RewardSummary(
                xp_earned=outcome.rewards.xp_earned,
                gold_earned=outcome.rewards.gold_earned,
                new_level=outcome.wallet.level if outcome.leveled_up else None,
            ),
            is_new_personal_best=outcome.is_new_personal_best,
            is_new_global_best=outcome.is_new_global_best,
            personal_best=outcome.personal_best,
            is_duplicate=outcome.is_duplicate,
        )

    @classmethod
    def failure(cls, error: str, code: SubmissionErrorCode) -> SubmissionResponse:
        return cls(success=False, error=error, error_code=code)


class LeaderboardEntry(BaseModel):
    """One ranked row of a bucket leaderboard, hydrated with profile data."""

    model_config = ConfigDict(frozen=True)

    rank: int = Field(ge=1)
    user_id: str
    display_name: str
    score: int
    achieved_at: datetime
    equipped: EquippedCosmetics = Field(default_factory=EquippedCosmetics)
