"""
Score settlement: turn a finished session into committed score and wallet mutations.

One submission runs inside a single repository transaction:

0. a session id that was already settled returns the stored outcome, unchanged
1. unknown game/bucket or user fails with NotFoundError before any write
2. personal best P and global best G are read before any write
3. the candidate becomes the personal best only if it beats P (atomic upsert)
4. rewards are computed and credited to the wallet unconditionally
5. the outcome is recorded under the session id and the transaction commits
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from game.logic.enums import Difficulty, GameKind, is_known_bucket
from game.logic.rewards import REWARD_RULES, calculate_level_from_xp, compute_rewards
from game.settlement.models import SecondaryMetrics, SettlementOutcome, SubmissionErrorCode, SubmissionResponse
from shared.dal.exceptions import NotFoundError, PersistenceError, SessionOwnershipError, SettlementError
from shared.dal.models import ScoreRecord
from shared.logging import bind_session_context

if TYPE_CHECKING:
    from game.logic.rewards import RewardRule
    from game.logic.state import SessionSummary
    from shared.dal.score_repository import ScoreRepository

logger = structlog.get_logger()


class ScoreStore:
    """Settles finished sessions against a ScoreRepository."""

    def __init__(
        self,
        repository: ScoreRepository,
        reward_rules: dict[GameKind, RewardRule] | None = None,
    ) -> None:
        self._repository = repository
        self._reward_rules = reward_rules or REWARD_RULES

    async def submit_score(  # noqa: PLR0913
        self,
        user_id: str,
        game: str,
        bucket: str,
        candidate_score: int,
        metrics: SecondaryMetrics,
        session_id: str | None = None,
    ) -> SettlementOutcome:
        """
        Settle one candidate score.

        Raises NotFoundError for an unknown user, game or bucket,
        SessionOwnershipError for a session id settled by another user, and
        PersistenceError when the backend fails; in every case nothing is applied.
        """
        if candidate_score < 0:
            raise ValueError(f"candidate score must be non-negative, got {candidate_score}")

        repo = self._repository
        async with repo.transaction():
            if session_id is not None:
                stored = await repo.get_settlement(session_id)
                if stored is not None:
                    owner, outcome_json = stored
                    if owner != user_id:
                        raise SessionOwnershipError(f"Session '{session_id}' belongs to another user")
                    logger.info("duplicate settlement ignored", session_id=session_id, user_id=user_id)
                    return SettlementOutcome.model_validate_json(outcome_json).model_copy(update={"is_duplicate": True})

            if not is_known_bucket(game, bucket):
                raise NotFoundError(f"Unknown game/bucket '{game}/{bucket}'")
            wallet = await repo.get_wallet(user_id)
            if wallet is None:
                raise NotFoundError(f"Unknown user '{user_id}'")

            previous = await repo.get_best(user_id, game, bucket)
            personal_best = previous.score if previous is not None else 0
            global_best = await repo.get_global_best(game, bucket)
            is_new_global_best = candidate_score > global_best
            is_new_personal_best = candidate_score > personal_best

            if is_new_personal_best:
                await repo.replace_best(
                    ScoreRecord(
                        user_id=user_id,
                        game=game,
                        bucket=bucket,
                        score=candidate_score,
                        secondary_metric=metrics.performance_metric,
                        duration_ms=metrics.duration_ms,
                        created_at=datetime.now(tz=UTC),
                        session_id=session_id,
                    ),
                )

            rewards = compute_rewards(
                GameKind(game),
                Difficulty(bucket),
                metrics.performance_metric,
                candidate_score,
                is_new_global_best,
                self._reward_rules,
            )
            new_level = calculate_level_from_xp(wallet.xp + rewards.xp_earned)
            updated_wallet = await repo.update_wallet(user_id, rewards.xp_earned, rewards.gold_earned, new_level)

            outcome = SettlementOutcome(
                user_id=user_id,
                game=game,
                bucket=bucket,
                score=candidate_score,
                is_new_personal_best=is_new_personal_best,
                is_new_global_best=is_new_global_best,
                previous_personal_best=personal_best,
                previous_global_best=global_best,
                personal_best=max(personal_best, candidate_score),
                rewards=rewards,
                wallet=updated_wallet,
                level_before=wallet.level,
                session_id=session_id,
            )
            if session_id is not None:
                await repo.record_settlement(session_id, user_id, outcome.model_dump_json())

        logger.info(
            "score settled",
            user_id=user_id,
            game=game,
            bucket=bucket,
            score=candidate_score,
            new_personal_best=is_new_personal_best,
            new_global_best=is_new_global_best,
            xp_earned=rewards.xp_earned,
            gold_earned=rewards.gold_earned,
        )
        return outcome

    async def submit(self, summary: SessionSummary) -> SubmissionResponse:
        """
        Submission entrypoint for a finished session.

        Settlement errors become ``success=False`` responses so callers can tell
        a failed submission apart from an attempt that was not a personal best.
        """
        with bind_session_context(summary.session_id, summary.game, summary.user_id):
            try:
                outcome = await self.submit_score(
                    summary.user_id,
                    summary.game,
                    summary.bucket,
                    summary.score,
                    SecondaryMetrics(performance_metric=summary.secondary_metric, duration_ms=summary.duration_ms),
                    session_id=summary.session_id,
                )
            except NotFoundError as e:
                logger.warning("submission rejected", error=str(e))
                return SubmissionResponse.failure(str(e), SubmissionErrorCode.NOT_FOUND)
            except PersistenceError:
                logger.exception("submission failed")
                return SubmissionResponse.failure(
                    "score could not be saved, please retry",
                    SubmissionErrorCode.PERSISTENCE,
                )
            except SettlementError as e:
                logger.warning("submission failed", error=str(e))
                return SubmissionResponse.failure(str(e), SubmissionErrorCode.REJECTED)
        return SubmissionResponse.from_outcome(outcome)
