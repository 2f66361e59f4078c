"""
Round engine state machine shared by every mini-game.

Lifecycle: IDLE -> RUNNING -> (PAUSED <-> RUNNING) -> ENDED. ENDED is
terminal; a new session comes only from ``start``.

The engine is single-threaded and deterministic: time only moves through
``tick`` deltas and randomness comes from the injected ``random.Random``.
Concrete engines supply prompt spawning, answer checking and game-specific
bonuses through the hooks at the bottom of ``RoundEngine``.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import structlog
from pydantic import BaseModel, ConfigDict

from game.logic.enums import Difficulty, EndReason, GameKind, InputOutcome, LetterStatus, SessionStatus
from game.logic.exceptions import ConfigError, InvalidTransitionError, ValidationError
from game.logic.scoring import ScoreOutcome, ScoreRules, rules_for
from game.logic.state import InputResult, Prompt, Session, SessionConfig, SessionSummary

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = structlog.get_logger()


class AnswerCheck(BaseModel):
    """Verdict of a concrete engine on one well-formed answer."""

    model_config = ConfigDict(frozen=True)

    outcome: InputOutcome
    used_answer: str | None = None
    prompt: Prompt | None = None  # replacement prompt for PARTIAL results
    feedback: tuple[LetterStatus, ...] = ()
    reason: str | None = None


class SuccessScore(BaseModel):
    """ScoreRules outcome plus any game-specific extras for one success."""

    model_config = ConfigDict(frozen=True)

    outcome: ScoreOutcome
    extra_points: int = 0
    time_bonus_ms: int = 0

    @property
    def points(self) -> int:
        return self.outcome.points + self.extra_points


class RoundEngine(ABC):
    """
    Abstract round engine owning exactly one Session at a time.

    Subclasses set ``game``, ``modes`` and the default clock/lives, and
    implement ``_spawn_prompt`` and ``_check_answer``.
    """

    game: ClassVar[GameKind]
    modes: ClassVar[Mapping[str, Difficulty]]
    default_total_time_ms: ClassVar[int | None] = None
    default_lives: ClassVar[int | None] = None
    advance_on_wrong: ClassVar[bool] = True

    def __init__(self, *, rng: random.Random | None = None, rules: ScoreRules | None = None) -> None:
        self._rng = rng or random.Random()  # noqa: S311
        self._rules_override = rules
        self._rules: ScoreRules | None = rules
        self._session = Session(game=self.game)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def rules(self) -> ScoreRules:
        if self._rules is None:
            raise InvalidTransitionError(operation="read rules", status=self._session.status)
        return self._rules

    # --- lifecycle -------------------------------------------------------

    def start(self, config: SessionConfig) -> Session:
        """Start a fresh session. Allowed from IDLE or ENDED."""
        current = self._session.status
        if current in (SessionStatus.RUNNING, SessionStatus.PAUSED):
            raise InvalidTransitionError(operation="start", status=current)
        bucket = self.modes.get(config.mode)
        if bucket is None:
            raise ConfigError(f"unknown mode {config.mode!r} for {self.game}, expected one of {sorted(self.modes)}")

        total_time = config.total_time_ms or self.default_total_time_ms
        lives = config.lives if config.lives is not None else self.default_lives
        rules = self._rules_override or rules_for(self.game, bucket)
        session = Session(
            session_id=config.session_id,
            game=self.game,
            mode=config.mode,
            bucket=bucket,
            status=SessionStatus.RUNNING,
            require_translation=config.require_translation,
            prompt_deadline_ms=config.prompt_deadline_ms,
            total_time_ms=total_time,
            time_remaining_ms=total_time,
            lives=lives,
            combo_multiplier=rules.combo_base,
        )
        spawned = self._next_prompt(session)
        if spawned.active_prompt is None:
            raise ConfigError(f"no content available for {self.game} mode {config.mode!r}")
        self._rules = rules
        self._session = spawned
        logger.info(
            "session started",
            session_id=spawned.session_id,
            game=self.game,
            mode=config.mode,
            bucket=bucket,
        )
        return spawned

    def pause(self) -> Session:
        if self._session.status == SessionStatus.RUNNING:
            self._session = self._session.model_copy(update={"status": SessionStatus.PAUSED})
        return self._session

    def resume(self) -> Session:
        if self._session.status == SessionStatus.PAUSED:
            self._session = self._session.model_copy(update={"status": SessionStatus.RUNNING})
        return self._session

    def summary(self, user_id: str) -> SessionSummary:
        """Summary of the ENDED session for score settlement."""
        session = self._session
        if session.status != SessionStatus.ENDED or session.bucket is None:
            raise InvalidTransitionError(operation="summarize", status=session.status)
        return SessionSummary(
            session_id=session.session_id,
            user_id=user_id,
            game=session.game,
            bucket=session.bucket,
            mode=session.mode,
            score=session.score,
            secondary_metric=session.rounds_completed,
            duration_ms=session.elapsed_ms,
            highest_streak=session.highest_streak,
            perfect_count=session.perfect_count,
            end_reason=session.end_reason,
        )

    # --- events ----------------------------------------------------------

    def tick(self, delta_ms: int) -> Session:
        """Advance clocks and the active prompt. No-op unless RUNNING."""
        if delta_ms < 0:
            raise ValueError(f"tick delta must be non-negative, got {delta_ms}")
        session = self._session
        if session.status != SessionStatus.RUNNING:
            return session

        remaining = None if session.time_remaining_ms is None else max(0, session.time_remaining_ms - delta_ms)
        prompt = session.active_prompt
        if prompt is not None:
            prompt = self._advance_prompt(prompt, delta_ms)
        session = session.model_copy(
            update={
                "elapsed_ms": session.elapsed_ms + delta_ms,
                "time_remaining_ms": remaining,
                "active_prompt": prompt,
            },
        )
        if remaining == 0:
            session = self._end(session, EndReason.OUT_OF_TIME)
        elif prompt is not None and self._is_expired(prompt):
            logger.debug("prompt missed", session_id=session.session_id, prompt_id=prompt.prompt_id)
            session = self._fail(session, lose_life=True, advance=True, missed=True)
        self._session = session
        return session

    def submit_input(self, answer: Any) -> InputResult:  # noqa: ANN401
        """
        Check an answer against the active prompt.

        Never raises for bad input: malformed answers come back REJECTED and
        input outside RUNNING comes back IGNORED, both leaving the session as is.
        """
        session = self._session
        prompt = session.active_prompt
        if session.status != SessionStatus.RUNNING or prompt is None:
            return InputResult(outcome=InputOutcome.IGNORED, session=session)
        try:
            check = self._check_answer(session, prompt, answer)
        except ValidationError as e:
            return InputResult(outcome=InputOutcome.REJECTED, session=session, reason=str(e))

        if check.outcome == InputOutcome.ACCEPTED:
            return self._accept(session, prompt, check)
        if check.outcome == InputOutcome.PARTIAL:
            session = session.model_copy(update={"active_prompt": check.prompt or prompt})
            self._session = session
            return InputResult(
                outcome=InputOutcome.PARTIAL,
                session=session,
                feedback=check.feedback,
                reason=check.reason,
            )
        session = self._fail(session, lose_life=True, advance=self.advance_on_wrong)
        self._session = session
        return InputResult(outcome=InputOutcome.WRONG, session=session, feedback=check.feedback, reason=check.reason)

    def skip(self) -> Session:
        """Give up on the active prompt: streak and combo reset, no life lost."""
        session = self._session
        if session.status != SessionStatus.RUNNING:
            return session
        self._session = self._fail(session, lose_life=False, advance=True)
        return self._session

    # --- internals -------------------------------------------------------

    def _accept(self, session: Session, prompt: Prompt, check: AnswerCheck) -> InputResult:
        scored = self._score_success(session, prompt)
        outcome = scored.outcome
        rounds = session.rounds_completed + 1
        remaining = session.time_remaining_ms
        if remaining is not None and scored.time_bonus_ms:
            remaining = min(session.total_time_ms or remaining, remaining + scored.time_bonus_ms)
        used = session.used_answers | {check.used_answer} if check.used_answer else session.used_answers
        updated = session.model_copy(
            update={
                "score": session.score + scored.points,
                "streak": outcome.streak,
                "combo_multiplier": outcome.combo_multiplier,
                "highest_streak": max(session.highest_streak, outcome.streak),
                "perfect_count": session.perfect_count + (1 if outcome.is_perfect else 0),
                "rounds_completed": rounds,
                "level": self._level_for(rounds),
                "time_remaining_ms": remaining,
                "used_answers": used,
            },
        )
        updated = self._next_prompt(updated)
        self._session = updated
        return InputResult(
            outcome=InputOutcome.ACCEPTED,
            session=updated,
            points=scored.points,
            is_perfect=outcome.is_perfect,
            time_bonus_ms=scored.time_bonus_ms,
            feedback=check.feedback,
        )

    def _fail(self, session: Session, *, lose_life: bool, advance: bool, missed: bool = False) -> Session:
        failure = self.rules.apply_failure()
        lives = session.lives
        if lose_life and lives is not None:
            lives = max(0, lives - 1)
        updated = session.model_copy(
            update={
                "streak": failure.streak,
                "combo_multiplier": failure.combo_multiplier,
                "lives": lives,
                "missed_count": session.missed_count + (1 if missed else 0),
            },
        )
        if lives == 0:
            return self._end(updated, EndReason.OUT_OF_LIVES)
        if advance:
            return self._next_prompt(updated)
        return updated

    def _end(self, session: Session, reason: EndReason) -> Session:
        ended = session.model_copy(
            update={"status": SessionStatus.ENDED, "end_reason": reason, "active_prompt": None},
        )
        logger.info(
            "session ended",
            session_id=ended.session_id,
            game=ended.game,
            reason=reason,
            score=ended.score,
            rounds_completed=ended.rounds_completed,
        )
        return ended

    def _next_prompt(self, session: Session) -> Session:
        spawned = self._spawn_prompt(session)
        if spawned is None:
            if session.status == SessionStatus.RUNNING and session.active_prompt is not None:
                return self._end(session, EndReason.OUT_OF_PROMPTS)
            return session.model_copy(update={"active_prompt": None})
        prompt, served = spawned
        if session.prompt_deadline_ms is not None and prompt.deadline_ms is None:
            prompt = prompt.model_copy(update={"deadline_ms": session.prompt_deadline_ms})
        return session.model_copy(
            update={
                "active_prompt": prompt,
                "prompts_served": session.prompts_served + 1,
                "served_keys": served,
            },
        )

    def _prompt_id(self, session: Session) -> str:
        return f"{session.session_id}-{session.prompts_served + 1}"

    def _draw(self, pool: Sequence[str], session: Session) -> tuple[str, frozenset[str]] | None:
        """
        Pick the next key from a pool without repeating until it is exhausted.

        The previous prompt is never drawn twice in a row unless it is the
        only key in the pool.
        """
        if not pool:
            return None
        last = session.active_prompt.answer if session.active_prompt else None
        served = session.served_keys
        candidates = [k for k in pool if k not in served and k != last]
        if not candidates:
            served = frozenset()
            candidates = [k for k in pool if k != last] or list(pool)
        choice = self._rng.choice(candidates)
        return choice, served | {choice}

    # --- hooks -----------------------------------------------------------

    @abstractmethod
    def _spawn_prompt(self, session: Session) -> tuple[Prompt, frozenset[str]] | None:
        """Next prompt and the updated served-key set, or None when content ran out."""

    @abstractmethod
    def _check_answer(self, session: Session, prompt: Prompt, answer: Any) -> AnswerCheck:  # noqa: ANN401
        """Verdict on one answer. Raises ValidationError for malformed input."""

    def _advance_prompt(self, prompt: Prompt, delta_ms: int) -> Prompt:
        return prompt.model_copy(update={"age_ms": prompt.age_ms + delta_ms})

    def _is_expired(self, prompt: Prompt) -> bool:
        return prompt.deadline_ms is not None and prompt.age_ms >= prompt.deadline_ms

    def _score_success(self, session: Session, prompt: Prompt) -> SuccessScore:
        return SuccessScore(outcome=self.rules.apply_success(session.streak, prompt.age_ms))

    def _level_for(self, rounds_completed: int) -> int:  # noqa: ARG002
        return 1
