"""
Immutable session state for the round engines.

A Session value is never mutated: every engine operation returns a new one
built with ``model_copy(update=...)``. Once a Session is ENDED the engine
never produces another value for it.
"""

import uuid
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from game.logic.enums import (
    AnswerField,
    Difficulty,
    EndReason,
    GameKind,
    InputOutcome,
    LetterStatus,
    SessionStatus,
)


def new_session_id() -> str:
    return uuid.uuid4().hex


class GuessRow(BaseModel):
    """One submitted word-guessing attempt with per-letter feedback."""

    model_config = ConfigDict(frozen=True)

    guess: str
    feedback: tuple[LetterStatus, ...]


class Prompt(BaseModel):
    """
    The challenge currently shown to the player.

    answer holds the target (word, verb base, or required first letter).
    accepted maps each required sub-field to its accepted normalized answers.
    age_ms only advances through engine ticks.
    """

    model_config = ConfigDict(frozen=True)

    prompt_id: str
    display_text: str
    answer: str
    accepted: Mapping[AnswerField, frozenset[str]] = Field(default_factory=dict)
    hint: str | None = None
    age_ms: int = Field(default=0, ge=0)
    fall_progress: float = Field(default=0.0, ge=0.0, le=100.0)
    fall_speed: float = Field(default=0.0, ge=0.0)
    deadline_ms: int | None = None
    attempts_used: int = Field(default=0, ge=0)
    max_attempts: int | None = None
    guesses: tuple[GuessRow, ...] = ()


class SessionConfig(BaseModel):
    """
    Options for starting a session.

    mode is checked against the engine's mode table. Optional overrides
    replace the game's defaults for time, lives and per-prompt deadline.
    """

    model_config = ConfigDict(frozen=True)

    mode: str
    session_id: str = Field(default_factory=new_session_id)
    require_translation: bool = False
    total_time_ms: int | None = Field(default=None, gt=0)
    lives: int | None = Field(default=None, ge=1)
    prompt_deadline_ms: int | None = Field(default=None, gt=0)


class Session(BaseModel):
    """Complete state of one play session."""

    model_config = ConfigDict(frozen=True)

    session_id: str = ""
    game: GameKind
    mode: str = ""
    bucket: Difficulty | None = None
    status: SessionStatus = SessionStatus.IDLE
    require_translation: bool = False
    prompt_deadline_ms: int | None = None

    total_time_ms: int | None = None
    time_remaining_ms: int | None = None
    elapsed_ms: int = Field(default=0, ge=0)
    lives: int | None = None

    score: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    combo_multiplier: float = Field(default=1.0, ge=1.0)
    highest_streak: int = Field(default=0, ge=0)
    rounds_completed: int = Field(default=0, ge=0)
    perfect_count: int = Field(default=0, ge=0)
    missed_count: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)

    active_prompt: Prompt | None = None
    prompts_served: int = 0
    served_keys: frozenset[str] = frozenset()
    used_answers: frozenset[str] = frozenset()
    end_reason: EndReason | None = None

    @property
    def is_running(self) -> bool:
        return self.status == SessionStatus.RUNNING

    @property
    def is_ended(self) -> bool:
        return self.status == SessionStatus.ENDED

    @property
    def duration_ms(self) -> int:
        return self.elapsed_ms


class InputResult(BaseModel):
    """Outcome of one submitted answer together with the resulting session."""

    model_config = ConfigDict(frozen=True)

    outcome: InputOutcome
    session: Session
    points: int = 0
    is_perfect: bool = False
    time_bonus_ms: int = 0
    feedback: tuple[LetterStatus, ...] = ()
    reason: str | None = None

    @property
    def changed_session(self) -> bool:
        return self.outcome not in {InputOutcome.REJECTED, InputOutcome.IGNORED}


class SessionSummary(BaseModel):
    """
    Snapshot of a finished session handed to score settlement.

    game and bucket stay plain slugs so settlement can report unknown
    values as not found rather than failing request validation.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str | None = None
    user_id: str
    game: str
    bucket: str
    mode: str = ""
    score: int = Field(ge=0)
    secondary_metric: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    highest_streak: int = Field(default=0, ge=0)
    perfect_count: int = Field(default=0, ge=0)
    end_reason: EndReason | None = None
