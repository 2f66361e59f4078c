"""
Scoring rules for correct answers.

Handles streak and combo progression plus the speed and perfect bonuses.
Every function here is pure: elapsed time is the prompt age the engine
accumulated from ticks, never a wall-clock reading.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, Field, model_validator

from game.logic.enums import Difficulty, GameKind


class SpeedBracket(BaseModel, frozen=True):
    """Flat bonus for answers given before max_elapsed_ms."""

    max_elapsed_ms: int = Field(gt=0)
    bonus: int = Field(ge=0)


class ScoreOutcome(BaseModel, frozen=True):
    """Points awarded for one answer and the streak/combo that follow it."""

    points: int = 0
    streak: int = 0
    combo_multiplier: float = 1.0
    is_perfect: bool = False


class ScoreRules(BaseModel, frozen=True):
    """
    Scoring formula for one (game, bucket).

    points = trunc((base_points + streak_bonus * streak) * combo)
             + speed bracket bonus + perfect bonus

    The combo multiplier is a step function of the streak: it grows by
    combo_step every combo_every consecutive successes, capped at combo_max,
    and falls back to combo_base on any failure.
    """

    base_points: int = Field(default=10, ge=1)
    streak_bonus: int = Field(default=1, ge=1)
    combo_base: float = Field(default=1.0, ge=1.0)
    combo_step: float = Field(default=0.5, gt=0)
    combo_every: int = Field(default=5, ge=1)
    combo_max: float = 3.0
    perfect_window_ms: int = Field(default=2000, ge=0)
    perfect_bonus: int = Field(default=5, ge=0)
    speed_brackets: tuple[SpeedBracket, ...] = ()

    @model_validator(mode="after")
    def _validate_combo_range(self) -> Self:
        if self.combo_max < self.combo_base:
            raise ValueError("combo_max must be >= combo_base")
        return self

    def combo_for_streak(self, streak: int) -> float:
        """Combo multiplier reached after `streak` consecutive successes."""
        if streak < 0:
            raise ValueError(f"streak must be non-negative, got {streak}")
        steps = streak // self.combo_every
        return min(self.combo_max, self.combo_base + self.combo_step * steps)

    @staticmethod
    def next_streak(streak: int, *, success: bool) -> int:
        return streak + 1 if success else 0

    def is_perfect(self, elapsed_ms: int) -> bool:
        return max(0, elapsed_ms) < self.perfect_window_ms

    def speed_bonus(self, elapsed_ms: int) -> int:
        """Bonus of the first (fastest) bracket the answer falls into."""
        elapsed = max(0, elapsed_ms)
        for bracket in sorted(self.speed_brackets, key=lambda b: b.max_elapsed_ms):
            if elapsed < bracket.max_elapsed_ms:
                return bracket.bonus
        return 0

    def points_for_correct_answer(
        self,
        streak: int,
        combo_multiplier: float,
        elapsed_ms: int,
        is_perfect: bool,  # noqa: FBT001
    ) -> int:
        """Points for one correct answer. Scaled part is truncated toward zero."""
        if streak < 0:
            raise ValueError(f"streak must be non-negative, got {streak}")
        if combo_multiplier < self.combo_base:
            raise ValueError(f"combo multiplier {combo_multiplier} is below base {self.combo_base}")
        scaled = int((self.base_points + self.streak_bonus * streak) * combo_multiplier)
        bonus = self.speed_bonus(elapsed_ms)
        if is_perfect:
            bonus += self.perfect_bonus
        return scaled + bonus

    def apply_success(self, streak: int, elapsed_ms: int, *, is_perfect: bool | None = None) -> ScoreOutcome:
        """Advance streak and combo for a correct answer and score it with the new values."""
        new_streak = self.next_streak(streak, success=True)
        combo = self.combo_for_streak(new_streak)
        perfect = self.is_perfect(elapsed_ms) if is_perfect is None else is_perfect
        return ScoreOutcome(
            points=self.points_for_correct_answer(new_streak, combo, elapsed_ms, perfect),
            streak=new_streak,
            combo_multiplier=combo,
            is_perfect=perfect,
        )

    def apply_failure(self) -> ScoreOutcome:
        """Failure, timeout or skip: no points, streak and combo back to base."""
        return ScoreOutcome(points=0, streak=0, combo_multiplier=self.combo_base)


_VERB_BRACKETS = (
    SpeedBracket(max_elapsed_ms=3000, bonus=2),
    SpeedBracket(max_elapsed_ms=5000, bonus=1),
)

DEFAULT_RULES: dict[tuple[GameKind, Difficulty], ScoreRules] = {
    # wordfall "perfect" is decided by catch height, see WordfallEngine
    (GameKind.WORDFALL, Difficulty.EASY): ScoreRules(base_points=5, perfect_bonus=5),
    (GameKind.WORDFALL, Difficulty.HARD): ScoreRules(base_points=8, perfect_bonus=5),
    (GameKind.SPEED_VERB, Difficulty.EASY): ScoreRules(
        base_points=2,
        perfect_window_ms=2000,
        perfect_bonus=3,
        speed_brackets=_VERB_BRACKETS,
    ),
    (GameKind.SPEED_VERB, Difficulty.MEDIUM): ScoreRules(
        base_points=4,
        perfect_window_ms=2000,
        perfect_bonus=3,
        speed_brackets=_VERB_BRACKETS,
    ),
    (GameKind.SPEED_VERB, Difficulty.HARD): ScoreRules(
        base_points=6,
        perfect_window_ms=2000,
        perfect_bonus=3,
        speed_brackets=_VERB_BRACKETS,
    ),
    (GameKind.ENIGMA_SCROLL, Difficulty.EASY): ScoreRules(
        base_points=10,
        combo_every=3,
        combo_max=2.5,
        perfect_window_ms=15000,
    ),
    (GameKind.ENIGMA_SCROLL, Difficulty.MEDIUM): ScoreRules(
        base_points=15,
        combo_every=3,
        combo_max=2.5,
        perfect_window_ms=15000,
    ),
    (GameKind.ENIGMA_SCROLL, Difficulty.HARD): ScoreRules(
        base_points=20,
        combo_every=3,
        combo_max=2.5,
        perfect_window_ms=15000,
    ),
}


def rules_for(game: GameKind, bucket: Difficulty) -> ScoreRules:
    """Default ScoreRules for a (game, bucket). Raises KeyError for unknown pairs."""
    return DEFAULT_RULES[(game, bucket)]
