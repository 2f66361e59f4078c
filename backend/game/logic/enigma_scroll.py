"""
Enigma Scroll: guess hidden words from per-letter feedback.

Each valid guess is scored letter by letter: CORRECT for the right letter in
the right place, PRESENT for a letter elsewhere in the word, ABSENT otherwise.
Duplicate letters are resolved in two passes so a letter is never reported
more often than it occurs in the target.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict

from game.logic.engine import AnswerCheck, RoundEngine, SuccessScore
from game.logic.enums import Difficulty, GameKind, InputOutcome, LetterStatus
from game.logic.exceptions import ValidationError
from game.logic.state import GuessRow, Prompt, Session

if TYPE_CHECKING:
    import random

    from game.logic.content import EnigmaContent
    from game.logic.scoring import ScoreRules

SESSION_TIME_MS = 90_000
ATTEMPT_BONUS_POINTS = 2
TIME_BONUS_DIVISOR_S = 6
MAX_TIME_BONUS = 15

_LETTERS_RE = re.compile(r"^[A-Z]+$")


class PuzzleShape(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_length: int
    max_attempts: int


PUZZLE_SHAPES: dict[Difficulty, PuzzleShape] = {
    Difficulty.EASY: PuzzleShape(word_length=4, max_attempts=5),
    Difficulty.MEDIUM: PuzzleShape(word_length=5, max_attempts=6),
    Difficulty.HARD: PuzzleShape(word_length=6, max_attempts=7),
}


def letter_feedback(guess: str, target: str) -> tuple[LetterStatus, ...]:
    """Per-letter feedback for a guess against a target of the same length."""
    if len(guess) != len(target):
        raise ValueError("guess and target must have the same length")
    feedback = [LetterStatus.ABSENT] * len(guess)
    remaining = Counter(target)
    for i, (g, t) in enumerate(zip(guess, target, strict=True)):
        if g == t:
            feedback[i] = LetterStatus.CORRECT
            remaining[g] -= 1
    for i, g in enumerate(guess):
        if feedback[i] == LetterStatus.ABSENT and remaining[g] > 0:
            feedback[i] = LetterStatus.PRESENT
            remaining[g] -= 1
    return tuple(feedback)


def time_bonus(time_remaining_ms: int | None) -> int:
    """One point per six whole seconds left on the clock, capped."""
    if not time_remaining_ms:
        return 0
    return min((time_remaining_ms // 1000) // TIME_BONUS_DIVISOR_S, MAX_TIME_BONUS)


class EnigmaScrollEngine(RoundEngine):
    game: ClassVar[GameKind] = GameKind.ENIGMA_SCROLL
    modes: ClassVar[dict[str, Difficulty]] = {d.value: d for d in Difficulty}
    default_total_time_ms: ClassVar[int | None] = SESSION_TIME_MS
    default_lives: ClassVar[int | None] = 1

    def __init__(
        self,
        content: EnigmaContent,
        *,
        rng: random.Random | None = None,
        rules: ScoreRules | None = None,
    ) -> None:
        super().__init__(rng=rng, rules=rules)
        self._content = content

    def shape(self, session: Session) -> PuzzleShape:
        if session.bucket is None:
            raise ValueError("session has no difficulty")
        return PUZZLE_SHAPES[session.bucket]

    def _spawn_prompt(self, session: Session) -> tuple[Prompt, frozenset[str]] | None:
        shape = self.shape(session)
        drawn = self._draw(self._content.target_words.get(shape.word_length, ()), session)
        if drawn is None:
            return None
        target, served = drawn
        prompt = Prompt(
            prompt_id=self._prompt_id(session),
            display_text="_" * shape.word_length,
            answer=target,
            max_attempts=shape.max_attempts,
        )
        return prompt, served

    def _check_answer(self, session: Session, prompt: Prompt, answer: Any) -> AnswerCheck:  # noqa: ANN401
        shape = self.shape(session)
        if not isinstance(answer, str):
            raise ValidationError("guess must be a word")
        guess = answer.strip().upper()
        if len(guess) != shape.word_length:
            raise ValidationError(f"guess must be {shape.word_length} letters long")
        if not _LETTERS_RE.match(guess):
            raise ValidationError("only letters are allowed")
        if guess not in self._content.valid_guesses.get(shape.word_length, frozenset()):
            raise ValidationError(f"{guess} is not in the word list")

        feedback = letter_feedback(guess, prompt.answer)
        attempts = prompt.attempts_used + 1
        updated = prompt.model_copy(
            update={
                "attempts_used": attempts,
                "guesses": (*prompt.guesses, GuessRow(guess=guess, feedback=feedback)),
            },
        )
        if guess == prompt.answer:
            return AnswerCheck(outcome=InputOutcome.ACCEPTED, used_answer=guess, prompt=updated, feedback=feedback)
        if attempts >= shape.max_attempts:
            return AnswerCheck(
                outcome=InputOutcome.WRONG,
                feedback=feedback,
                reason=f"out of attempts, the word was {prompt.answer}",
            )
        return AnswerCheck(outcome=InputOutcome.PARTIAL, prompt=updated, feedback=feedback)

    def _score_success(self, session: Session, prompt: Prompt) -> SuccessScore:
        outcome = self.rules.apply_success(session.streak, prompt.age_ms)
        # prompt here is the one before the winning guess was recorded
        attempts_used = prompt.attempts_used + 1
        max_attempts = prompt.max_attempts or attempts_used
        attempt_bonus = max(0, (max_attempts - attempts_used) * ATTEMPT_BONUS_POINTS)
        return SuccessScore(outcome=outcome, extra_points=attempt_bonus + time_bonus(session.time_remaining_ms))
