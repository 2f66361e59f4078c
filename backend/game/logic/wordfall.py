"""
Wordfall: words fall from the top of the board and must be typed before they land.

Exact mode drops an English word to type (optionally followed by its
translation). Free mode drops a single letter; any dictionary word starting
with it is accepted once per session. Three lives, no session clock.
"""

from __future__ import annotations

import re
import string
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from game.logic.engine import AnswerCheck, RoundEngine, SuccessScore
from game.logic.enums import AnswerField, Difficulty, GameKind, InputOutcome
from game.logic.exceptions import ValidationError
from game.logic.state import Prompt, Session

if TYPE_CHECKING:
    import random

    from game.logic.content import WordfallContent
    from game.logic.scoring import ScoreRules

EXACT_MODE = "exact"
FREE_MODE = "free"

BOARD_HEIGHT = 100.0
MIN_FREE_WORD_LENGTH = 2
MAX_FREE_WORD_LENGTH = 20

_LETTERS_RE = re.compile(r"^[A-Z]+$")
_WHITESPACE_RE = re.compile(r"\s+")


class WordfallTuning(BaseModel):
    """Fall speed, level pacing and catch-height bonuses."""

    model_config = ConfigDict(frozen=True)

    initial_speed: float = Field(default=5.0, gt=0)  # board units per second
    speed_step: float = Field(default=1.0, ge=0)
    words_per_level: int = Field(default=5, ge=1)
    perfect_height: float = 20.0
    # (max_height, bonus) checked in order for non-perfect catches
    catch_bonuses: tuple[tuple[float, int], ...] = ((40.0, 3), (60.0, 1))
    milestone_every: int = Field(default=10, ge=1)
    milestone_points: int = Field(default=10, ge=0)


def _normalize_free_word(answer: str) -> str:
    return answer.strip().upper()


class WordfallEngine(RoundEngine):
    game: ClassVar[GameKind] = GameKind.WORDFALL
    modes: ClassVar[dict[str, Difficulty]] = {EXACT_MODE: Difficulty.EASY, FREE_MODE: Difficulty.HARD}
    default_lives: ClassVar[int | None] = 3
    # a typo does not clear the falling word
    advance_on_wrong: ClassVar[bool] = False

    def __init__(
        self,
        content: WordfallContent,
        *,
        rng: random.Random | None = None,
        rules: ScoreRules | None = None,
        tuning: WordfallTuning | None = None,
    ) -> None:
        super().__init__(rng=rng, rules=rules)
        self._content = content
        self._tuning = tuning or WordfallTuning()
        self._words = content.exact_words
        self._letters = tuple(sorted({w[0] for w in content.dictionary if w[0] in string.ascii_uppercase}))

    def fall_speed(self, level: int) -> float:
        return self._tuning.initial_speed + (level - 1) * self._tuning.speed_step

    def _level_for(self, rounds_completed: int) -> int:
        return rounds_completed // self._tuning.words_per_level + 1

    def _spawn_prompt(self, session: Session) -> tuple[Prompt, frozenset[str]] | None:
        speed = self.fall_speed(session.level)
        if session.mode == FREE_MODE:
            if not self._letters:
                return None
            letter = self._rng.choice(self._letters)
            prompt = Prompt(
                prompt_id=self._prompt_id(session),
                display_text=letter,
                answer=letter,
                fall_speed=speed,
            )
            return prompt, session.served_keys

        drawn = self._draw(self._words, session)
        if drawn is None:
            return None
        word, served = drawn
        translation = self._content.translations[word]
        accepted = {AnswerField.WORD: frozenset({word})}
        if session.require_translation:
            accepted[AnswerField.TRANSLATION] = frozenset({translation.lower()})
        prompt = Prompt(
            prompt_id=self._prompt_id(session),
            display_text=word,
            answer=word,
            accepted=accepted,
            hint=translation,
            fall_speed=speed,
        )
        return prompt, served

    def _advance_prompt(self, prompt: Prompt, delta_ms: int) -> Prompt:
        progress = min(BOARD_HEIGHT, prompt.fall_progress + prompt.fall_speed * delta_ms / 1000)
        return prompt.model_copy(update={"age_ms": prompt.age_ms + delta_ms, "fall_progress": progress})

    def _is_expired(self, prompt: Prompt) -> bool:
        return prompt.fall_progress >= BOARD_HEIGHT or super()._is_expired(prompt)

    def _check_answer(self, session: Session, prompt: Prompt, answer: Any) -> AnswerCheck:  # noqa: ANN401
        if not isinstance(answer, str) or not answer.strip():
            raise ValidationError("type a word")
        if session.mode == FREE_MODE:
            return self._check_free(session, prompt, answer)
        return self._check_exact(session, prompt, answer)

    def _check_exact(self, session: Session, prompt: Prompt, answer: str) -> AnswerCheck:
        parts = _WHITESPACE_RE.split(answer.strip())
        word = parts[0].upper()
        if session.require_translation:
            if len(parts) < 2:
                raise ValidationError("type the word followed by its translation")
            translation = " ".join(parts[1:]).lower()
            if word not in prompt.accepted[AnswerField.WORD]:
                return AnswerCheck(outcome=InputOutcome.WRONG, reason="word does not match")
            if translation not in prompt.accepted[AnswerField.TRANSLATION]:
                return AnswerCheck(outcome=InputOutcome.WRONG, reason=f"expected translation {prompt.hint!r}")
            return AnswerCheck(outcome=InputOutcome.ACCEPTED, used_answer=word)
        if len(parts) > 1:
            raise ValidationError("type a single word")
        if word not in prompt.accepted[AnswerField.WORD]:
            return AnswerCheck(outcome=InputOutcome.WRONG, reason="word does not match")
        return AnswerCheck(outcome=InputOutcome.ACCEPTED, used_answer=word)

    def _check_free(self, session: Session, prompt: Prompt, answer: str) -> AnswerCheck:
        word = _normalize_free_word(answer)
        if len(word) < MIN_FREE_WORD_LENGTH:
            raise ValidationError(f"word too short (minimum {MIN_FREE_WORD_LENGTH} letters)")
        if len(word) > MAX_FREE_WORD_LENGTH:
            raise ValidationError(f"word too long (maximum {MAX_FREE_WORD_LENGTH} letters)")
        if not _LETTERS_RE.match(word):
            raise ValidationError("only letters are allowed")
        if word in session.used_answers:
            raise ValidationError(f"{word} was already used")
        if not word.startswith(prompt.answer):
            return AnswerCheck(outcome=InputOutcome.WRONG, reason=f"word must start with {prompt.answer}")
        if word not in self._content.dictionary:
            return AnswerCheck(outcome=InputOutcome.WRONG, reason=f"{word} is not in the dictionary")
        return AnswerCheck(outcome=InputOutcome.ACCEPTED, used_answer=word)

    def catch_bonus(self, fall_progress: float) -> int:
        """Bonus for a non-perfect catch, larger the higher the word was caught."""
        for max_height, bonus in self._tuning.catch_bonuses:
            if fall_progress < max_height:
                return bonus
        return 0

    def _score_success(self, session: Session, prompt: Prompt) -> SuccessScore:
        is_perfect = prompt.fall_progress < self._tuning.perfect_height
        outcome = self.rules.apply_success(session.streak, prompt.age_ms, is_perfect=is_perfect)
        extra = 0 if is_perfect else self.catch_bonus(prompt.fall_progress)
        words = session.rounds_completed + 1
        if words % self._tuning.milestone_every == 0:
            extra += int(self._tuning.milestone_points * outcome.combo_multiplier)
        return SuccessScore(outcome=outcome, extra_points=extra)
