"""
Speed Verb Challenge: conjugate irregular verbs against a 90 second clock.

Difficulty decides which forms are required: past simple always, past
participle from medium, translation on hard. Fast answers and streak
milestones buy back time on the clock.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from game.logic.engine import AnswerCheck, RoundEngine, SuccessScore
from game.logic.enums import AnswerField, Difficulty, GameKind, InputOutcome
from game.logic.exceptions import ValidationError
from game.logic.state import Prompt, Session

if TYPE_CHECKING:
    import random

    from game.logic.content import VerbEntry
    from game.logic.scoring import ScoreRules

SESSION_TIME_MS = 90_000
FAST_ANSWER_MS = 3_000
FAST_ANSWER_TIME_BONUS_MS = 1_000
MILESTONE_TIME_BONUS_MS = 2_000
STREAK_MILESTONES = frozenset({10, 20, 30, 50, 100})
_FIELD_VALUES = frozenset(f.value for f in AnswerField)

REQUIRED_FIELDS: dict[Difficulty, tuple[AnswerField, ...]] = {
    Difficulty.EASY: (AnswerField.PAST_SIMPLE,),
    Difficulty.MEDIUM: (AnswerField.PAST_SIMPLE, AnswerField.PAST_PARTICIPLE),
    Difficulty.HARD: (AnswerField.PAST_SIMPLE, AnswerField.PAST_PARTICIPLE, AnswerField.TRANSLATION),
}


def normalize_answer(value: str) -> str:
    return value.strip().lower()


def _forms(verb: VerbEntry, field: AnswerField) -> frozenset[str]:
    if field == AnswerField.PAST_SIMPLE:
        values = verb.past_simple
    elif field == AnswerField.PAST_PARTICIPLE:
        values = verb.past_participle
    else:
        values = verb.translations
    return frozenset(normalize_answer(v) for v in values)


class VerbChallengeEngine(RoundEngine):
    game: ClassVar[GameKind] = GameKind.SPEED_VERB
    modes: ClassVar[dict[str, Difficulty]] = {d.value: d for d in Difficulty}
    default_total_time_ms: ClassVar[int | None] = SESSION_TIME_MS

    def __init__(
        self,
        verbs: tuple[VerbEntry, ...],
        *,
        rng: random.Random | None = None,
        rules: ScoreRules | None = None,
    ) -> None:
        super().__init__(rng=rng, rules=rules)
        self._verbs = {v.base: v for v in verbs}
        self._pool = tuple(self._verbs)

    def required_fields(self, session: Session) -> tuple[AnswerField, ...]:
        if session.bucket is None:
            return ()
        return REQUIRED_FIELDS[session.bucket]

    def _spawn_prompt(self, session: Session) -> tuple[Prompt, frozenset[str]] | None:
        drawn = self._draw(self._pool, session)
        if drawn is None:
            return None
        base, served = drawn
        verb = self._verbs[base]
        prompt = Prompt(
            prompt_id=self._prompt_id(session),
            display_text=verb.base,
            answer=verb.base,
            accepted={field: _forms(verb, field) for field in self.required_fields(session)},
            hint=verb.translations[0],
        )
        return prompt, served

    def _check_answer(self, session: Session, prompt: Prompt, answer: Any) -> AnswerCheck:  # noqa: ANN401
        required = tuple(prompt.accepted)
        if isinstance(answer, str):
            if len(required) != 1:
                raise ValidationError(f"answers required for {', '.join(required)}")
            answer = {required[0]: answer}
        if not isinstance(answer, Mapping):
            raise ValidationError("answer must map each required form to a value")

        provided = {AnswerField(k): v for k, v in answer.items() if k in _FIELD_VALUES}
        missing = [f for f in required if not isinstance(provided.get(f), str) or not provided[f].strip()]
        if missing:
            raise ValidationError(f"missing {', '.join(missing)}")

        wrong = [f for f in required if normalize_answer(provided[f]) not in prompt.accepted[f]]
        if wrong:
            return AnswerCheck(outcome=InputOutcome.WRONG, reason=f"incorrect {', '.join(wrong)}")
        return AnswerCheck(outcome=InputOutcome.ACCEPTED, used_answer=prompt.answer)

    def _score_success(self, session: Session, prompt: Prompt) -> SuccessScore:
        outcome = self.rules.apply_success(session.streak, prompt.age_ms)
        time_bonus = FAST_ANSWER_TIME_BONUS_MS if prompt.age_ms < FAST_ANSWER_MS else 0
        if outcome.streak in STREAK_MILESTONES:
            time_bonus += MILESTONE_TIME_BONUS_MS
        return SuccessScore(outcome=outcome, time_bonus_ms=time_bonus)
