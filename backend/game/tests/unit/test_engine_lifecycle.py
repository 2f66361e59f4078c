"""Lifecycle rules shared by every round engine, exercised through the verb challenge."""

import random

import pytest

from game.logic.enums import Difficulty, EndReason, InputOutcome, SessionStatus
from game.logic.exceptions import ConfigError, InvalidTransitionError
from game.logic.state import SessionConfig
from game.logic.verb_challenge import VerbChallengeEngine
from game.tests.helpers.content import VERBS, verb_answer


@pytest.fixture
def engine():
    return VerbChallengeEngine(VERBS, rng=random.Random(3))


def _answer(engine):
    return verb_answer(engine.session.active_prompt.answer, "past_simple")


class TestStart:
    def test_new_engine_is_idle(self, engine):
        assert engine.session.status == SessionStatus.IDLE
        assert engine.session.active_prompt is None

    def test_start_spawns_first_prompt(self, engine):
        session = engine.start(SessionConfig(mode="easy", session_id="s1"))

        assert session.status == SessionStatus.RUNNING
        assert session.session_id == "s1"
        assert session.bucket == Difficulty.EASY
        assert session.time_remaining_ms == 90_000
        assert session.lives is None
        assert session.active_prompt is not None
        assert session.prompts_served == 1

    def test_unknown_mode_raises(self, engine):
        with pytest.raises(ConfigError, match="unknown mode"):
            engine.start(SessionConfig(mode="nightmare"))
        assert engine.session.status == SessionStatus.IDLE

    def test_empty_content_raises(self):
        engine = VerbChallengeEngine(())
        with pytest.raises(ConfigError, match="no content"):
            engine.start(SessionConfig(mode="easy"))

    def test_start_while_running_raises(self, engine):
        engine.start(SessionConfig(mode="easy"))
        with pytest.raises(InvalidTransitionError):
            engine.start(SessionConfig(mode="easy"))

    def test_start_while_paused_raises(self, engine):
        engine.start(SessionConfig(mode="easy"))
        engine.pause()
        with pytest.raises(InvalidTransitionError):
            engine.start(SessionConfig(mode="easy"))

    def test_restart_after_end_is_a_new_session(self, engine):
        engine.start(SessionConfig(mode="easy", session_id="first"))
        engine.tick(90_000)

        session = engine.start(SessionConfig(mode="hard", session_id="second"))

        assert session.session_id == "second"
        assert session.status == SessionStatus.RUNNING
        assert session.score == 0
        assert session.elapsed_ms == 0

    def test_overrides_replace_defaults(self, engine):
        session = engine.start(SessionConfig(mode="easy", total_time_ms=5000, lives=2))
        assert session.time_remaining_ms == 5000
        assert session.lives == 2

    def test_rules_unavailable_before_start(self, engine):
        with pytest.raises(InvalidTransitionError):
            _ = engine.rules


class TestPauseResume:
    def test_pause_and_resume(self, engine):
        engine.start(SessionConfig(mode="easy"))
        engine.tick(1000)

        paused = engine.pause()
        assert paused.status == SessionStatus.PAUSED
        assert paused.elapsed_ms == 1000

        resumed = engine.resume()
        assert resumed.status == SessionStatus.RUNNING
        assert resumed.model_dump(exclude={"status"}) == paused.model_dump(exclude={"status"})

    def test_pause_outside_running_is_noop(self, engine):
        assert engine.pause().status == SessionStatus.IDLE

    def test_resume_outside_paused_is_noop(self, engine):
        engine.start(SessionConfig(mode="easy"))
        session = engine.session
        assert engine.resume() is session

    def test_tick_while_paused_is_noop(self, engine):
        engine.start(SessionConfig(mode="easy"))
        paused = engine.pause()
        assert engine.tick(5000) is paused

    def test_input_while_paused_is_ignored(self, engine):
        engine.start(SessionConfig(mode="easy"))
        engine.pause()
        result = engine.submit_input(_answer(engine))
        assert result.outcome == InputOutcome.IGNORED
        assert result.changed_session is False


class TestTick:
    def test_negative_delta_raises(self, engine):
        engine.start(SessionConfig(mode="easy"))
        with pytest.raises(ValueError, match="non-negative"):
            engine.tick(-1)

    def test_tick_before_start_is_noop(self, engine):
        session = engine.session
        assert engine.tick(100) is session

    def test_advances_clock_and_prompt_age(self, engine):
        engine.start(SessionConfig(mode="easy"))
        session = engine.tick(1500)

        assert session.elapsed_ms == 1500
        assert session.time_remaining_ms == 88_500
        assert session.active_prompt.age_ms == 1500

    def test_clock_reaching_zero_ends_session(self, engine):
        engine.start(SessionConfig(mode="easy"))
        session = engine.tick(100_000)

        assert session.status == SessionStatus.ENDED
        assert session.end_reason == EndReason.OUT_OF_TIME
        assert session.time_remaining_ms == 0
        assert session.active_prompt is None

    def test_prompt_deadline_costs_the_last_life(self, engine):
        engine.start(SessionConfig(mode="easy", lives=1, prompt_deadline_ms=2000))

        session = engine.tick(2000)

        assert session.status == SessionStatus.ENDED
        assert session.end_reason == EndReason.OUT_OF_LIVES
        assert session.missed_count == 1
        assert session.lives == 0


class TestEndedIsTerminal:
    def test_no_new_values_after_end(self, engine):
        engine.start(SessionConfig(mode="easy"))
        ended = engine.tick(90_000)

        assert engine.tick(100) is ended
        assert engine.skip() is ended
        assert engine.pause() is ended
        assert engine.resume() is ended
        result = engine.submit_input({"past_simple": "went"})
        assert result.outcome == InputOutcome.IGNORED
        assert result.session == ended


class TestSummary:
    def test_summary_requires_ended_session(self, engine):
        engine.start(SessionConfig(mode="easy"))
        with pytest.raises(InvalidTransitionError):
            engine.summary("u1")

    def test_summary_of_ended_session(self, engine):
        engine.start(SessionConfig(mode="medium", session_id="s1"))
        base = engine.session.active_prompt.answer
        engine.submit_input(verb_answer(base, "past_simple", "past_participle"))
        engine.tick(90_000)

        summary = engine.summary("u1")

        assert summary.session_id == "s1"
        assert summary.user_id == "u1"
        assert summary.game == "speed-verb-challenge"
        assert summary.bucket == "medium"
        assert summary.secondary_metric == 1
        assert summary.score == engine.session.score
        assert summary.duration_ms == 90_000
        assert summary.end_reason == EndReason.OUT_OF_TIME
