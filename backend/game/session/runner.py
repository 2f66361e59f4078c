"""
Drive one player's session in real time and settle it when it ends.

Engine calls are synchronous, so each tick or answer is applied atomically
on the event loop. The runner only awaits around the tick timer and the
settlement call. Settlement runs exactly once per started session, as soon
as any event (tick, answer or skip) leaves the engine ENDED.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from game.logic.timer import TickTimer, TimerConfig

if TYPE_CHECKING:
    from game.logic.engine import RoundEngine
    from game.logic.state import InputResult, Session, SessionConfig
    from game.settlement.models import SubmissionResponse
    from game.settlement.service import ScoreStore

logger = structlog.get_logger()


class RunnerPhase(StrEnum):
    IDLE = "idle"
    PLAYING = "playing"
    ENDED = "ended"  # engine ended, settlement in flight
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"


class SessionRunner:
    """Own a RoundEngine, its tick timer, and the settlement of its sessions."""

    def __init__(
        self,
        engine: RoundEngine,
        score_store: ScoreStore,
        user_id: str,
        timer_config: TimerConfig | None = None,
    ) -> None:
        self._engine = engine
        self._score_store = score_store
        self._user_id = user_id
        self._timer = TickTimer(self._on_tick, timer_config)
        self._phase = RunnerPhase.IDLE
        self._settle_task: asyncio.Task[SubmissionResponse] | None = None
        self._response: SubmissionResponse | None = None

    @property
    def phase(self) -> RunnerPhase:
        return self._phase

    @property
    def session(self) -> Session:
        return self._engine.session

    @property
    def response(self) -> SubmissionResponse | None:
        return self._response

    @property
    def timer(self) -> TickTimer:
        return self._timer

    async def start(self, config: SessionConfig) -> Session:
        """Start a session and its ticks. A previous session's settlement is awaited first."""
        if self._settle_task is not None:
            await self._settle_task
        session = self._engine.start(config)
        self._settle_task = None
        self._response = None
        self._phase = RunnerPhase.PLAYING
        self._timer.start()
        return session

    async def submit_answer(self, answer: Any) -> InputResult:  # noqa: ANN401
        result = self._engine.submit_input(answer)
        self._check_ended()
        return result

    async def skip(self) -> Session:
        session = self._engine.skip()
        self._check_ended()
        return session

    async def pause(self) -> Session:
        """Stop ticking, then pause the engine. The partial tick interval is dropped."""
        await self._timer.stop()
        return self._engine.pause()

    async def resume(self) -> Session:
        session = self._engine.resume()
        if session.is_running:
            self._timer.start()
        return session

    async def wait_settled(self) -> SubmissionResponse | None:
        """Wait for settlement of the ended session. None if the session has not ended."""
        if self._settle_task is None:
            return None
        return await self._settle_task

    async def close(self) -> None:
        """Stop ticking and let an in-flight settlement finish."""
        await self._timer.stop()
        if self._settle_task is not None:
            await self._settle_task

    def _on_tick(self, delta_ms: int) -> None:
        self._engine.tick(delta_ms)
        self._check_ended()

    def _check_ended(self) -> None:
        if self._settle_task is not None or not self._engine.session.is_ended:
            return
        self._phase = RunnerPhase.ENDED
        self._timer.cancel()
        self._settle_task = asyncio.create_task(self._settle())

    async def _settle(self) -> SubmissionResponse:
        summary = self._engine.summary(self._user_id)
        response = await self._score_store.submit(summary)
        self._response = response
        self._phase = RunnerPhase.SUBMITTED if response.success else RunnerPhase.SUBMIT_FAILED
        logger.info(
            "session settled",
            session_id=summary.session_id,
            user_id=self._user_id,
            score=summary.score,
            success=response.success,
        )
        return response
