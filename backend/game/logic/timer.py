"""
Fixed-step tick source for a running session.

Emits one tick of ``tick_ms`` after every full interval. Cancelling the task
drops the partial interval, so stopping and restarting never replays or
duplicates a tick. The callback is synchronous: it cannot be interrupted
halfway by a cancellation.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import Callable


class TimerConfig(BaseModel):
    """Configuration for the session tick source."""

    tick_ms: int = Field(default=100, gt=0)


class TickTimer:
    """Asyncio task calling ``on_tick(tick_ms)`` at a fixed interval until stopped."""

    def __init__(self, on_tick: Callable[[int], None], config: TimerConfig | None = None) -> None:
        self._on_tick = on_tick
        self._config = config or TimerConfig()
        self._active_task: asyncio.Task[None] | None = None
        self._ticks_emitted = 0

    @property
    def running(self) -> bool:
        return self._active_task is not None and not self._active_task.done()

    @property
    def ticks_emitted(self) -> int:
        return self._ticks_emitted

    @property
    def tick_ms(self) -> int:
        return self._config.tick_ms

    def start(self) -> None:
        """Start (or restart) emitting ticks."""
        self.cancel()
        self._active_task = asyncio.create_task(self._run())

    def cancel(self) -> None:
        """Cancel the tick task without waiting for it."""
        if self._active_task is not None and not self._active_task.done():
            self._active_task.cancel()
        self._active_task = None

    async def stop(self) -> None:
        """Cancel the tick task and wait until it has finished."""
        task = self._active_task
        self.cancel()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        interval = self._config.tick_ms / 1000
        try:
            while True:
                await asyncio.sleep(interval)
                self._ticks_emitted += 1
                self._on_tick(self._config.tick_ms)
        except asyncio.CancelledError:
            pass
        except (RuntimeError, ValueError):  # fmt: skip
            logger.exception("tick callback failed")
