"""Scheduler module — one-shot deferred actions.

Role revocations, penalty resets and button deactivation all run through
here. Every action is an asyncio task that sleeps and then awaits the
action; nothing repeats.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

Action = Callable[[], Awaitable[None]]


class SchedulingError(RuntimeError):
    """A deferred action could not be created."""


class RevocationScheduler:
    """Owns every pending deferred action."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("spinwheel.scheduler")
        # Pending task → its action, for revocations that must run at shutdown
        self._tasks: dict[asyncio.Task, tuple[str, Action, bool]] = {}
        # Revocations whose delay has elapsed and whose action is running
        self._in_flight: set[asyncio.Task] = set()
        self._stopping = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule_once(
        self,
        delay: float,
        action: Action,
        *,
        name: str = "deferred",
        run_on_shutdown: bool = False,
    ) -> asyncio.Task:
        """Run ``action`` once after ``delay`` seconds. Never blocks.

        Raises ``SchedulingError`` if the task cannot be created.
        """
        if self._stopping:
            raise SchedulingError(f"Scheduler is stopping; refused {name}")
        try:
            loop = asyncio.get_running_loop()
            task = loop.create_task(self._run_later(delay, action, name), name=name)
        except (RuntimeError, MemoryError) as exc:
            raise SchedulingError(f"Could not schedule {name}: {exc}") from exc

        self._tasks[task] = (name, action, run_on_shutdown)
        task.add_done_callback(self._forget)
        self._logger.debug("Scheduled %s in %.1fs", name, delay)
        return task

    def schedule_revocation(self, delay: float, action: Action, *, name: str = "revocation") -> asyncio.Task:
        """Schedule a reward removal. Pending revocations still run on ``stop()``."""
        return self.schedule_once(delay, action, name=name, run_on_shutdown=True)

    async def stop(self) -> None:
        """Cancel all tasks, run the revocations that never fired, wait for running ones."""
        self._stopping = True
        pending = list(self._tasks.items())
        self._tasks.clear()
        # Only tasks still sleeping here get their revocation run early
        interrupted = {
            task for task, _ in pending if not task.done() and not task.cancelling()
        }
        for task, _ in pending:
            task.cancel()
        await asyncio.gather(*(task for task, _ in pending), return_exceptions=True)

        for task, (name, action, run_on_shutdown) in pending:
            if run_on_shutdown and task in interrupted and task.cancelled():
                self._logger.info("Running %s early for shutdown", name)
                await self._run_action(action, name)

        if self._in_flight:
            self._logger.info("Waiting for %d running revocation(s)", len(self._in_flight))
            await asyncio.gather(
                *(asyncio.shield(task) for task in list(self._in_flight)),
                return_exceptions=True,
            )

    # ══════════════════════════════════════════════════════════
    #  Internal
    # ══════════════════════════════════════════════════════════

    async def _run_later(self, delay: float, action: Action, name: str) -> None:
        await asyncio.sleep(max(delay, 0))
        # Past this point the action runs to completion even if stop() is called
        task = asyncio.current_task()
        entry = self._tasks.pop(task, None)
        if entry is not None and entry[2]:
            self._in_flight.add(task)
        await self._run_action(action, name)

    async def _run_action(self, action: Action, name: str) -> None:
        try:
            await action()
        except Exception:
            self._logger.exception("Scheduled action %s failed", name)

    def _forget(self, task: asyncio.Task) -> None:
        self._tasks.pop(task, None)
        self._in_flight.discard(task)
