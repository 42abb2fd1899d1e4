"""Consecutive-spin penalty tracker.

Each spin bumps the user's counter and re-arms a one-shot reset timer.
Only the timer firing brings the counter back to zero. While a penalty is
being served the next reset interval is stretched by the penalty hold so
the counter cannot reset before the consolation role comes off.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass

from .scheduler import RevocationScheduler, SchedulingError


@dataclass
class PenaltyState:
    consecutive_count: int = 0
    reset_interval: float = 0.0
    reset_handle: asyncio.Task | None = None
    # Bumped on every re-arm so a superseded timer can tell it is stale
    generation: int = 0


class PenaltyTracker:
    """Per-user spin counters with debounced reset timers."""

    def __init__(
        self,
        reset_seconds: float,
        spins_before_penalty: int,
        scheduler: RevocationScheduler,
        logger: logging.Logger | None = None,
    ) -> None:
        self._reset_seconds = reset_seconds
        self._threshold = spins_before_penalty
        self._scheduler = scheduler
        self._logger = logger or logging.getLogger("spinwheel.penalty")
        self._states: dict[int, PenaltyState] = {}
        self._lock = threading.Lock()

    @property
    def reset_seconds(self) -> float:
        return self._reset_seconds

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def tracked_users(self) -> int:
        """Users with a spin streak that has not reset yet."""
        with self._lock:
            return len(self._states)

    # ══════════════════════════════════════════════════════════
    #  Public API
    # ══════════════════════════════════════════════════════════

    def record_spin(self, user_id: int) -> int:
        """Count a spin and restart the reset timer. Returns the new count."""
        with self._lock:
            state = self._states.get(user_id)
            if state is None:
                self._logger.debug("Creating penalty state for %s", user_id)
                state = PenaltyState(reset_interval=self._reset_seconds)
                self._states[user_id] = state
            state.consecutive_count += 1
            count = state.consecutive_count
            self._arm(user_id, state)
        self._logger.debug("%s has spun %d times without a break", user_id, count)
        return count

    def count(self, user_id: int) -> int:
        with self._lock:
            state = self._states.get(user_id)
            return state.consecutive_count if state else 0

    def multiplier(self, user_id: int) -> int:
        """Hold-time multiplier for the consolation prize (1 = no penalty)."""
        count = self.count(user_id)
        if count > self._threshold:
            return count - self._threshold + 1
        return 1

    def extend_reset(self, user_id: int, extra_seconds: float) -> None:
        """Lengthen the pending reset interval by a penalty hold and re-arm."""
        with self._lock:
            state = self._states.get(user_id)
            if state is None:
                return
            state.reset_interval += extra_seconds
            self._arm(user_id, state)
        self._logger.debug(
            "Penalty reset for %s extended by %.1fs", user_id, extra_seconds,
        )

    def reset_interval(self, user_id: int) -> float:
        with self._lock:
            state = self._states.get(user_id)
            return state.reset_interval if state else self._reset_seconds

    # ══════════════════════════════════════════════════════════
    #  Timer
    # ══════════════════════════════════════════════════════════

    def _arm(self, user_id: int, state: PenaltyState) -> None:
        """Cancel any pending reset and start a fresh one. Caller holds the lock."""
        if state.reset_handle is not None:
            state.reset_handle.cancel()
            state.reset_handle = None
        state.generation += 1
        generation = state.generation

        async def _fire() -> None:
            self._reset(user_id, generation)

        try:
            state.reset_handle = self._scheduler.schedule_once(
                state.reset_interval, _fire, name=f"penalty-reset:{user_id}",
            )
        except SchedulingError:
            self._logger.exception("Could not arm penalty reset for %s", user_id)

    def _reset(self, user_id: int, generation: int) -> None:
        with self._lock:
            state = self._states.get(user_id)
            if state is None or state.generation != generation:
                return
            # The next record_spin starts from a fresh state
            del self._states[user_id]
        self._logger.debug("Spin penalty for %s reset", user_id)
