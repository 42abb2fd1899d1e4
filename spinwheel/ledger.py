"""Reward ledger — which users currently hold which timed reward."""

from __future__ import annotations

import logging
import threading
from typing import Iterable


class RewardLedger:
    """Per-reward sets of holder IDs.

    Keys are fixed at construction. Asking about a key that was never
    registered is a programming error and raises ``KeyError``.
    """

    def __init__(self, reward_names: Iterable[str], logger: logging.Logger | None = None) -> None:
        self._holders: dict[str, set[int]] = {name: set() for name in reward_names}
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger("spinwheel.ledger")

    def grant(self, reward: str, user_id: int) -> bool:
        """Record ``user_id`` as holding ``reward``. False if already held."""
        with self._lock:
            holders = self._holders[reward]
            if user_id in holders:
                self._logger.debug("User %s already holds %s", user_id, reward)
                return False
            holders.add(user_id)
        return True

    def revoke(self, reward: str, user_id: int) -> bool:
        """Remove the membership. Returns whether anything was removed."""
        with self._lock:
            holders = self._holders[reward]
            if user_id not in holders:
                return False
            holders.discard(user_id)
        return True

    def holds(self, reward: str, user_id: int) -> bool:
        with self._lock:
            return user_id in self._holders[reward]

    def holders(self, reward: str) -> frozenset[int]:
        with self._lock:
            return frozenset(self._holders[reward])

    def counts(self) -> dict[str, int]:
        """Holder count per reward, for metrics."""
        with self._lock:
            return {name: len(users) for name, users in self._holders.items()}

    @property
    def rewards(self) -> list[str]:
        return list(self._holders)
