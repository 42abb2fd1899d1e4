"""Draw engine — spins, prize grants and timed prize revocation.

A spin walks the prize catalog in configured order and rolls one
``randrange(odds)`` per prize; the first zero wins and stops the walk. Prizes
listed earlier therefore get first look even at equal odds; list the rarest
prizes first to get close to independent odds. When nothing wins and a
consolation prize is configured, the consolation prize is granted.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from .catalog import Prize, PrizeCatalog, PrizeType
from .effector import ActionContext, Notifier
from .ledger import RewardLedger
from .penalty_tracker import PenaltyTracker
from .scheduler import RevocationScheduler, SchedulingError


# ═══════════════════════════════════════════════════════════════
#  Data types
# ═══════════════════════════════════════════════════════════════


class GrantStatus(Enum):
    GRANTED = "granted"
    ALREADY_HELD = "already_held"
    NO_PRIZE = "no_prize"
    FAILED = "failed"
    DISABLED = "disabled"


@dataclass
class SpinOutcome:
    """What a spin (or a forced grant) produced."""

    status: GrantStatus
    prize: Prize | None = None
    hold_seconds: float | None = None
    multiplier: int = 1
    spin_count: int = 0

    @property
    def won(self) -> bool:
        return self.status is GrantStatus.GRANTED


SOMETHING_WENT_WRONG = "Something went wrong. Please contact your admin."


# ═══════════════════════════════════════════════════════════════
#  Engine
# ═══════════════════════════════════════════════════════════════


class DrawEngine:
    """Runs spins against the catalog and manages prize lifecycles."""

    def __init__(
        self,
        catalog: PrizeCatalog,
        ledger: RewardLedger,
        scheduler: RevocationScheduler,
        notifier: Notifier,
        penalties: PenaltyTracker | None = None,
        enabled: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._scheduler = scheduler
        self._notify = notifier
        self._penalties = penalties
        self._enabled = enabled and len(catalog) > 0
        self._logger = logger or logging.getLogger("spinwheel.draw")

        # Metrics counters (exposed to metrics_server)
        self.metrics_spins: int = 0
        self.metrics_prizes_granted: int = 0
        self.metrics_consolations: int = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def catalog(self) -> PrizeCatalog:
        return self._catalog

    @property
    def ledger(self) -> RewardLedger:
        return self._ledger

    @property
    def penalties(self) -> PenaltyTracker | None:
        return self._penalties

    def lookup_prize(self, name: str) -> Prize | None:
        return self._catalog.lookup(name)

    def prize_list(self) -> str:
        return self._catalog.describe()

    # ══════════════════════════════════════════════════════════
    #  Spin
    # ══════════════════════════════════════════════════════════

    def roll(self, user_name: str = "") -> Prize | None:
        """Roll each prize in order; return the first winner or None."""
        for prize in self._catalog:
            lucky = random.randrange(prize.odds)
            self._logger.debug(
                "%s has spun a %d for %s. Needed a 0.", user_name, lucky, prize.name,
            )
            if lucky == 0:
                return prize
        return None

    async def spin(self, ctx: ActionContext) -> SpinOutcome:
        """Execute one spin for ``ctx.user_id``."""
        if not self._enabled:
            return SpinOutcome(status=GrantStatus.DISABLED)

        self.metrics_spins += 1
        spin_count = self._penalties.record_spin(ctx.user_id) if self._penalties else 0

        prize = self.roll(ctx.user_name)
        if prize is not None:
            self._logger.info("%s has won %s!", ctx.user_name, prize.name)
        elif self._catalog.consolation is not None:
            prize = self._catalog.consolation
            self._logger.info("%s has gotten a consolation prize.", ctx.user_name)
        else:
            self._logger.info("%s won nothing.", ctx.user_name)
            return SpinOutcome(status=GrantStatus.NO_PRIZE, spin_count=spin_count)

        outcome = await self.give_prize(ctx, prize)
        outcome.spin_count = spin_count
        return outcome

    # ══════════════════════════════════════════════════════════
    #  Grant / revoke
    # ══════════════════════════════════════════════════════════

    def hold_time(self, prize: Prize) -> float:
        """Role hold duration with uniform jitter when a variation is set."""
        if prize.role_time_variation:
            low = max(prize.role_time - prize.role_time_variation, 0.0)
            return random.uniform(low, prize.role_time + prize.role_time_variation)
        return prize.role_time

    async def give_prize(self, ctx: ActionContext, prize: Prize) -> SpinOutcome:
        """Grant ``prize`` to the user and schedule its removal."""
        self._logger.info("Giving %s prize %s.", ctx.user_name, prize.name)

        if not self._ledger.grant(prize.name, ctx.user_id):
            self._logger.info("%s already has %s.", ctx.user_name, prize.name)
            await self._notify.say(ctx, f"{ctx.mention} won {prize.name} but already has it!")
            return SpinOutcome(status=GrantStatus.ALREADY_HELD, prize=prize)

        if prize.type is not PrizeType.ROLE:
            self._logger.warning("Prize %s has no grantable type; nothing given", prize.name)
            self._ledger.revoke(prize.name, ctx.user_id)
            return SpinOutcome(status=GrantStatus.FAILED, prize=prize)

        if not await self._notify.grant_role(ctx, prize.role_id):
            self._logger.error(
                "%s role ID %s was not found in the server!", prize.name, prize.role_id,
            )
            self._ledger.revoke(prize.name, ctx.user_id)
            await self._notify.say(ctx, SOMETHING_WENT_WRONG)
            return SpinOutcome(status=GrantStatus.FAILED, prize=prize)

        previous_voice: int | None = None
        if prize.is_silencing:
            self._logger.debug("%s will be silenced.", ctx.user_name)
            previous_voice = await self._notify.silence(ctx)

        delay: float | None = None
        multiplier = 1
        if prize.is_timed:
            delay = self.hold_time(prize)
            if prize.is_consolation and self._penalties is not None:
                multiplier = self._penalties.multiplier(ctx.user_id)
                delay *= multiplier

            async def _revoke() -> None:
                await self.revoke_prize(ctx, prize, previous_voice)

            try:
                self._scheduler.schedule_revocation(
                    delay, _revoke, name=f"revoke:{prize.name}:{ctx.user_id}",
                )
            except SchedulingError:
                self._logger.warning(
                    "Could not schedule removal of %s for %s; rolling back",
                    prize.name, ctx.user_name, exc_info=True,
                )
                await self._undo_grant(ctx, prize, previous_voice)
                return SpinOutcome(status=GrantStatus.FAILED, prize=prize)

            if multiplier > 1:
                self._penalties.extend_reset(ctx.user_id, delay)

        await self._notify.show_file(ctx, prize.image_resource)
        await self._notify.say(ctx, prize.message)

        self.metrics_prizes_granted += 1
        if prize.is_consolation:
            self.metrics_consolations += 1

        if delay is None:
            return SpinOutcome(status=GrantStatus.GRANTED, prize=prize)

        if multiplier > 1:
            await self._notify.say(
                ctx,
                "You're spinning too much! Penalty increased. "
                f"Wait about {int(self._penalties.reset_seconds)} seconds after the "
                "consolation is removed to reset this penalty.",
            )
        await self._notify.say(ctx, f"You will have this prize for {int(delay)} seconds.")
        return SpinOutcome(
            status=GrantStatus.GRANTED, prize=prize, hold_seconds=delay, multiplier=multiplier,
        )

    async def _undo_grant(
        self,
        ctx: ActionContext,
        prize: Prize,
        previous_voice: int | None,
    ) -> None:
        """Take back a grant whose removal could not be scheduled."""
        try:
            if not await self._notify.revoke_role(ctx, prize.role_id):
                self._logger.error(
                    "Could not take back %s from %s after a failed grant", prize.name, ctx.user_name,
                )
            if prize.is_silencing:
                await self._notify.unsilence(ctx, previous_voice)
        finally:
            self._ledger.revoke(prize.name, ctx.user_id)

    async def revoke_prize(
        self,
        ctx: ActionContext,
        prize: Prize,
        restore_channel_id: int | None = None,
    ) -> None:
        """Take the prize role back and release the ledger entry."""
        self._logger.info("Removing %s's prize role for %s.", ctx.user_name, prize.name)
        try:
            if not await self._notify.revoke_role(ctx, prize.role_id):
                self._logger.error(
                    "%s role ID %s was not found in the server!", prize.name, prize.role_id,
                )
                await self._notify.say(ctx, SOMETHING_WENT_WRONG)
            if prize.is_silencing:
                self._logger.debug("Unsilencing %s.", ctx.user_name)
                restore = restore_channel_id if prize.move_back_after_silence else None
                await self._notify.unsilence(ctx, restore)
        finally:
            self._ledger.revoke(prize.name, ctx.user_id)

        await self._notify.dm(ctx, f"Your prize role for {prize.name} has been removed!")
