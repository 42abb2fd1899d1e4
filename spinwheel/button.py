"""Big Red Button — a timed group event.

Once shown, the button stays live for ``active_time_seconds``. Anyone who
presses it while it is live gets the button role until the role timer
runs out. The button only ever turns itself off; there is no early stop.
"""

from __future__ import annotations

import logging
from enum import Enum

from .config import ButtonConfig
from .effector import ActionContext, Notifier, RuntimeSettings
from .ledger import RewardLedger
from .scheduler import RevocationScheduler, SchedulingError

BUTTON_REWARD = "Big Red Button"


class ButtonPhase(Enum):
    DISABLED = "disabled"
    INACTIVE = "inactive"
    ACTIVE = "active"


class BigRedButton:
    """State machine for the button plus its role holders."""

    def __init__(
        self,
        config: ButtonConfig | None,
        scheduler: RevocationScheduler,
        notifier: Notifier,
        settings: RuntimeSettings,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._scheduler = scheduler
        self._notify = notifier
        self._settings = settings
        self._logger = logger or logging.getLogger("spinwheel.button")
        self._holders = RewardLedger([BUTTON_REWARD], self._logger)
        self._active = False

        # Metrics counters (exposed to metrics_server)
        self.metrics_activations: int = 0
        self.metrics_presses: int = 0

    @property
    def phase(self) -> ButtonPhase:
        if self._config is None or not self._config.enabled:
            return ButtonPhase.DISABLED
        return ButtonPhase.ACTIVE if self._active else ButtonPhase.INACTIVE

    @property
    def enabled(self) -> bool:
        return self.phase is not ButtonPhase.DISABLED

    @property
    def active(self) -> bool:
        return self.phase is ButtonPhase.ACTIVE

    @property
    def holders(self) -> frozenset[int]:
        return self._holders.holders(BUTTON_REWARD)

    # ══════════════════════════════════════════════════════════
    #  Show / deactivate
    # ══════════════════════════════════════════════════════════

    async def show(self, ctx: ActionContext) -> bool:
        """Activate the button. No-op unless it is currently inactive."""
        if self.phase is not ButtonPhase.INACTIVE:
            self._logger.debug("Button show ignored in phase %s", self.phase.value)
            return False
        cfg = self._config

        self._active = True
        try:
            self._scheduler.schedule_once(
                cfg.active_time_seconds, lambda: self._deactivate(ctx), name="button-deactivate",
            )
        except SchedulingError:
            self._logger.warning("Could not schedule button deactivation; staying off", exc_info=True)
            self._active = False
            return False

        self.metrics_activations += 1
        self._logger.info("%s has enabled the big red button.", ctx.user_name)

        minutes = int(cfg.active_time_seconds // 60)
        await self._notify.say(
            ctx,
            f"{ctx.mention} has enabled the Big Red Button! "
            f"The button will be active for {minutes} minutes!",
        )
        await self._notify.say(ctx, cfg.message)
        await self._notify.say(ctx, f"Use {self._settings.command_prefix}SMASH to press it!")
        await self._notify.show_file(ctx, cfg.image_resource)
        return True

    async def _deactivate(self, ctx: ActionContext) -> None:
        self._active = False
        self._logger.info("The big red button has been deactivated.")
        await self._notify.say(ctx, "The Big Red Button has been deactivated")

    # ══════════════════════════════════════════════════════════
    #  Press / role removal
    # ══════════════════════════════════════════════════════════

    async def press(self, ctx: ActionContext) -> bool:
        """Give the presser the button role. No-op unless the button is live."""
        if self.phase is not ButtonPhase.ACTIVE:
            self._logger.debug("%s pressed an inactive button", ctx.user_name)
            return False
        return await self.give_role(ctx)

    async def give_role(self, ctx: ActionContext) -> bool:
        """Grant the button role regardless of phase (admin test path)."""
        cfg = self._config
        if cfg is None:
            return False
        self._logger.info("%s has pressed the button.", ctx.user_name)

        if not self._holders.grant(BUTTON_REWARD, ctx.user_id):
            self._logger.warning("%s already has a button role.", ctx.user_name)
            return False

        self._logger.debug(
            "%s will have the role %s for %d seconds.",
            ctx.user_name, cfg.role_id, cfg.role_time_seconds,
        )
        if not await self._notify.grant_role(ctx, cfg.role_id):
            self._logger.error("Role ID %s was not found in the server!", cfg.role_id)
            self._holders.revoke(BUTTON_REWARD, ctx.user_id)
            return False

        previous_voice: int | None = None
        if cfg.is_silencing_role:
            previous_voice = await self._notify.silence(ctx)

        timed = cfg.role_time_seconds > 0
        if timed:
            try:
                self._scheduler.schedule_revocation(
                    cfg.role_time_seconds,
                    lambda: self.remove_role(ctx, previous_voice),
                    name=f"revoke:button:{ctx.user_id}",
                )
            except SchedulingError:
                self._logger.warning(
                    "Could not schedule button role removal for %s; rolling back",
                    ctx.user_name, exc_info=True,
                )
                await self._undo_press(ctx, previous_voice)
                return False

        self.metrics_presses += 1
        await self._notify.show_file(ctx, cfg.pressed_image_resource)
        await self._notify.say(ctx, f"{ctx.mention} has pressed the Big Red Button!")
        if timed:
            await self._notify.say(ctx, f"They will have the role for {int(cfg.role_time_seconds)} seconds!")
        return True

    async def _undo_press(self, ctx: ActionContext, previous_voice: int | None) -> None:
        cfg = self._config
        try:
            if not await self._notify.revoke_role(ctx, cfg.role_id):
                self._logger.error("Could not take back the button role from %s", ctx.user_name)
            if cfg.is_silencing_role:
                await self._notify.unsilence(ctx, previous_voice)
        finally:
            self._holders.revoke(BUTTON_REWARD, ctx.user_id)

    async def remove_role(self, ctx: ActionContext, restore_channel_id: int | None = None) -> None:
        cfg = self._config
        self._logger.info("Removing %s's button role.", ctx.user_name)
        try:
            if not await self._notify.revoke_role(ctx, cfg.role_id):
                self._logger.error("Role ID %s was not found in the server!", cfg.role_id)
            if cfg.is_silencing_role:
                restore = restore_channel_id if cfg.move_user_back_after_silence else None
                await self._notify.unsilence(ctx, restore)
        finally:
            self._holders.revoke(BUTTON_REWARD, ctx.user_id)

        await self._notify.dm(ctx, "Your Big Red Button role has been lifted!")
