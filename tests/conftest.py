"""Shared test fixtures for spinwheel."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from spinwheel.button import BigRedButton
from spinwheel.catalog import PrizeCatalog
from spinwheel.config import SpinWheelConfig
from spinwheel.draw_engine import DrawEngine
from spinwheel.effector import ActionContext, Notifier, RuntimeSettings
from spinwheel.ledger import RewardLedger
from spinwheel.penalty_tracker import PenaltyTracker
from spinwheel.scheduler import SchedulingError

GUILD_ID = 900
CHANNEL_ID = 901


# ── Minimal config dict matching SpinWheelConfig schema ──────

def make_config_dict(**overrides) -> dict:
    """Build a valid config dict with sensible test defaults."""
    base = {
        "bot_token": "test-token",
        "command_prefix": "&",
        "send_dms": True,
        "spin": {
            "prizes": [
                {
                    "name": "Golden Crown",
                    "type": "role",
                    "description": "A shiny crown",
                    "message": "You won the crown!",
                    "role_id": 1001,
                    "role_time_seconds": 600,
                    "image_resource": "Resources/crown.png",
                    "odds": 100,
                },
                {
                    "name": "Timeout",
                    "type": "Role",
                    "description": "Server mute",
                    "message": "Shh.",
                    "role_id": 1002,
                    "role_time_seconds": 60,
                    "is_silencing_role": True,
                    "move_user_back_after_silence": True,
                    "odds": 10,
                },
            ],
            "consolation": {
                "description": "A ribbon",
                "message": "Have a ribbon.",
                "role_id": 1003,
                "role_time_seconds": 30,
            },
            "penalty_reset_seconds": 120,
            "spins_before_penalty": 3,
        },
        "big_red_button": {
            "role_id": 2001,
            "active_time_seconds": 300,
            "role_time_seconds": 45,
            "message": "DO NOT PRESS THE BUTTON.",
            "is_silencing_role": True,
            "move_user_back_after_silence": True,
        },
    }
    base.update(overrides)
    return base


def make_ctx(user_id: int = 1, name: str | None = None) -> ActionContext:
    return ActionContext(
        user_id=user_id,
        user_name=name or f"user{user_id}",
        guild_id=GUILD_ID,
        channel_id=CHANNEL_ID,
    )


# ── Doubles ──────────────────────────────────────────────────

class RecordingEffector:
    """Effector double that records every call for assertion."""

    def __init__(self) -> None:
        self.messages: list[tuple[int, str]] = []
        self.files: list[tuple[int, str]] = []
        self.dms: list[tuple[int, str]] = []
        self.granted: list[tuple[int, int]] = []
        self.revoked: list[tuple[int, int]] = []
        self.silenced: list[int] = []
        self.unsilenced: list[tuple[int, int | None]] = []
        self.missing_roles: set[int] = set()
        self.voice_channels: dict[int, int] = {}
        self.fail_messages = False

    async def send_message(self, ctx: ActionContext, text: str) -> None:
        if self.fail_messages:
            raise RuntimeError("channel gone")
        self.messages.append((ctx.channel_id, text))

    async def send_file(self, ctx: ActionContext, path: str) -> None:
        self.files.append((ctx.channel_id, path))

    async def send_dm(self, ctx: ActionContext, text: str) -> None:
        self.dms.append((ctx.user_id, text))

    async def grant_role(self, ctx: ActionContext, role_id: int) -> bool:
        if role_id in self.missing_roles:
            return False
        self.granted.append((ctx.user_id, role_id))
        return True

    async def revoke_role(self, ctx: ActionContext, role_id: int) -> bool:
        if role_id in self.missing_roles:
            return False
        self.revoked.append((ctx.user_id, role_id))
        return True

    async def silence(self, ctx: ActionContext) -> int | None:
        self.silenced.append(ctx.user_id)
        return self.voice_channels.get(ctx.user_id)

    async def unsilence(self, ctx: ActionContext, restore_channel_id: int | None) -> None:
        self.unsilenced.append((ctx.user_id, restore_channel_id))

    def texts(self) -> list[str]:
        return [text for _, text in self.messages]


class ManualHandle:
    def __init__(self, delay: float, action: Any, name: str, run_on_shutdown: bool) -> None:
        self.delay = delay
        self.action = action
        self.name = name
        self.run_on_shutdown = run_on_shutdown
        self.fired = False
        self._cancelled = False

    def cancel(self) -> bool:
        self._cancelled = True
        return True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Scheduler double: captures deferred actions so tests fire them by hand."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []
        self.fail = False

    def schedule_once(self, delay, action, *, name="deferred", run_on_shutdown=False):
        if self.fail:
            raise SchedulingError(f"forced failure for {name}")
        handle = ManualHandle(delay, action, name, run_on_shutdown)
        self.handles.append(handle)
        return handle

    def schedule_revocation(self, delay, action, *, name="revocation"):
        return self.schedule_once(delay, action, name=name, run_on_shutdown=True)

    def live(self, prefix: str = "") -> list[ManualHandle]:
        return [
            h for h in self.handles
            if h.name.startswith(prefix) and not h.fired and not h.cancelled()
        ]

    @property
    def pending(self) -> int:
        return len(self.live())

    async def fire(self, handle: ManualHandle) -> None:
        handle.fired = True
        await handle.action()

    async def fire_matching(self, prefix: str) -> int:
        handles = self.live(prefix)
        for handle in handles:
            await self.fire(handle)
        return len(handles)


# ── Fixtures ─────────────────────────────────────────────────

@pytest.fixture
def sample_config_dict() -> dict:
    return make_config_dict()


@pytest.fixture
def sample_config(sample_config_dict: dict) -> SpinWheelConfig:
    return SpinWheelConfig(**sample_config_dict)


@pytest.fixture
def settings() -> RuntimeSettings:
    return RuntimeSettings(command_prefix="&", send_dms=True)


@pytest.fixture
def effector() -> RecordingEffector:
    return RecordingEffector()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifier(effector: RecordingEffector, settings: RuntimeSettings) -> Notifier:
    return Notifier(effector, settings, logging.getLogger("test"))


@pytest.fixture
def catalog(sample_config: SpinWheelConfig) -> PrizeCatalog:
    return PrizeCatalog.from_config(sample_config.spin, logging.getLogger("test"))


@pytest.fixture
def ledger(catalog: PrizeCatalog) -> RewardLedger:
    return RewardLedger(catalog.names, logging.getLogger("test"))


@pytest.fixture
def penalties(scheduler: ManualScheduler) -> PenaltyTracker:
    return PenaltyTracker(120, 3, scheduler, logging.getLogger("test"))


@pytest.fixture
def draw_engine(
    catalog: PrizeCatalog,
    ledger: RewardLedger,
    scheduler: ManualScheduler,
    notifier: Notifier,
    penalties: PenaltyTracker,
) -> DrawEngine:
    return DrawEngine(
        catalog=catalog,
        ledger=ledger,
        scheduler=scheduler,
        notifier=notifier,
        penalties=penalties,
        logger=logging.getLogger("test"),
    )


@pytest.fixture
def button(
    sample_config: SpinWheelConfig,
    scheduler: ManualScheduler,
    notifier: Notifier,
    settings: RuntimeSettings,
) -> BigRedButton:
    return BigRedButton(
        sample_config.big_red_button, scheduler, notifier, settings, logging.getLogger("test"),
    )
