"""Effector interface — the side effects the core asks the chat platform for.

The core never talks to the transport directly. It receives an
``Effector`` and an ``ActionContext`` describing who acted and where.
Every call is at-most-once: failures are logged and never retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ActionContext:
    """Who triggered an action, and in which guild/channel."""

    user_id: int
    user_name: str
    guild_id: int
    channel_id: int

    @property
    def mention(self) -> str:
        return f"<@{self.user_id}>"


@dataclass
class RuntimeSettings:
    """Mutable process settings shared by the core and the command layer."""

    command_prefix: str = "&"
    send_dms: bool = True


class Effector(Protocol):
    async def send_message(self, ctx: ActionContext, text: str) -> None: ...

    async def send_file(self, ctx: ActionContext, path: str) -> None: ...

    async def send_dm(self, ctx: ActionContext, text: str) -> None: ...

    async def grant_role(self, ctx: ActionContext, role_id: int) -> bool:
        """Add the role. False when the role or member cannot be found."""
        ...

    async def revoke_role(self, ctx: ActionContext, role_id: int) -> bool:
        """Remove the role. False when the role or member cannot be found."""
        ...

    async def silence(self, ctx: ActionContext) -> int | None:
        """Server-mute the user and park them in the AFK channel.

        Returns the voice channel they were in, or None.
        """
        ...

    async def unsilence(self, ctx: ActionContext, restore_channel_id: int | None) -> None: ...


async def guarded(
    call: Awaitable[T],
    default: T,
    logger: logging.Logger,
    what: str,
) -> T:
    """Await one effector call; log and swallow its failure."""
    try:
        return await call
    except Exception:
        logger.exception("Effector call failed: %s", what)
        return default


class Notifier:
    """Thin wrapper that routes all effector calls through ``guarded``."""

    def __init__(
        self,
        effector: Effector,
        settings: RuntimeSettings,
        logger: logging.Logger,
    ) -> None:
        self._effector = effector
        self._settings = settings
        self._logger = logger

    async def say(self, ctx: ActionContext, text: str) -> None:
        await guarded(self._effector.send_message(ctx, text), None, self._logger, "send_message")

    async def show_file(self, ctx: ActionContext, path: str | None) -> None:
        if not path:
            return
        await guarded(self._effector.send_file(ctx, path), None, self._logger, f"send_file {path}")

    async def dm(self, ctx: ActionContext, text: str) -> None:
        if not self._settings.send_dms:
            return
        await guarded(self._effector.send_dm(ctx, text), None, self._logger, "send_dm")

    async def grant_role(self, ctx: ActionContext, role_id: int) -> bool:
        return await guarded(self._effector.grant_role(ctx, role_id), False, self._logger, f"grant_role {role_id}")

    async def revoke_role(self, ctx: ActionContext, role_id: int) -> bool:
        return await guarded(self._effector.revoke_role(ctx, role_id), False, self._logger, f"revoke_role {role_id}")

    async def silence(self, ctx: ActionContext) -> int | None:
        return await guarded(self._effector.silence(ctx), None, self._logger, "silence")

    async def unsilence(self, ctx: ActionContext, restore_channel_id: int | None) -> None:
        await guarded(
            self._effector.unsilence(ctx, restore_channel_id), None, self._logger, "unsilence",
        )
