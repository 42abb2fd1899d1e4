"""Effector implementation backed by a discord.py client."""

from __future__ import annotations

import logging

import discord

from .effector import ActionContext


class DiscordEffector:
    """Performs core side effects against the Discord API."""

    def __init__(self, client: discord.Client, logger: logging.Logger | None = None) -> None:
        self._client = client
        self._logger = logger or logging.getLogger("spinwheel.discord")

    # ── Lookups ──────────────────────────────────────────────

    async def _member(self, ctx: ActionContext) -> discord.Member | None:
        guild = self._client.get_guild(ctx.guild_id)
        if guild is None:
            self._logger.warning("Guild %s not found", ctx.guild_id)
            return None
        if member := guild.get_member(ctx.user_id):
            return member
        try:
            return await guild.fetch_member(ctx.user_id)
        except (discord.NotFound, discord.HTTPException):
            self._logger.warning("Member %s not found in guild %s", ctx.user_id, ctx.guild_id)
            return None

    def _channel(self, ctx: ActionContext) -> discord.abc.Messageable | None:
        channel = self._client.get_channel(ctx.channel_id)
        if channel is None:
            self._logger.warning("Channel %s not found", ctx.channel_id)
        return channel

    # ── Messages ─────────────────────────────────────────────

    async def send_message(self, ctx: ActionContext, text: str) -> None:
        if channel := self._channel(ctx):
            await channel.send(text)

    async def send_file(self, ctx: ActionContext, path: str) -> None:
        if channel := self._channel(ctx):
            await channel.send(file=discord.File(path))

    async def send_dm(self, ctx: ActionContext, text: str) -> None:
        member = await self._member(ctx)
        if member is None:
            return
        try:
            await member.send(text)
        except discord.Forbidden as exc:
            self._logger.info("%s has DMs off, message will not be sent to them", ctx.user_name)
            self._logger.debug("DM refused: %s", exc)

    # ── Roles ────────────────────────────────────────────────

    async def grant_role(self, ctx: ActionContext, role_id: int) -> bool:
        member = await self._member(ctx)
        if member is None:
            return False
        role = member.guild.get_role(role_id)
        if role is None:
            return False
        await member.add_roles(role, reason="Spin the wheel prize")
        return True

    async def revoke_role(self, ctx: ActionContext, role_id: int) -> bool:
        member = await self._member(ctx)
        if member is None:
            return False
        role = member.guild.get_role(role_id)
        if role is None:
            return False
        await member.remove_roles(role, reason="Spin the wheel prize expired")
        return True

    # ── Voice ────────────────────────────────────────────────

    async def silence(self, ctx: ActionContext) -> int | None:
        member = await self._member(ctx)
        if member is None or member.voice is None or member.voice.channel is None:
            self._logger.debug("%s is not in a voice channel and will not be muted.", ctx.user_name)
            return None

        previous = member.voice.channel
        afk_channel = member.guild.afk_channel
        if afk_channel is None:
            self._logger.warning(
                "AFK channel doesn't exist, silence may not work as expected for voice chats.",
            )
            await member.edit(mute=True)
        else:
            await member.edit(mute=True, voice_channel=afk_channel)
        self._logger.debug("%s muted and moved out of %s", ctx.user_name, previous.name)
        return previous.id

    async def unsilence(self, ctx: ActionContext, restore_channel_id: int | None) -> None:
        member = await self._member(ctx)
        if member is None or member.voice is None:
            self._logger.debug(
                "%s was not in a voice channel, no voice settings were altered.", ctx.user_name,
            )
            return

        restore = member.guild.get_channel(restore_channel_id) if restore_channel_id else None
        if isinstance(restore, discord.VoiceChannel):
            await member.edit(mute=False, voice_channel=restore)
        else:
            await member.edit(mute=False)
