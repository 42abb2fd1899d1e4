"""Tests for DiscordEffector against mocked discord.py objects."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from spinwheel.discord_effector import DiscordEffector

from tests.conftest import CHANNEL_ID, GUILD_ID, make_ctx


def _member(voice_channel=None, afk_channel=None) -> MagicMock:
    member = MagicMock()
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    member.edit = AsyncMock()
    member.send = AsyncMock()
    if voice_channel is None:
        member.voice = None
    else:
        member.voice.channel = voice_channel
    member.guild.afk_channel = afk_channel
    return member


def _client(member: MagicMock | None) -> MagicMock:
    guild = MagicMock()
    guild.get_member.return_value = member
    guild.fetch_member = AsyncMock(
        side_effect=discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member"),
    )
    client = MagicMock()
    client.get_guild.return_value = guild
    channel = MagicMock()
    channel.send = AsyncMock()
    client.get_channel.return_value = channel
    return client


def _voice(channel_id: int) -> MagicMock:
    channel = MagicMock(spec=discord.VoiceChannel)
    channel.id = channel_id
    channel.name = f"voice-{channel_id}"
    return channel


class TestMessages:

    @pytest.mark.asyncio
    async def test_send_message(self):
        client = _client(_member())
        await DiscordEffector(client).send_message(make_ctx(1), "hello")
        client.get_channel.assert_called_once_with(CHANNEL_ID)
        client.get_channel.return_value.send.assert_awaited_once_with("hello")

    @pytest.mark.asyncio
    async def test_missing_channel_is_skipped(self):
        client = _client(_member())
        client.get_channel.return_value = None
        await DiscordEffector(client).send_message(make_ctx(1), "hello")

    @pytest.mark.asyncio
    async def test_dm(self):
        member = _member()
        await DiscordEffector(_client(member)).send_dm(make_ctx(1), "bye")
        member.send.assert_awaited_once_with("bye")

    @pytest.mark.asyncio
    async def test_dm_forbidden_is_swallowed(self):
        member = _member()
        member.send.side_effect = discord.Forbidden(
            MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user",
        )
        await DiscordEffector(_client(member)).send_dm(make_ctx(1), "bye")


class TestRoles:

    @pytest.mark.asyncio
    async def test_grant_role(self):
        member = _member()
        role = MagicMock()
        member.guild.get_role.return_value = role
        client = _client(member)

        assert await DiscordEffector(client).grant_role(make_ctx(1), 77) is True
        client.get_guild.assert_called_once_with(GUILD_ID)
        member.guild.get_role.assert_called_once_with(77)
        member.add_roles.assert_awaited_once()
        assert member.add_roles.await_args.args == (role,)

    @pytest.mark.asyncio
    async def test_grant_missing_role(self):
        member = _member()
        member.guild.get_role.return_value = None
        assert await DiscordEffector(_client(member)).grant_role(make_ctx(1), 77) is False
        member.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_member(self):
        client = _client(None)
        assert await DiscordEffector(client).grant_role(make_ctx(1), 77) is False
        assert await DiscordEffector(client).revoke_role(make_ctx(1), 77) is False

    @pytest.mark.asyncio
    async def test_revoke_role(self):
        member = _member()
        member.guild.get_role.return_value = MagicMock()
        assert await DiscordEffector(_client(member)).revoke_role(make_ctx(1), 77) is True
        member.remove_roles.assert_awaited_once()


class TestVoice:

    @pytest.mark.asyncio
    async def test_silence_moves_to_afk(self):
        afk = _voice(1)
        member = _member(voice_channel=_voice(555), afk_channel=afk)
        previous = await DiscordEffector(_client(member)).silence(make_ctx(1))
        assert previous == 555
        member.edit.assert_awaited_once_with(mute=True, voice_channel=afk)

    @pytest.mark.asyncio
    async def test_silence_without_afk_only_mutes(self):
        member = _member(voice_channel=_voice(555))
        assert await DiscordEffector(_client(member)).silence(make_ctx(1)) == 555
        member.edit.assert_awaited_once_with(mute=True)

    @pytest.mark.asyncio
    async def test_silence_not_in_voice(self):
        member = _member()
        assert await DiscordEffector(_client(member)).silence(make_ctx(1)) is None
        member.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsilence_moves_back(self):
        member = _member(voice_channel=_voice(1))
        restore = _voice(555)
        member.guild.get_channel.return_value = restore
        await DiscordEffector(_client(member)).unsilence(make_ctx(1), 555)
        member.guild.get_channel.assert_called_once_with(555)
        member.edit.assert_awaited_once_with(mute=False, voice_channel=restore)

    @pytest.mark.asyncio
    async def test_unsilence_without_restore(self):
        member = _member(voice_channel=_voice(1))
        await DiscordEffector(_client(member)).unsilence(make_ctx(1), None)
        member.edit.assert_awaited_once_with(mute=False)

    @pytest.mark.asyncio
    async def test_unsilence_left_voice(self):
        member = _member()
        await DiscordEffector(_client(member)).unsilence(make_ctx(1), 555)
        member.edit.assert_not_awaited()
