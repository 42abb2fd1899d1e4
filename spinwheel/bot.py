"""Discord command layer — prefix commands that drive the core."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from .effector import ActionContext, RuntimeSettings

if TYPE_CHECKING:
    from .button import BigRedButton
    from .draw_engine import DrawEngine

HELP_COLOR = discord.Color.from_rgb(114, 137, 218)


# ═══════════════════════════════════════════════════════════════
#  Checks
# ═══════════════════════════════════════════════════════════════


class SpinDisabled(commands.CheckFailure):
    pass


class ButtonDisabled(commands.CheckFailure):
    pass


class ButtonInactive(commands.CheckFailure):
    pass


def spin_enabled():
    async def predicate(ctx: commands.Context) -> bool:
        if ctx.bot.draw_engine is None or not ctx.bot.draw_engine.enabled:
            raise SpinDisabled("Spin function is not enabled")
        return True

    return commands.check(predicate)


def button_enabled():
    async def predicate(ctx: commands.Context) -> bool:
        if ctx.bot.button is None or not ctx.bot.button.enabled:
            raise ButtonDisabled("Big Red Button is not enabled")
        return True

    return commands.check(predicate)


def button_active():
    async def predicate(ctx: commands.Context) -> bool:
        if not ctx.bot.button.active:
            raise ButtonInactive("Big Red Button is not active")
        return True

    return commands.check(predicate)


def action_context(ctx: commands.Context, member: discord.abc.User | None = None) -> ActionContext:
    user = member or ctx.author
    return ActionContext(
        user_id=user.id,
        user_name=user.name,
        guild_id=ctx.guild.id,
        channel_id=ctx.channel.id,
    )


# ═══════════════════════════════════════════════════════════════
#  Bot
# ═══════════════════════════════════════════════════════════════


class SpinWheelBot(commands.Bot):
    """commands.Bot whose prefix follows ``RuntimeSettings``."""

    def __init__(self, settings: RuntimeSettings, logger: logging.Logger | None = None) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.voice_states = True

        super().__init__(
            command_prefix=lambda bot, _message: bot.settings.command_prefix,
            intents=intents,
            help_command=None,
        )
        self.settings = settings
        self.log = logger or logging.getLogger("spinwheel.bot")
        self.draw_engine: DrawEngine | None = None
        self.button: BigRedButton | None = None

    def attach(self, draw_engine: DrawEngine, button: BigRedButton) -> None:
        self.draw_engine = draw_engine
        self.button = button

    async def on_ready(self) -> None:
        self.log.info("%s connected", self.user)
        self.log.info("Initialization complete! Accepting commands...")

    async def on_command_completion(self, ctx: commands.Context) -> None:
        self.log.info("%s performed command %s in %s", ctx.author, ctx.command.name, ctx.channel)

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.CommandNotFound):
            self.log.debug("%s attempted invalid command %s in %s", ctx.author, ctx.message.content, ctx.channel)
            await ctx.send(f"Unknown command {ctx.message.content}")
            return

        name = ctx.command.name if ctx.command else "?"
        self.log.warning("Failed to execute command %s from %s in %s", name, ctx.author, ctx.channel)
        self.log.warning("Error: %s", error)

        if isinstance(error, SpinDisabled):
            await ctx.send("The Spin function is not enabled!")
        elif isinstance(error, ButtonDisabled):
            await ctx.send("The Big Red Button is not enabled!")
        elif isinstance(error, ButtonInactive):
            await ctx.send(
                f"The Big Red Button is not active! Use {self.settings.command_prefix}bigredbutton to activate",
            )
        elif isinstance(error, commands.NoPrivateMessage):
            await ctx.send("You must be in a guild to use this command!")
        elif isinstance(error, commands.MissingPermissions):
            await ctx.send("You do not have permission to use this command!")
        elif isinstance(error, (commands.MemberNotFound, commands.UserNotFound, commands.ChannelNotFound)):
            await ctx.send("Command failed. User/Channel not found.")
        elif isinstance(error, (commands.MissingRequiredArgument, commands.TooManyArguments, commands.BadArgument)):
            await ctx.send("Invalid syntax for command!")
        elif isinstance(error, commands.CommandInvokeError) and isinstance(error.original, discord.Forbidden):
            await ctx.send("You must enable DMs in your profile to run this command!")
        else:
            self.log.error("Unhandled command error", exc_info=error)


# ═══════════════════════════════════════════════════════════════
#  Commands
# ═══════════════════════════════════════════════════════════════


class WheelCommands(commands.Cog, name="base"):
    def __init__(self, bot: SpinWheelBot) -> None:
        self.bot = bot

    @commands.command(name="help", help="Prints usage of the bot")
    @commands.guild_only()
    async def help(self, ctx: commands.Context) -> None:
        prefix = self.bot.settings.command_prefix
        lines: list[str] = []
        for cmd in sorted(self.bot.commands, key=lambda c: c.name):
            try:
                if not await cmd.can_run(ctx):
                    continue
            except commands.CommandError:
                continue
            params = "".join(f" <{p}>" for p in cmd.clean_params)
            lines.append(f"{prefix}{cmd.name}{params} - {cmd.help}")

        embed = discord.Embed(color=HELP_COLOR, description="These are the commands you can use")
        embed.add_field(name="base", value="\n".join(lines) or "-", inline=False)
        await ctx.author.send(embed=embed)
        await ctx.send("Help documentation has been sent to you via DM")

    @commands.command(name="change-prefix", help="Allows changing of the default command prefix")
    @commands.guild_only()
    @commands.has_permissions(administrator=True)
    async def change_prefix(self, ctx: commands.Context, prefix: str) -> None:
        self.bot.settings.command_prefix = prefix
        await ctx.send(f"The new command prefix is {prefix}")
        self.bot.log.info("%s changed the command prefix to %s", ctx.author, prefix)

    @commands.command(name="spin", help="Spins the wheel!")
    @commands.guild_only()
    @spin_enabled()
    async def spin(self, ctx: commands.Context) -> None:
        await self.bot.draw_engine.spin(action_context(ctx))

    @commands.command(name="prizes", help="Displays available prizes!")
    @commands.guild_only()
    @spin_enabled()
    async def prizes(self, ctx: commands.Context) -> None:
        await ctx.send(self.bot.draw_engine.prize_list())

    @commands.command(name="test-prize", help="Simulates the specified user winning the specified prize")
    @commands.guild_only()
    @spin_enabled()
    @commands.has_permissions(administrator=True)
    async def test_prize(self, ctx: commands.Context, member: discord.Member, *, prize_name: str) -> None:
        prize = self.bot.draw_engine.lookup_prize(prize_name)
        if prize is None:
            self.bot.log.warning("Prize %s not found for test by %s", prize_name, ctx.author)
            await ctx.send(f"No prize named {prize_name}")
            return
        await self.bot.draw_engine.give_prize(action_context(ctx, member), prize)

    @commands.command(name="bigredbutton", help="Activates the Big Red Button")
    @commands.guild_only()
    @button_enabled()
    async def big_red_button(self, ctx: commands.Context) -> None:
        if not await self.bot.button.show(action_context(ctx)):
            await ctx.send("The Big Red Button is already active!")

    @commands.command(name="SMASH", help="Pushes the Big Red Button!!!!")
    @commands.guild_only()
    @button_enabled()
    @button_active()
    async def smash(self, ctx: commands.Context) -> None:
        await self.bot.button.press(action_context(ctx))

    @commands.command(name="test-button", help="Simulates the specified user pressing the button")
    @commands.guild_only()
    @button_enabled()
    @commands.has_permissions(administrator=True)
    async def test_button(self, ctx: commands.Context, member: discord.Member) -> None:
        await self.bot.button.give_role(action_context(ctx, member))
