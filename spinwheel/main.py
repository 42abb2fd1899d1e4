"""Service orchestrator — SpinWheelApp.

config → runtime settings → scheduler → core components → bot → metrics → run.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from .bot import SpinWheelBot, WheelCommands
from .button import BigRedButton
from .catalog import PrizeCatalog
from .config import SpinWheelConfig, load_config
from .discord_effector import DiscordEffector
from .draw_engine import DrawEngine
from .effector import Effector, Notifier, RuntimeSettings
from .ledger import RewardLedger
from .metrics_server import SpinWheelMetricsServer
from .penalty_tracker import PenaltyTracker
from .scheduler import RevocationScheduler


class SpinWheelApp:
    """Top-level application orchestrator."""

    def __init__(self, config_path: str) -> None:
        self.config_path = Path(config_path)
        self.logger = logging.getLogger("spinwheel")

        # Components (initialized in start())
        self.config: SpinWheelConfig | None = None
        self.settings: RuntimeSettings | None = None
        self.scheduler: RevocationScheduler | None = None
        self.draw_engine: DrawEngine | None = None
        self.button: BigRedButton | None = None
        self.bot: SpinWheelBot | None = None
        self.metrics_server: SpinWheelMetricsServer | None = None

        self._start_time: float | None = None
        self._stopped = False

    @property
    def uptime_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        return time.time() - self._start_time

    def build_core(self, config: SpinWheelConfig, effector: Effector) -> None:
        """Construct the core components from a validated config."""
        self.config = config
        self.settings = RuntimeSettings(
            command_prefix=config.command_prefix,
            send_dms=config.send_dms,
        )
        self.scheduler = RevocationScheduler(logging.getLogger("spinwheel.scheduler"))

        catalog = PrizeCatalog.from_config(config.spin, logging.getLogger("spinwheel.catalog"))
        ledger = RewardLedger(catalog.names, logging.getLogger("spinwheel.ledger"))

        penalties = None
        if config.spin is not None and config.spin.penalty_enabled:
            penalties = PenaltyTracker(
                config.spin.penalty_reset_seconds,
                config.spin.spins_before_penalty,
                self.scheduler,
                logging.getLogger("spinwheel.penalty"),
            )

        self.draw_engine = DrawEngine(
            catalog=catalog,
            ledger=ledger,
            scheduler=self.scheduler,
            notifier=Notifier(effector, self.settings, logging.getLogger("spinwheel.draw")),
            penalties=penalties,
            enabled=config.spin_enabled,
            logger=logging.getLogger("spinwheel.draw"),
        )
        self.button = BigRedButton(
            config.big_red_button,
            self.scheduler,
            Notifier(effector, self.settings, logging.getLogger("spinwheel.button")),
            self.settings,
            logging.getLogger("spinwheel.button"),
        )

    async def start(self) -> None:
        """Load config, wire everything and run the bot until it closes."""
        self.logger.info("Starting spinwheel...")
        self._start_time = time.time()

        # 1. Load and validate config (ConfigError propagates to the CLI)
        config = load_config(str(self.config_path), logging.getLogger("spinwheel.config"))

        # 2. Bot shell first so the effector has a client to talk through
        self.bot = SpinWheelBot(RuntimeSettings(), logging.getLogger("spinwheel.bot"))
        effector = DiscordEffector(self.bot, logging.getLogger("spinwheel.discord"))

        # 3. Core
        self.build_core(config, effector)
        self.bot.settings = self.settings
        self.bot.attach(self.draw_engine, self.button)
        await self.bot.add_cog(WheelCommands(self.bot))

        # 4. Metrics
        if config.metrics.enabled:
            self.metrics_server = SpinWheelMetricsServer(
                self, config.metrics.host, config.metrics.port,
            )
            await self.metrics_server.start()

        # 5. Run
        await self.bot.start(config.bot_token)

    async def stop(self) -> None:
        """Graceful shutdown. Pending revocations run before the bot closes."""
        if self._stopped:
            return
        self._stopped = True
        self.logger.info("Stopping spinwheel...")
        if self.scheduler:
            await self.scheduler.stop()
        if self.metrics_server:
            await self.metrics_server.stop()
        if self.bot and not self.bot.is_closed():
            await self.bot.close()
        self.logger.info("spinwheel stopped")
