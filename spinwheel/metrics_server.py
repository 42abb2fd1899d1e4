"""Prometheus metrics and health endpoint for spinwheel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

if TYPE_CHECKING:
    from .main import SpinWheelApp


class SpinWheelMetricsServer:
    """Serves ``/health`` (JSON) and ``/metrics`` (Prometheus text)."""

    def __init__(
        self,
        app: SpinWheelApp,
        host: str = "0.0.0.0",
        port: int = 28290,
        logger: logging.Logger | None = None,
    ) -> None:
        self._app = app
        self.host = host
        self.port = port
        self._logger = logger or logging.getLogger("spinwheel.metrics")
        self.web_app = web.Application()
        self.web_app.router.add_get("/health", self.handle_health)
        self.web_app.router.add_get("/metrics", self.handle_metrics)
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        self._runner = web.AppRunner(self.web_app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        self._logger.info("Metrics server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._logger.info("Metrics server stopped")

    # ── Handlers ─────────────────────────────────────────────

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response(self.health_details())

    async def handle_metrics(self, request: web.Request) -> web.Response:
        body = "\n".join(self.collect_metrics()) + "\n"
        return web.Response(text=body, content_type="text/plain")

    # ── Collection ───────────────────────────────────────────

    def health_details(self) -> dict:
        app = self._app
        ready = bool(app.bot and app.bot.is_ready())
        return {
            "status": "healthy" if ready else "starting",
            "bot_ready": ready,
            "uptime_seconds": round(app.uptime_seconds, 1),
            "spin_enabled": bool(app.draw_engine and app.draw_engine.enabled),
            "button_phase": app.button.phase.value if app.button else "disabled",
            "pending_tasks": app.scheduler.pending if app.scheduler else 0,
        }

    def collect_metrics(self) -> list[str]:
        app = self._app
        lines: list[str] = []

        # ── Counters ─────────────────────────────────────────
        if app.draw_engine:
            lines.append(f"spinwheel_spins_total {app.draw_engine.metrics_spins}")
            lines.append(f"spinwheel_prizes_granted_total {app.draw_engine.metrics_prizes_granted}")
            lines.append(f"spinwheel_consolations_total {app.draw_engine.metrics_consolations}")
        if app.button:
            lines.append(f"spinwheel_button_activations_total {app.button.metrics_activations}")
            lines.append(f"spinwheel_button_presses_total {app.button.metrics_presses}")

        # ── Gauges ───────────────────────────────────────────
        if app.draw_engine:
            for prize, count in app.draw_engine.ledger.counts().items():
                escaped = prize.replace("\\", "\\\\").replace('"', '\\"')
                lines.append(f'spinwheel_prize_holders{{prize="{escaped}"}} {count}')
        if app.button:
            lines.append(f"spinwheel_button_active {int(app.button.active)}")
            lines.append(f"spinwheel_button_holders {len(app.button.holders)}")
        if app.scheduler:
            lines.append(f"spinwheel_pending_tasks {app.scheduler.pending}")

        return lines
