"""Tests for the metrics and health endpoint."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from spinwheel.button import BigRedButton
from spinwheel.draw_engine import DrawEngine
from spinwheel.metrics_server import SpinWheelMetricsServer

from tests.conftest import ManualScheduler, make_ctx


def _fake_app(draw_engine=None, button=None, scheduler=None, ready=True) -> MagicMock:
    app = MagicMock()
    app.bot.is_ready.return_value = ready
    app.uptime_seconds = 12.34
    app.draw_engine = draw_engine
    app.button = button
    app.scheduler = scheduler
    return app


class TestCollectMetrics:

    @pytest.mark.asyncio
    async def test_counters_and_gauges(
        self, draw_engine: DrawEngine, button: BigRedButton, scheduler: ManualScheduler,
    ):
        await draw_engine.give_prize(make_ctx(1), draw_engine.lookup_prize("Golden Crown"))
        await button.show(make_ctx(2))
        await button.press(make_ctx(2))

        server = SpinWheelMetricsServer(_fake_app(draw_engine, button, scheduler))
        lines = server.collect_metrics()

        assert "spinwheel_spins_total 0" in lines
        assert "spinwheel_prizes_granted_total 1" in lines
        assert "spinwheel_consolations_total 0" in lines
        assert "spinwheel_button_activations_total 1" in lines
        assert "spinwheel_button_presses_total 1" in lines
        assert 'spinwheel_prize_holders{prize="Golden Crown"} 1' in lines
        assert 'spinwheel_prize_holders{prize="Consolation Prize"} 0' in lines
        assert "spinwheel_button_active 1" in lines
        assert "spinwheel_button_holders 1" in lines
        assert f"spinwheel_pending_tasks {scheduler.pending}" in lines

    def test_empty_app(self):
        server = SpinWheelMetricsServer(_fake_app())
        assert server.collect_metrics() == []

    @pytest.mark.asyncio
    async def test_metrics_handler(self, draw_engine: DrawEngine):
        server = SpinWheelMetricsServer(_fake_app(draw_engine=draw_engine))
        response = await server.handle_metrics(MagicMock())
        assert response.content_type == "text/plain"
        assert "spinwheel_spins_total 0" in response.text


class TestHealth:

    def test_health_details(self, draw_engine: DrawEngine, button: BigRedButton, scheduler):
        server = SpinWheelMetricsServer(_fake_app(draw_engine, button, scheduler))
        details = server.health_details()
        assert details == {
            "status": "healthy",
            "bot_ready": True,
            "uptime_seconds": 12.3,
            "spin_enabled": True,
            "button_phase": "inactive",
            "pending_tasks": 0,
        }

    @pytest.mark.asyncio
    async def test_health_handler_starting(self):
        server = SpinWheelMetricsServer(_fake_app(ready=False))
        response = await server.handle_health(MagicMock())
        body = json.loads(response.text)
        assert body["status"] == "starting"
        assert body["button_phase"] == "disabled"
