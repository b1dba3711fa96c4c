"""Tests for the lands-monitor CLI."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from src.alerts.config import AlertConfig
from src.alerts.registry import ThresholdRegistry
from src.alerts.service import AlertService
from src.cli import main


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep log lines out of the captured command output."""
    with patch("src.cli.setup_logging") as setup:
        yield setup


@pytest.fixture
def service():
    return AlertService(config=AlertConfig(), registry=ThresholdRegistry())


@pytest.fixture
def patched_service(service):
    """Route the CLI to an in-memory AlertService."""
    with patch("src.api.dependencies.get_alert_service", AsyncMock(return_value=service)), \
         patch("src.api.dependencies.cleanup_dependencies", AsyncMock()) as cleanup:
        yield cleanup


# ── evaluate ──────────────────────────────────────────────


class TestEvaluateCommand:
    def test_nothing_triggered(self, runner, patched_service):
        result = runner.invoke(main, ["evaluate", "--cost", "5"])

        assert result.exit_code == 0, result.output
        assert "No thresholds triggered." in result.output
        patched_service.assert_awaited_once()

    def test_cost_breach(self, runner, patched_service):
        result = runner.invoke(main, ["evaluate", "--cost", "35"])

        assert result.exit_code == 0, result.output
        assert "1 alert(s) triggered" in result.output
        assert "[WARNING] Monthly Cost Warning: 35.00 USD exceeds threshold of 30 USD" in result.output

    def test_storage_in_gb(self, runner, patched_service):
        result = runner.invoke(main, ["evaluate", "--storage-gb", "7", "--as-json"])

        assert result.exit_code == 0, result.output
        alerts = json.loads(result.output)
        assert [a["threshold_id"] for a in alerts] == ["storage-80"]
        assert alerts[0]["current_value"] == pytest.approx(7.0)

    def test_json_empty(self, runner, patched_service):
        result = runner.invoke(main, ["evaluate", "--as-json"])
        assert json.loads(result.output) == []

    def test_no_notify_by_default(self, runner, patched_service, service):
        with patch.object(service, "notify", AsyncMock()) as notify:
            runner.invoke(main, ["evaluate", "--cost", "55"])
        notify.assert_not_awaited()

    def test_notify_flag(self, runner, patched_service, service):
        with patch.object(service, "notify", AsyncMock()) as notify:
            result = runner.invoke(main, ["evaluate", "--cost", "55", "--notify"])

        assert result.exit_code == 0, result.output
        events = notify.call_args.args[0]
        assert {e.threshold_id for e in events} == {"cost-warning", "cost-critical"}


# ── thresholds ────────────────────────────────────────────


class TestThresholdsCommand:
    def test_lists_defaults(self, runner, patched_service):
        result = runner.invoke(main, ["thresholds"])

        assert result.exit_code == 0, result.output
        assert "cost-warning" in result.output
        assert "gt 6.4 GB" in result.output
        assert "7 threshold(s)" in result.output

    def test_disabled_shown_off(self, runner, patched_service, service):
        asyncio.run(service.registry.update("mau-warning", {"enabled": False}))

        result = runner.invoke(main, ["thresholds"])

        line = next(l for l in result.output.splitlines() if l.startswith("mau-warning"))
        assert " off " in line


class TestMainGroup:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("serve", "evaluate", "thresholds"):
            assert command in result.output

    def test_debug_flag_sets_level(self, runner, patched_service, no_logging_setup):
        runner.invoke(main, ["--debug", "thresholds"])
        no_logging_setup.assert_called_once_with("DEBUG")
