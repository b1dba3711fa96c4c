"""
Command-line interface for lands-monitor.

Provides commands to run the monitoring API, evaluate a usage snapshot
against the alert thresholds, and inspect the configured thresholds.

Usage:
    lands-monitor serve                        # Run the API server
    lands-monitor evaluate --cost 42.5         # One-off threshold evaluation
    lands-monitor thresholds                   # List thresholds
"""

import asyncio
import json

import click

from src.alerts.triggers import BYTES_PER_GB
from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics

_SEVERITY_COLORS = {"critical": "red", "warning": "yellow", "info": "cyan"}


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Lands DB Monitoring - usage alerts and notifications."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the monitoring API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command()
@click.option("--cost", default=0.0, type=float, help="Month-to-date cost (USD)")
@click.option("--storage-gb", default=0.0, type=float, help="Database storage (GB)")
@click.option("--bandwidth-gb", default=0.0, type=float, help="Egress bandwidth (GB)")
@click.option("--mau", default=0.0, type=float, help="Monthly active users")
@click.option("--connections", default=0.0, type=float, help="Open database connections")
@click.option("--functions", default=0.0, type=float, help="Edge function invocations")
@click.option("--notify/--no-notify", default=False, help="Deliver webhooks and email")
@click.option("--as-json", is_flag=True, help="Print triggered alerts as JSON")
def evaluate(
    cost: float,
    storage_gb: float,
    bandwidth_gb: float,
    mau: float,
    connections: float,
    functions: float,
    notify: bool,
    as_json: bool,
) -> None:
    """Evaluate one usage snapshot against the thresholds."""
    from src.alerts.schemas import UsageMetrics
    from src.api.dependencies import cleanup_dependencies, get_alert_service

    metrics = UsageMetrics(
        cost=cost,
        storage=storage_gb * BYTES_PER_GB,
        bandwidth=bandwidth_gb * BYTES_PER_GB,
        mau=mau,
        connections=connections,
        functions=functions,
    )

    async def run():
        try:
            service = await get_alert_service()
            return await service.evaluate(metrics, notify=notify)
        finally:
            await cleanup_dependencies()

    events = asyncio.run(run())

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in events], indent=2))
        return

    if not events:
        click.echo(click.style("No thresholds triggered.", fg="green"))
        return

    click.echo(f"\n{len(events)} alert(s) triggered:")
    click.echo("-" * 60)
    for event in events:
        color = _SEVERITY_COLORS.get(event.severity, "white")
        click.echo(click.style(f"  [{event.severity.upper()}] {event.message}", fg=color))
    click.echo("-" * 60)


@main.command()
def thresholds() -> None:
    """List configured thresholds."""
    from src.api.dependencies import cleanup_dependencies, get_alert_service

    async def run():
        try:
            service = await get_alert_service()
            return await service.registry.list()
        finally:
            await cleanup_dependencies()

    items = asyncio.run(run())

    click.echo(f"\n{'ID':<24} {'METRIC':<12} {'RULE':<18} {'STATE':<8} NAME")
    click.echo("-" * 80)
    for t in items:
        rule = f"{t.operator} {t.value:g} {t.unit}"
        state = "on" if t.enabled else "off"
        click.echo(f"{t.id:<24} {t.metric:<12} {rule:<18} {state:<8} {t.name}")
    click.echo(f"\n{len(items)} threshold(s)")


if __name__ == "__main__":
    main()
