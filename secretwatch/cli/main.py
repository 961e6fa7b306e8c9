"""Click command group for secretwatch.

Commands:
    run        -- Run the operator (watch, reconcile, serve probes and metrics).
    demo       -- Serve the demo password page.
    reconcile  -- Run one reconciliation pass and print the report as JSON.
"""

from __future__ import annotations

import asyncio
import json
import sys

import click

from secretwatch.config import load_config
from secretwatch.models.resources import SecretIdentity


def _parse_identity(_ctx: click.Context, _param: click.Parameter, value: str) -> SecretIdentity:
    try:
        return SecretIdentity.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


@click.group()
@click.version_option(package_name="secretwatch")
def cli() -> None:
    """Monitor Secret rotation and the readiness of consuming workloads."""


@cli.command()
def run() -> None:
    """Run the operator until SIGTERM or SIGINT."""
    from secretwatch.app import main

    asyncio.run(main())


@cli.command()
@click.option("--port", type=int, default=None, help="Listen port (default: SECRETWATCH_DEMO_PORT).")
@click.option("--secret-path", default=None, help="Password file (default: SECRETWATCH_DEMO_SECRET_PATH).")
def demo(port: int | None, secret_path: str | None) -> None:
    """Serve the contents of a mounted password file."""
    import uvicorn

    from secretwatch.demo import create_demo_app
    from secretwatch.observability.logging import get_logger, setup_logging
    from secretwatch.observability.metrics import PrometheusMetrics

    config = load_config()
    setup_logging(config.log.level)
    port = port or config.demo.port
    secret_path = secret_path or config.demo.secret_path

    get_logger("demo").info("demo server running", port=port, secret_path=secret_path)
    app = create_demo_app(secret_path, PrometheusMetrics())
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=None, access_log=False)


@cli.command()
@click.argument("secret", callback=_parse_identity, metavar="NAMESPACE/NAME")
def reconcile(secret: SecretIdentity) -> None:
    """Run one reconciliation pass for SECRET and print the report."""
    from secretwatch.reconcile.driver import ReconcileError

    try:
        report = asyncio.run(_reconcile_once(secret))
    except ReconcileError as exc:
        click.echo(f"reconcile failed at {exc.stage}: {exc.cause}", err=True)
        sys.exit(1)
    click.echo(json.dumps(report, indent=2))


async def _reconcile_once(identity: SecretIdentity) -> dict[str, object]:
    from secretwatch.app import build_driver, create_api_client
    from secretwatch.observability.logging import setup_logging
    from secretwatch.observability.metrics import PrometheusMetrics

    config = load_config()
    setup_logging(config.log.level, json_output=False)
    api_client = await create_api_client()
    try:
        driver = build_driver(config, api_client, PrometheusMetrics())
        report = await driver.reconcile(identity)
    finally:
        await api_client.close()
    return report.to_dict()
