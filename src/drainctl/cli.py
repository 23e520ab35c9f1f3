import asyncio
import json
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from prometheus_client import start_http_server
from sqlalchemy import create_engine, text

from drain_client import PgConfigProvider, PgQueueClient, PgShuntGuard, PgStorageClient, open_pool
from drain_client.sql import QUEUE_TABLE
from queue_drain.coordinator import (
    DrainCoordinator,
    DrainCycle,
    DrainSettings,
    DrainTarget,
    FixedLoadProbe,
    LoadSampler,
    LoguruNotifier,
    PsutilLoadProbe,
    RunReport,
    get_settings,
)
from queue_drain.errors import DrainError

app = typer.Typer(help="Queue drain CLI (run, backlog, migrations)")


def _require_dsn(settings: DrainSettings) -> str:
    if not settings.database_url:
        logger.error("DRAIN_DATABASE_URL is not set")
        raise typer.Exit(code=1)
    return settings.database_url


def _sqlalchemy_url(dsn: str) -> str:
    # SQLAlchemy needs the psycopg (v3) dialect spelled out
    if dsn.startswith("postgresql://"):
        return "postgresql+psycopg://" + dsn[len("postgresql://") :]
    if dsn.startswith("postgres://"):
        return "postgresql+psycopg://" + dsn[len("postgres://") :]
    return dsn


def _resolve_targets(settings: DrainSettings, target: Optional[List[str]]) -> List[DrainTarget]:
    targets = [DrainTarget.parse(t) for t in target] if target else settings.drain_targets()
    if not targets:
        logger.error("No drain targets given (use --target or DRAIN_TARGETS)")
        raise typer.Exit(code=1)
    return targets


async def run_once(
    settings: DrainSettings,
    targets: List[DrainTarget],
    *,
    load: Optional[float] = None,
) -> RunReport:
    """One coordinator pass against Postgres."""
    pool = open_pool(
        _require_dsn(settings), pool_max=settings.pool_max, app_name=settings.coordinator_name
    )
    await pool.open()
    try:
        identity = {"server": settings.server_name, "worker": settings.worker_name}
        notifier = LoguruNotifier(identity)
        coord = DrainCoordinator(
            cycle=DrainCycle(
                PgQueueClient(pool, lease_seconds=settings.lease_seconds),
                PgStorageClient(pool),
                notifier=notifier,
            ),
            config=PgConfigProvider(pool),
            probe=FixedLoadProbe(load) if load is not None else PsutilLoadProbe(),
            shunt=PgShuntGuard(pool),
            sampler=LoadSampler(settings.load_threshold),
            notifier=notifier,
            name=settings.coordinator_name,
            batch_size_key=settings.batch_size_key,
            default_batch_size=settings.default_batch_size,
            server_name=settings.server_name,
            worker_name=settings.worker_name,
        )
        return await coord.run_all(targets)
    finally:
        await pool.close()


@app.command()
def run(
    server: str = typer.Option(None, "--server", help="Server name for log correlation"),
    worker: str = typer.Option(None, "--worker", help="Worker name for log correlation"),
    target: Optional[List[str]] = typer.Option(
        None, "--target", "-t", help="queue:table pair (repeatable); defaults to DRAIN_TARGETS"
    ),
    load: Optional[float] = typer.Option(
        None, "--load", help="Override the sampled 1-minute load average"
    ),
):
    """Drain every configured target once and print a JSON summary."""
    settings = get_settings()
    updates = {k: v for k, v in {"server_name": server, "worker_name": worker}.items() if v}
    if updates:
        settings = settings.model_copy(update=updates)
    targets = _resolve_targets(settings, target)

    if settings.metrics_port:
        start_http_server(settings.metrics_port)
        logger.info(f"Metrics exposed on :{settings.metrics_port}")

    try:
        report = asyncio.run(run_once(settings, targets, load=load))
    except DrainError as e:
        logger.error(f"Drain run failed: {type(e).__name__}: {e}")
        sys.exit(1)

    if report.skipped:
        logger.warning("Drain run skipped (shunt enabled)")
    else:
        logger.success(
            f"Drain run complete: saved={report.total_saved} failed={report.total_failed}"
        )
    typer.echo(json.dumps(report.as_dict(), indent=2))


@app.command()
def backlog(
    target: Optional[List[str]] = typer.Option(None, "--target", "-t", help="queue:table pair"),
):
    """Print the pending item count for each target queue."""
    settings = get_settings()
    targets = _resolve_targets(settings, target)
    try:
        engine = create_engine(_sqlalchemy_url(_require_dsn(settings)))
        counts = {}
        with engine.connect() as conn:
            for t in targets:
                result = conn.execute(
                    text(f"SELECT count(*) FROM {QUEUE_TABLE} WHERE queue_name = :queue"),
                    {"queue": t.queue},
                )
                counts[t.queue] = int(result.scalar() or 0)
        typer.echo(json.dumps(counts, indent=2))
    except typer.Exit:
        raise
    except Exception as e:
        logger.error(f"Failed to read backlog: {e}")
        sys.exit(1)


@app.command()
def migrate(
    target: str = typer.Argument("head", help="Alembic revision to upgrade to"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to alembic.ini; defaults to DRAIN_ALEMBIC_INI"
    ),
):
    """Run Alembic migrations for the queue and admin tables (default: head)."""
    ini = (config or Path(get_settings().alembic_ini)).resolve()
    if not ini.is_file():
        logger.error(f"Alembic config not found: {ini}")
        raise typer.Exit(code=1)

    logger.info(f"Running migrations to {target} using {ini}")
    try:
        # alembic resolves script_location against the working directory
        result = subprocess.run(
            ["alembic", "-c", str(ini), "upgrade", target],
            capture_output=True,
            text=True,
            cwd=ini.parent,
        )
    except OSError as e:
        logger.error(f"Failed to run migrations: {e}")
        sys.exit(1)

    if result.returncode != 0:
        logger.error(f"Migration failed: {result.stderr}")
        sys.exit(1)
    logger.success(f"Successfully migrated to {target}")
    if result.stdout:
        logger.info(f"Migration output: {result.stdout}")


if __name__ == "__main__":
    app()
