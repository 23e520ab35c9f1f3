from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from drainctl.cli import _sqlalchemy_url
from queue_drain.coordinator.settings import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Raw-SQL migrations; no ORM metadata
target_metadata = None


def _resolve_database_url() -> str:
    """`-x db_url=...` override, then sqlalchemy.url from alembic.ini, then DRAIN_DATABASE_URL."""
    x_args = context.get_x_argument(as_dictionary=True)
    url = x_args.get("db_url") or (config.get_main_option("sqlalchemy.url") or "").strip()
    if not url:
        url = get_settings().database_url or ""
    if not url.startswith("postgres"):
        raise RuntimeError("Alembic is configured for PostgreSQL URLs only.")
    return _sqlalchemy_url(url)


def run_migrations_offline() -> None:
    context.configure(
        url=_resolve_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _resolve_database_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
