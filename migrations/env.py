import importlib
import os
import pathlib
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))

from app import Base  # noqa: E402

# every module that declares tables must be imported before autogenerate
MODEL_MODULES = (
    "app.domains.users.models",
    "app.domains.wallet.models",
    "app.domains.plans.models",
    "app.domains.subscriptions.models",
    "app.domains.recharge.models",
    "app.domains.withdrawals.models",
    "app.domains.settings.models",
)
for module in MODEL_MODULES:
    importlib.import_module(module)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_url() -> str:
    """Alembic runs synchronously: swap async drivers for their blocking counterparts."""
    url = (
        os.environ.get("ALEMBIC_SYNC_DB_URL")
        or os.environ.get("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
    )
    return url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


config.set_main_option("sqlalchemy.url", sync_url())

COMPARE = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, **COMPARE)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
