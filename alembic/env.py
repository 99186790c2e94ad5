"""
Migration environment for fleetdesk.

The database URL comes from fleetdesk.config (environment or .env), never
from alembic.ini, and every model is imported so autogenerate sees the full
schema. The overlap exclusion constraint is Postgres-only and lives in the
migrations, so autogenerate is told to leave it alone.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from fleetdesk.config import settings
from fleetdesk.database import Base
from fleetdesk.models.booking import OVERLAP_CONSTRAINT
import fleetdesk.models  # noqa: F401  registers every table on Base.metadata

config = context.config
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def include_object(obj, name, type_, reflected, compare_to):
    return not (type_ == "constraint" and name == OVERLAP_CONSTRAINT)


COMPARE_OPTIONS = {
    "target_metadata":        Base.metadata,
    "compare_type":           True,
    "compare_server_default": True,
    "include_object":         include_object,
}


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of touching a database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **COMPARE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
