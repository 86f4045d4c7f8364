"""Alembic env.py for card analysis migrations."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

from card_analysis.config import settings

# Import models to register them with SQLModel.metadata
from card_analysis.models.analysis_job import AnalysisJob  # noqa: F401
from card_analysis.models.card_analysis import CardAnalysis  # noqa: F401

# Alembic Config object
config = context.config

# Set database URL from settings (convert asyncpg to psycopg2 for sync migrations)
sync_url = settings.database_url.replace("postgresql+asyncpg://", "postgresql://")
config.set_main_option("sqlalchemy.url", sync_url)

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The cards table belongs to the content store and is not migrated here
target_metadata = SQLModel.metadata


def include_object(object, name, type_, reflected, compare_to):
    return not (type_ == "table" and name == "cards")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
