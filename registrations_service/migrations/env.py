import os
import sys
import asyncio
import logging
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Add the app directory to the Python path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

version_table = "alembic_version_registrations"

logger = logging.getLogger("alembic.env")

from app.models.base import Base
from app.models import event, registration, notification  # noqa: F401  registers tables
from app.core.config import config

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = Base.metadata


def include_object(object, name, type_, reflected, compare_to):
    """Only manage the tables this service's models define."""
    if type_ == "table":
        return name in target_metadata.tables
    return True


def get_database_url() -> str:
    """DATABASE_URL overrides the configured database."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    try:
        return asyncio.run(config.get_database_url())
    except Exception as e:
        logger.error(f"Failed to get database URL from config: {e}")
        raise EnvironmentError(f"Failed to get database URL from config: {e}")


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    context.configure(
        url=get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
        version_table=version_table,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    connectable = engine_from_config(
        {"sqlalchemy.url": get_database_url()},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
            version_table=version_table,
        )

        with context.begin_transaction():
            logger.info("Running registrations migrations...")
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
