"""
Alembic Migration Environment
=============================

What:  Applies the DentalHub schema (users, forum, cases, notifications,
       activity) to the database named by ``DATABASE_URL``.
How:   Online runs open an asyncpg/aiosqlite connection with the same
       driver the API uses and hand it to Alembic through ``run_sync``.
       Offline runs (``--sql``) render the DDL for a DBA to review.
Who:   ``alembic upgrade head`` / ``alembic downgrade -1`` from backend/.

Notes:
    - The URL comes from DentalHub settings and never from alembic.ini.
      It is not copied into the ini config either, because configparser
      would treat a ``%`` in the password as interpolation syntax.
    - Against SQLite, operations run in batch mode (copy-and-move) since
      SQLite cannot ALTER most column properties in place.
"""

import asyncio
import logging
from logging.config import fileConfig
from typing import Any, Dict

from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from alembic import context

from dentalhub.config import settings
from dentalhub.database import Base

# Registers every table on Base.metadata for --autogenerate
import dentalhub.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env.dentalhub")


def _migration_options() -> Dict[str, Any]:
    return {
        "target_metadata": Base.metadata,
        # Enum and Text/String changes show up in --autogenerate diffs
        "compare_type": True,
        "render_as_batch": settings.is_sqlite,
    }


def _safe_url() -> str:
    return make_url(settings.database_url).render_as_string(hide_password=True)


def run_migrations_offline() -> None:
    logger.info("Rendering migration SQL for %s", _safe_url())
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_migration_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **_migration_options())
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    logger.info("Migrating %s", _safe_url())
    # One short-lived connection; the API's pool settings do not apply here
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
