"""Alembic environment for the OfficeHub schema.

The database comes from ``DATABASE_URL`` (loaded from ``.env``); online runs
reuse :func:`officehub.database.engine.create_db_engine`, so SQLite
development databases migrate with foreign keys enforced.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

from alembic import context

load_dotenv()

from officehub.database.engine import create_db_engine  # noqa: E402
from officehub.database.models import Base  # noqa: E402

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL for ``DATABASE_URL`` without connecting."""
    context.configure(
        url=os.getenv("DATABASE_URL"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_db_engine()
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, target_metadata=target_metadata)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
