from __future__ import annotations

import sys
from pathlib import Path
from logging.config import fileConfig

from alembic import context

# Ensure backend/ is on sys.path so blogauth imports work.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from blogauth.config import settings  # noqa: E402
from blogauth.core.database import Base, engine  # noqa: E402

target_metadata = Base.metadata


def _get_url() -> str:
    """alembic.ini override wins, otherwise the application settings."""
    ini_url = config.get_main_option("sqlalchemy.url", default="")
    if not ini_url or ini_url.startswith("driver://"):
        ini_url = settings.get_database_url()
    return ini_url


def run_migrations_offline() -> None:
    context.configure(
        url=_get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
