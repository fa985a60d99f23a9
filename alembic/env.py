from logging.config import fileConfig
import os

from alembic import context
from sqlalchemy import create_engine

from db.models import Base

database_url = os.getenv("DATABASE_URL", "sqlite:///./checkout.db")
debug = os.getenv("DEBUG", "false").lower() == "true"

# this is the Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", database_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    if database_url.startswith("postgresql"):
        connectable = create_engine(
            database_url, echo=debug, future=True, pool_pre_ping=True
        )
    else:
        connectable = create_engine(database_url, echo=debug, future=True)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
