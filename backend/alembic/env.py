"""
Alembic environment for the trip booking schema.

Migrations run over the synchronous psycopg2 driver (DATABASE_URL_SYNC),
separately from the asyncpg engine the service uses. Besides the tables,
the migrations own the plpgsql create_booking function, which autogenerate
cannot see; keep it in hand-written revisions.
"""

from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from app.db.base import Base
from app.models import Trip, Booking, Participant, Agreement, PaymentHistory  # noqa: F401 - register tables on Base.metadata
from app.core.config import get_settings

config = context.config
settings = get_settings()

# alembic.ini carries no URL; use the one the service is configured with
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL_SYNC)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the trips/bookings DDL as SQL for review by a DBA."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
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
        # compare_type catches widened seat/price columns in autogenerate
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
