import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

# -------------------------------------------------
# Load environment variables from .env automatically
# -------------------------------------------------
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

# -------------------------------------------------
# Import models and database setup
# -------------------------------------------------
from cinebook.database import models, payment_models  # noqa: E402,F401
from cinebook.database.database import SQLALCHEMY_DATABASE_URL, Base  # noqa: E402

# Alembic Config object
config = context.config

# Setup logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for autogenerate
target_metadata = Base.metadata

database_url = os.getenv("DATABASE_URL") or SQLALCHEMY_DATABASE_URL
config.set_main_option("sqlalchemy.url", database_url)


# -------------------------------------------------
# Migration functions
# -------------------------------------------------
def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
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
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
