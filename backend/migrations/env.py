"""
Alembic Environment Configuration

This file configures how Alembic runs migrations.
It's set up to:
1. Read DATABASE_URL from environment variables
2. Import all ORM models for autogenerate support
3. Run against PostgreSQL in production and SQLite locally
4. Leave the CRM-owned tables (connections, columns, bot blocks) alone
"""
import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Add the backend directory to Python path so we can import our models
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ============================================
# IMPORT YOUR MODELS HERE
# This is required for autogenerate to detect schema changes
# ============================================
from app.shared.db.base import Base
from app.modules.column_triggers.models import (  # noqa: F401
    ColumnMessageTrigger,
    AutomatedMessageLog,
)

# Tables owned by the CRM itself; autogenerate must not try to create/drop them
EXTERNAL_TABLES = {"whatsapp_connections", "lead_columns", "contacto_bloqueado_bot"}

# This is the Alembic Config object
config = context.config


def to_sync_url(database_url: str) -> str:
    """Alembic runs on sync drivers: asyncpg -> psycopg2, aiosqlite -> sqlite3."""
    if database_url.startswith("sqlite+aiosqlite://"):
        return database_url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    if database_url.startswith("postgresql+asyncpg://"):
        return database_url.replace("postgresql+asyncpg://", "postgresql+psycopg2://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return database_url


DATABASE_URL = os.environ.get("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is not set!")

SYNC_DATABASE_URL = to_sync_url(DATABASE_URL)
config.set_main_option("sqlalchemy.url", SYNC_DATABASE_URL)

# SQLite cannot ALTER most constraints in place
RENDER_AS_BATCH = SYNC_DATABASE_URL.startswith("sqlite")

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def include_object(obj, name, type_, reflected, compare_to):
    """Skip tables this service only reads."""
    if type_ == "table" and name in EXTERNAL_TABLES:
        return False
    return True


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    This generates SQL scripts without connecting to the database.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        render_as_batch=RENDER_AS_BATCH,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode.

    This connects to the database and executes migrations directly.
    """
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
            compare_type=True,
            render_as_batch=RENDER_AS_BATCH,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
