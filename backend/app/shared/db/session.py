import logging
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.shared.core.config import settings
from app.shared.core.constants import DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_RECYCLE

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL


def _engine_options(database_url: str) -> dict:
    """
    Engine options per backend.

    PostgreSQL goes through the Supabase transaction pooler (PgBouncer), which
    cannot use prepared statements, so both statement caches are disabled.
    SQLite (local development, tests) gets no pool tuning.
    """
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_recycle": DB_POOL_RECYCLE,
        "connect_args": {
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0
        }
    }


engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))


def configure_sqlite_engine(async_engine) -> None:
    """
    Make SQLite behave like the production database.

    - foreign_keys=ON: ON DELETE SET NULL is ignored otherwise
    - driver-level transaction handling disabled and BEGIN emitted by
      SQLAlchemy, so SAVEPOINTs (begin_nested) nest inside a real transaction
    """
    @event.listens_for(async_engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(async_engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


if DATABASE_URL.startswith("sqlite"):
    configure_sqlite_engine(engine)

# Session Factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

logger.info("Database engine initialized (%s)", engine.url.get_backend_name())


async def get_db():
    """Dependency for FastAPI routes to get a DB session"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_models() -> None:
    """
    Create tables directly from the ORM metadata.
    Only for local SQLite development; PostgreSQL schemas are managed by Alembic.
    """
    from app.shared.db.base import Base
    import app.modules.column_triggers.models  # noqa: F401  (registers tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("SQLite schema created from ORM metadata")
