from typing import Any, AsyncGenerator, Dict
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from app.core.config import settings
from app.core.logging import db_logger
from app.models import Base

def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool and connect options for the configured backend."""
    if database_url.startswith("sqlite"):
        # sqlite3 busy timeout: concurrent writers wait on the database lock
        # instead of failing immediately
        return {
            "connect_args": {"timeout": settings.STORE_TIMEOUT_SECONDS},
        }
    return {
        "pool_size": settings.DB_POOL_SIZE,  # Maximum number of connections in the pool
        "max_overflow": settings.DB_MAX_OVERFLOW,  # Connections allowed beyond pool_size
        "pool_timeout": 30,  # Seconds to wait before giving up on getting a connection
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "pool_pre_ping": True,  # Enable connection health checks
        "connect_args": {
            "command_timeout": settings.STORE_TIMEOUT_SECONDS,
        },
    }

def create_engine(database_url: str = settings.DATABASE_URL, echo: bool = settings.SQL_ECHO, **options: Any) -> AsyncEngine:
    """Create an async engine; SQLite connections get foreign keys switched on."""
    engine = create_async_engine(database_url, echo=echo, **{**_engine_options(database_url), **options})
    if database_url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine

def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )

engine = create_engine()

# Create session factory
AsyncSessionLocal = create_session_factory(engine)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency returning the session factory used by transactional services."""
    return AsyncSessionLocal

async def ping_db(session: AsyncSession) -> None:
    await session.execute(text("SELECT 1"))

async def init_db(bind: AsyncEngine = engine) -> None:
    """Create all tables."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    db_logger.info("Database schema ready", extra={"url": bind.url.render_as_string(hide_password=True)})

async def dispose_db(bind: AsyncEngine = engine) -> None:
    """Properly dispose of database connections."""
    await bind.dispose()
