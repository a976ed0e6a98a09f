"""Site Ledger Database Configuration

Async SQLAlchemy engine, session factory and declarative base.
"""

from datetime import datetime, timezone
from sqlalchemy import DateTime, event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import NullPool
from siteledger.config import settings, get_data_dir
import logging

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite+aiosqlite:///"


def utcnow() -> datetime:
    """Naive UTC timestamp used for audit columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_database_url() -> str:
    """Get the database URL, resolving relative SQLite paths"""
    db_url = settings.DATABASE_URL

    if db_url.startswith(SQLITE_PREFIX + "./"):
        relative_path = db_url.replace(SQLITE_PREFIX + "./", "")
        if relative_path.startswith("data/"):
            relative_path = relative_path[len("data/"):]
        absolute_path = get_data_dir() / relative_path
        absolute_path.parent.mkdir(parents=True, exist_ok=True)
        return f"{SQLITE_PREFIX}{absolute_path}"

    return db_url


def enable_sqlite_foreign_keys(sync_engine) -> None:
    """Turn on FK enforcement for every new SQLite connection"""

    @event.listens_for(sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_engine(url: str | None = None):
    """Create async database engine"""
    db_url = url or get_database_url()
    logger.info(f"Using database: {db_url}")

    if db_url.startswith("sqlite"):
        engine = create_async_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
            echo=settings.DATABASE_ECHO,
        )
        enable_sqlite_foreign_keys(engine.sync_engine)
        return engine

    return create_async_engine(db_url, echo=settings.DATABASE_ECHO)


engine = create_engine()
async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """Base class for all Site Ledger models"""
    pass


class TimestampMixin:
    """created_at / updated_at columns"""

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


async def get_db() -> AsyncSession:
    """Dependency for getting database sessions"""
    async with async_session_maker() as session:
        yield session


async def init_db():
    """Initialize database tables"""
    # Import models so every table is registered on the metadata
    import siteledger.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Site Ledger database initialized")


async def drop_all():
    """Drop all tables (useful for testing)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("All Site Ledger tables dropped")
