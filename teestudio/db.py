# db.py
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Import the centralized settings object
from teestudio.settings import settings

# --- Configuration & Setup ---
logger = logging.getLogger(__name__)


def normalize_database_url(url: str) -> str:
    """
    Points plain PostgreSQL URLs at the asyncpg driver.

    Hosting providers hand out `postgres://` or `postgresql://` URLs; the async
    engine needs the driver spelled out. Anything else is returned unchanged.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str) -> AsyncEngine:
    """Creates the async engine, with a connection pool for server databases."""
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        logger.info("✅ Using local SQLite database for development.")
        return create_async_engine(url, echo=False)

    logger.info("✅ Connecting to PostgreSQL database.")
    return create_async_engine(
        url,
        echo=False,  # Set to True only for debugging to see generated SQL queries.
        # `pool_recycle` keeps idle connections from being dropped by the
        # database or network infrastructure after a period of inactivity.
        pool_size=10,
        max_overflow=5,
        pool_timeout=30,
        pool_recycle=1800,
    )


def build_session_maker(bind: AsyncEngine) -> sessionmaker:
    # `expire_on_commit=False` keeps attributes readable after commit.
    return sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# --- SQLAlchemy Engine & Session ---
engine = build_engine(settings.DATABASE_URL)
async_session_maker = build_session_maker(engine)

# Base class for declarative models. All models in `models.py` inherit from this.
Base = declarative_base()


# --- FastAPI Dependency ---

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session to each request.

    Rolls back on error so a failed request never leaves a half-written
    transaction on the session.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
