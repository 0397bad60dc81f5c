"""
Technical rationale: SQLite is enough for the few preferences the hub keeps.
Async SQLAlchemy 2.0 so that the API keeps answering while sources are fetched.
"""
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from occitanie_hub.core.config import settings
from occitanie_hub.core.logger import log


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(
        database_url,
        connect_args={"check_same_thread": False},  # Required by SQLite
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
AsyncSessionLocal = build_session_factory(engine)


async def init_db(bind: AsyncEngine = engine):
    """Creates the tables if they do not exist."""
    # Registers the mapped models on Base.metadata
    from occitanie_hub import models  # noqa: F401

    try:
        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info("Database initialized.")
    except Exception as e:
        log.error(f"Error initializing the database: {e}")
        raise
