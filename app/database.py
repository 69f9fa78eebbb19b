"""Async database engine, session factory and transaction helper"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config import settings

engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a database session for one request"""
    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def run_in_transaction(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a unit of work atomically.
    Commits when the block exits cleanly, rolls back and re-raises otherwise.
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
