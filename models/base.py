"""
SQLAlchemy engine and session factory for the access ledger.

Only the API process talks to Postgres, and it is async end to end, so a
single asyncpg-backed engine is enough. Tests swap it for aiosqlite.
"""

from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from config.settings import settings


class Base(DeclarativeBase):
    """Base class for all ORM models. SQLAlchemy uses this to track table metadata."""
    pass


async_engine = create_async_engine(settings.database_url, echo=False)
AsyncSessionLocal = async_sessionmaker(async_engine, expire_on_commit=False)
