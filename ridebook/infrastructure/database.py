"""
Database wiring: one async engine per process and the session factory that
``UnitOfWork`` opens a session from for every transaction.

Pool sizing comes from settings; ``pool_pre_ping`` checks a pooled connection
before handing it out.  Migrations do not go through this engine (see
``migrations/env.py``).
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ridebook.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

# Objects stay readable after commit; services return them to the API layer.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass
