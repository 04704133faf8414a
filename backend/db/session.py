"""
Renuga CRM Database Session Management

Async SQLAlchemy engine and session factory.

On SQLite every transaction starts with BEGIN IMMEDIATE so concurrent
writers queue on the database lock instead of interleaving, and foreign
keys are switched on per connection.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings

settings = get_settings()


def build_engine(
    url: str,
    echo: bool = False,
    connect_timeout: float = 10.0,
    pool_timeout: float = 30.0,
) -> AsyncEngine:
    """Create an async engine with connection-level timeouts."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, connect_args={"timeout": connect_timeout})

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            # Hand transaction control to the "begin" listener below.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=pool_timeout,
        connect_args={"timeout": connect_timeout},
    )


engine = build_engine(
    settings.database_url,
    echo=settings.database_echo,
    connect_timeout=settings.database_connect_timeout,
    pool_timeout=settings.database_pool_timeout,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass
