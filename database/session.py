# database/session.py

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, Index, String, Text, text
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)
from sqlalchemy.orm import declarative_base

from config import Settings, settings

logger = logging.getLogger(settings.LOGGER_NAME)

Base = declarative_base()

# ============= Models =============

class ChunkEntity(Base):
    """
    One row per chunk. `embedding` stays NULL until the backfill job sets it;
    NULL rows are invisible to nearest-neighbour search.
    """
    __tablename__ = "chunks"
    chunk_id = Column(String, primary_key=True)
    patent_id = Column(String, nullable=False, index=True)
    text = Column(Text, nullable=False)
    embedding = Column(Vector(settings.EMBEDDING_DIM), nullable=True)

    __table_args__ = (
        Index(
            "ix_chunks_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": 16, "ef_construction": 64},
            postgresql_ops={"embedding": "vector_l2_ops"},
        ),
    )


# ============= Engine & Session Factory =============

def create_engine(config: Optional[Settings] = None) -> AsyncEngine:
    """Pooled async engine; every store call is bounded by DB_COMMAND_TIMEOUT."""
    config = config or settings
    connect_args = {}
    if config.DATABASE_URL.startswith("postgresql+asyncpg"):
        connect_args["command_timeout"] = config.DB_COMMAND_TIMEOUT

    return create_async_engine(
        config.DATABASE_URL,
        echo=False,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_recycle=config.DB_POOL_RECYCLE,
        pool_pre_ping=True,  # Check connection health before using
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a new database session with proper cleanup.

    Each store operation draws its own session (and pooled connection), so
    concurrent requests never share a connection handle.
    """
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(engine: AsyncEngine) -> None:
    """Enable pgvector and create the chunks table and its indexes."""
    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")
