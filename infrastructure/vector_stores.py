# infrastructure/vector_stores.py
"""Postgres + pgvector implementation of the chunk store"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Tuple

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import (DBAPIError, IntegrityError, InterfaceError,
                            OperationalError, SQLAlchemyError)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from core.domain import Chunk
from core.exceptions import (InvalidArgumentError, PersistenceError,
                             PersistenceErrorCode)
from core.interfaces import IVectorStore
from database.session import ChunkEntity, get_session

logger = logging.getLogger(settings.LOGGER_NAME)

_STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def build_nearest_query(query_vector: List[float], k: int) -> Select:
    """
    SELECT patent_id, chunk_id, text, embedding <-> :q AS distance
    FROM chunks WHERE embedding IS NOT NULL
    ORDER BY embedding <-> :q, chunk_id LIMIT :k

    The same L2 operator ranks the rows and produces the reported distance.
    """
    distance = ChunkEntity.embedding.l2_distance(query_vector)
    return (
        select(
            ChunkEntity.patent_id,
            ChunkEntity.chunk_id,
            ChunkEntity.text,
            distance.label("distance"),
        )
        .where(ChunkEntity.embedding.isnot(None))
        .order_by(distance, ChunkEntity.chunk_id)
        .limit(k)
    )


def _to_persistence_error(operation: str, error: BaseException) -> PersistenceError:
    """Classify a driver/ORM failure into the store's error codes."""
    if isinstance(error, IntegrityError):
        code = PersistenceErrorCode.DUPLICATE_CHUNK
    elif isinstance(error, (OperationalError, InterfaceError, OSError, asyncio.TimeoutError)):
        code = PersistenceErrorCode.UNAVAILABLE
    elif isinstance(error, DBAPIError) and error.connection_invalidated:
        code = PersistenceErrorCode.UNAVAILABLE
    else:
        code = PersistenceErrorCode.QUERY_FAILED
    return PersistenceError(
        f"Chunk store {operation} failed: {type(error).__name__}",
        code,
        {"operation": operation},
    )


class PgVectorStore(IVectorStore):
    """
    Chunk store backed by a pgvector column.

    Sessions are drawn per operation from the shared async_sessionmaker, so
    the engine's connection pool is the only shared resource.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with get_session(self._session_factory) as session:
                yield session
        except PersistenceError:
            raise
        except _STORE_ERRORS as e:
            logger.error(f"[STORE] {operation} failed: {e}")
            raise _to_persistence_error(operation, e) from e

    async def add_chunks(self, chunks: List[Chunk]) -> int:
        if not chunks:
            return 0

        async with self._session("add_chunks") as session:
            session.add_all([
                ChunkEntity(
                    chunk_id=c.chunk_id,
                    patent_id=c.patent_id,
                    text=c.text,
                    embedding=c.embedding,
                )
                for c in chunks
            ])
            await session.commit()

        logger.info(f"[STORE] Persisted {len(chunks)} chunks for patent {chunks[0].patent_id}")
        return len(chunks)

    async def nearest(self, query_vector: List[float], k: int) -> List[Tuple[Chunk, float]]:
        if k < 1:
            raise InvalidArgumentError("k must be >= 1", {"k": k})

        async with self._session("nearest") as session:
            result = await session.execute(build_nearest_query(query_vector, k))
            rows = result.all()

        return [
            (Chunk(patent_id=row.patent_id, chunk_id=row.chunk_id, text=row.text), float(row.distance))
            for row in rows
        ]

    async def fetch_unembedded(self) -> List[Chunk]:
        async with self._session("fetch_unembedded") as session:
            result = await session.execute(
                select(ChunkEntity.patent_id, ChunkEntity.chunk_id, ChunkEntity.text)
                .where(ChunkEntity.embedding.is_(None))
                .order_by(ChunkEntity.chunk_id)
            )
            rows = result.all()

        return [Chunk(patent_id=r.patent_id, chunk_id=r.chunk_id, text=r.text) for r in rows]

    async def save_embedding(self, chunk_id: str, embedding: List[float]) -> bool:
        async with self._session("save_embedding") as session:
            result = await session.execute(
                update(ChunkEntity)
                .where(ChunkEntity.chunk_id == chunk_id, ChunkEntity.embedding.is_(None))
                .values(embedding=embedding)
            )
            await session.commit()
        return result.rowcount == 1

    async def count(self) -> int:
        async with self._session("count") as session:
            result = await session.execute(select(func.count()).select_from(ChunkEntity))
            return int(result.scalar_one())

    async def count_embedded(self) -> int:
        async with self._session("count_embedded") as session:
            result = await session.execute(
                select(func.count())
                .select_from(ChunkEntity)
                .where(ChunkEntity.embedding.isnot(None))
            )
            return int(result.scalar_one())
