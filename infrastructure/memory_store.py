# infrastructure/memory_store.py
import asyncio
import logging
from typing import Dict, List, Tuple

import numpy as np

from config import settings
from core.domain import Chunk
from core.exceptions import (InvalidArgumentError, PersistenceError,
                             PersistenceErrorCode)
from core.interfaces import IVectorStore

logger = logging.getLogger(settings.LOGGER_NAME)


class InMemoryVectorStore(IVectorStore):
    """
    Process-local chunk store using exact L2 search over numpy arrays.

    Intended for local runs and tests (VECTOR_STORE_TYPE=memory). A single
    asyncio.Lock guards every mutation and read, and is never held across
    anything but in-process work.
    """

    def __init__(self):
        self._chunks: Dict[str, Chunk] = {}
        self._lock = asyncio.Lock()

    async def add_chunks(self, chunks: List[Chunk]) -> int:
        if not chunks:
            return 0

        async with self._lock:
            incoming = [c.chunk_id for c in chunks]
            clashes = [cid for cid in incoming if cid in self._chunks]
            if clashes or len(set(incoming)) != len(incoming):
                raise PersistenceError(
                    "Duplicate chunk id",
                    PersistenceErrorCode.DUPLICATE_CHUNK,
                    {"chunk_ids": clashes or incoming},
                )
            # All-or-nothing, mirroring a single transaction
            for c in chunks:
                self._chunks[c.chunk_id] = Chunk(
                    patent_id=c.patent_id,
                    chunk_id=c.chunk_id,
                    text=c.text,
                    embedding=list(c.embedding) if c.embedding is not None else None,
                )

        logger.info(f"[MEMORY] Added {len(chunks)} chunks. Total: {len(self._chunks)}")
        return len(chunks)

    async def nearest(self, query_vector: List[float], k: int) -> List[Tuple[Chunk, float]]:
        if k < 1:
            raise InvalidArgumentError("k must be >= 1", {"k": k})

        async with self._lock:
            embedded = [c for c in self._chunks.values() if c.embedding is not None]
            if not embedded:
                return []

            query = np.asarray(query_vector, dtype=np.float64)
            dims = {len(c.embedding) for c in embedded}
            if dims != {query.shape[0]}:
                raise PersistenceError(
                    "Query vector dimension does not match stored embeddings",
                    PersistenceErrorCode.QUERY_FAILED,
                    {"expected": sorted(dims), "got": int(query.shape[0])},
                )
            matrix = np.asarray([c.embedding for c in embedded], dtype=np.float64)
            distances = np.linalg.norm(matrix - query, axis=1)

        ranked = sorted(
            zip(embedded, distances.tolist()),
            key=lambda pair: (pair[1], pair[0].chunk_id),
        )
        return [
            (Chunk(patent_id=c.patent_id, chunk_id=c.chunk_id, text=c.text), float(d))
            for c, d in ranked[:k]
        ]

    async def fetch_unembedded(self) -> List[Chunk]:
        async with self._lock:
            pending = [c for c in self._chunks.values() if c.embedding is None]
        return [
            Chunk(patent_id=c.patent_id, chunk_id=c.chunk_id, text=c.text)
            for c in sorted(pending, key=lambda c: c.chunk_id)
        ]

    async def save_embedding(self, chunk_id: str, embedding: List[float]) -> bool:
        async with self._lock:
            chunk = self._chunks.get(chunk_id)
            if chunk is None or chunk.embedding is not None:
                return False
            chunk.embedding = list(embedding)
            return True

    async def count(self) -> int:
        async with self._lock:
            return len(self._chunks)

    async def count_embedded(self) -> int:
        async with self._lock:
            return sum(1 for c in self._chunks.values() if c.embedding is not None)
