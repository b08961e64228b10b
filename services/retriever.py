# services/retriever.py
import logging
from typing import List

from config import settings
from core.domain import SearchResult
from core.exceptions import RAGError, RetrievalError
from core.interfaces import IEmbeddingCache, IVectorStore
from utils.common import preview

logger = logging.getLogger(settings.LOGGER_NAME)


class Retriever:
    """Query text -> cached embedding -> nearest chunks, as ranked SearchResults."""

    def __init__(self, embedding_cache: IEmbeddingCache, vector_store: IVectorStore):
        self.embedding_cache = embedding_cache
        self.vector_store = vector_store

    async def search(self, query: str, top_k: int = settings.DEFAULT_SEARCH_RESULTS) -> List[SearchResult]:
        """
        Ranked by ascending distance, ties by chunk_id, exactly as the store
        returns them. top_k is clamped to at least 1.

        Any cache/provider/store failure is raised as one RetrievalError;
        no partial results.
        """
        top_k = max(int(top_k), 1)

        try:
            query_vector = await self.embedding_cache.get_or_compute(query)
            rows = await self.vector_store.nearest(query_vector, top_k)
        except RAGError as e:
            logger.error(f"[SEARCH] Retrieval failed for '{preview(query)}': {e}")
            raise RetrievalError(f"Search failed: {e.message}", {"cause": type(e).__name__}) from e

        results = [
            SearchResult(
                patent_id=chunk.patent_id,
                chunk_id=chunk.chunk_id,
                snippet=chunk.text,
                distance=distance,
            )
            for chunk, distance in rows
        ]
        logger.info(f"[SEARCH] '{preview(query, 40)}' top_k={top_k} -> {len(results)} results")
        return results
