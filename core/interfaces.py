# core/interfaces.py
"""Core interfaces for the retrieval-and-synthesis pipeline"""
from abc import ABC, abstractmethod
from typing import List, Tuple

from core.domain import Chunk

# ============= Vector Store Interface =============
class IVectorStore(ABC):
    """
    Durable chunk storage with nearest-neighbour retrieval.

    Implementations: PgVectorStore (Postgres + pgvector), InMemoryVectorStore.
    """

    @abstractmethod
    async def add_chunks(self, chunks: List[Chunk]) -> int:
        """Persist chunks (one transaction). Returns number of rows written."""
        pass

    @abstractmethod
    async def nearest(self, query_vector: List[float], k: int) -> List[Tuple[Chunk, float]]:
        """
        Up to k embedded chunks ordered by ascending distance, ties by chunk_id.
        Chunks without an embedding are never returned.
        """
        pass

    @abstractmethod
    async def fetch_unembedded(self) -> List[Chunk]:
        """All chunks whose embedding is still unset, ordered by chunk_id."""
        pass

    @abstractmethod
    async def save_embedding(self, chunk_id: str, embedding: List[float]) -> bool:
        """
        Set the embedding of a chunk only if it is still unset.
        Returns False when the chunk was already embedded (or is unknown).
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Total number of stored chunks"""
        pass

    @abstractmethod
    async def count_embedded(self) -> int:
        """Number of chunks with an embedding"""
        pass

# ============= Embedding Interfaces =============
class IEmbeddingService(ABC):
    """External model turning one text into a fixed-length vector"""

    model_name: str

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed exactly one input string with one external call."""
        pass


class IEmbeddingCache(ABC):
    """Content-addressed cache in front of an IEmbeddingService"""

    @abstractmethod
    async def get_or_compute(self, text: str) -> List[float]:
        """Return the cached vector for text, computing and storing it on a miss."""
        pass

# ============= Chat Interface =============
class IChatService(ABC):
    """External chat-completion model"""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the first completion's message content."""
        pass

# ============= Text Extraction Interface =============
class ITextExtractor(ABC):
    """Turns a stored document into plain text (external collaborator)"""

    @abstractmethod
    async def extract(self, file_path: str) -> str:
        """Extract whitespace-normalized text. Raises ExtractionError."""
        pass
