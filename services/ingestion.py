# services/ingestion.py
import logging
import os

from config import settings
from core.chunking import chunk_text
from core.domain import Chunk, IngestionResult, make_chunk_id
from core.exceptions import InvalidArgumentError
from core.interfaces import ITextExtractor, IVectorStore

logger = logging.getLogger(settings.LOGGER_NAME)


class IngestionService:
    """
    Extracted text -> word-window chunks -> store rows without embeddings.

    Re-ingesting a patent is not deduplicated: the first colliding chunk_id
    fails the whole document with PersistenceError(DUPLICATE_CHUNK).
    """

    def __init__(
        self,
        vector_store: IVectorStore,
        text_extractor: ITextExtractor,
        chunk_size: int = settings.CHUNK_SIZE,
        chunk_overlap: int = settings.CHUNK_OVERLAP,
    ):
        self.vector_store = vector_store
        self.text_extractor = text_extractor
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    async def ingest_file(self, file_path: str, patent_id: str) -> IngestionResult:
        logger.info(f"[INGEST] Extracting {os.path.basename(file_path)} as patent {patent_id}")
        text = await self.text_extractor.extract(file_path)
        return await self.ingest_text(text, patent_id)

    async def ingest_text(self, text: str, patent_id: str) -> IngestionResult:
        if not patent_id or not patent_id.strip():
            raise InvalidArgumentError("patent_id must not be empty")

        pieces = chunk_text(text, self.chunk_size, self.chunk_overlap)
        chunks = [
            Chunk(patent_id=patent_id, chunk_id=make_chunk_id(patent_id, idx), text=piece)
            for idx, piece in enumerate(pieces)
        ]

        if not chunks:
            logger.warning(f"[INGEST] Patent {patent_id} produced no text; nothing stored")
        written = await self.vector_store.add_chunks(chunks)

        logger.info(f"[INGEST] Patent {patent_id}: {written} chunks stored")
        return IngestionResult(patent_id=patent_id, chunk_count=written, characters=len(text or ""))
