# services/backfill.py
"""Populate embeddings for every stored chunk that does not have one yet"""
import asyncio
import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config import settings
from core.domain import BackfillItemResult, BackfillReport, Chunk
from core.exceptions import ProviderError, RAGError
from core.interfaces import IEmbeddingService, IVectorStore

logger = logging.getLogger(settings.LOGGER_NAME)


def _is_retryable(error: BaseException) -> bool:
    """Only rate limits, timeouts and network failures are worth another attempt."""
    return isinstance(error, ProviderError) and error.retryable


class BackfillJob:
    """
    Embeds chunks straight through the provider (no cache: chunk text is
    rarely repeated) and writes each vector back.

    Chunks are independent: up to `max_workers` run at once, and a failure on
    one chunk is recorded in the report without stopping the others.
    """

    def __init__(
        self,
        vector_store: IVectorStore,
        embedding_service: IEmbeddingService,
        max_workers: int = settings.BACKFILL_MAX_WORKERS,
        max_attempts: int = settings.BACKFILL_MAX_ATTEMPTS,
        retry_min_wait: float = settings.BACKFILL_RETRY_MIN_WAIT,
        retry_max_wait: float = settings.BACKFILL_RETRY_MAX_WAIT,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.max_workers = max(max_workers, 1)
        self.max_attempts = max(max_attempts, 1)
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

    async def run(self) -> BackfillReport:
        pending = await self.vector_store.fetch_unembedded()
        logger.info(f"[BACKFILL] {len(pending)} chunks without embedding")

        if not pending:
            return BackfillReport(total=0)

        semaphore = asyncio.Semaphore(self.max_workers)

        async def worker(chunk: Chunk) -> BackfillItemResult:
            async with semaphore:
                return await self._process(chunk)

        results = await asyncio.gather(*(worker(c) for c in pending))
        report = BackfillReport(total=len(pending), results=list(results))

        logger.info(
            f"[BACKFILL] Done: {report.embedded} embedded, {report.skipped} skipped, "
            f"{len(report.failures)} failed of {report.total}"
        )
        return report

    async def _process(self, chunk: Chunk) -> BackfillItemResult:
        attempts = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_min_wait, min=self.retry_min_wait, max=self.retry_max_wait),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts += 1
                    vector = await self.embedding_service.embed(chunk.text)
            saved = await self.vector_store.save_embedding(chunk.chunk_id, vector)
        except RAGError as e:
            logger.error(f"[BACKFILL] {chunk.chunk_id} failed after {attempts} attempt(s): {e}")
            return BackfillItemResult(chunk_id=chunk.chunk_id, success=False, attempts=attempts, error=str(e))
        except Exception as e:
            logger.exception(f"[BACKFILL] {chunk.chunk_id} failed unexpectedly: {e}")
            return BackfillItemResult(chunk_id=chunk.chunk_id, success=False, attempts=attempts, error=str(e))

        if not saved:
            logger.info(f"[BACKFILL] {chunk.chunk_id} already embedded; skipped")
        return BackfillItemResult(chunk_id=chunk.chunk_id, success=True, attempts=attempts, skipped=not saved)
