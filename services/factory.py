# services/factory.py
"""Component wiring for the HTTP app (FastAPI Depends) and the CLI"""
import logging
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, Request
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncEngine

from config import Settings, settings
from core.exceptions import ConfigurationError
from core.interfaces import (IChatService, IEmbeddingCache, IEmbeddingService,
                             IVectorStore)
from database.session import create_engine, create_session_factory, init_db
from infrastructure.chat_services import OpenAIChatService
from infrastructure.embedding_cache import RedisEmbeddingCache, create_redis_client
from infrastructure.embedding_services import OpenAIEmbeddingService
from infrastructure.memory_store import InMemoryVectorStore
from infrastructure.openai_client import build_openai_client
from infrastructure.text_extractors import PyMuPDFTextExtractor
from infrastructure.vector_stores import PgVectorStore
from services.answer_synthesizer import AnswerSynthesizer
from services.backfill import BackfillJob
from services.ingestion import IngestionService
from services.retriever import Retriever

logger = logging.getLogger(settings.LOGGER_NAME)


class Runtime:
    """
    Owns the process-wide connections (engine pool, Redis pool, OpenAI client)
    and builds each component once on first use.

    Clients are created lazily, so `ingest` and `init-db` never need an API key.

        async with Runtime() as runtime:
            results = await runtime.retriever().search("rotor blade", 5)
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self._engine: Optional[AsyncEngine] = None
        self._redis: Optional[aioredis.Redis] = None
        self._openai: Optional[AsyncOpenAI] = None
        self._vector_store: Optional[IVectorStore] = None
        self._embedding_service: Optional[IEmbeddingService] = None
        self._chat_service: Optional[IChatService] = None
        self._embedding_cache: Optional[IEmbeddingCache] = None

    async def __aenter__(self) -> "Runtime":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        if self._openai is not None:
            await self._openai.close()
            self._openai = None
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
        logger.info("Runtime connections closed")

    # ============= Connections =============

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_engine(self.config)
        return self._engine

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = create_redis_client(self.config)
        return self._redis

    @property
    def openai_client(self) -> AsyncOpenAI:
        if self._openai is None:
            self._openai = build_openai_client(self.config)
        return self._openai

    async def init_db(self) -> None:
        if self.config.VECTOR_STORE_TYPE == "memory":
            logger.info("In-memory store selected; no database to initialize")
            return
        await init_db(self.engine)

    # ============= Components =============

    def vector_store(self) -> IVectorStore:
        if self._vector_store is None:
            store_type = self.config.VECTOR_STORE_TYPE
            if store_type == "pgvector":
                self._vector_store = PgVectorStore(create_session_factory(self.engine))
            elif store_type == "memory":
                self._vector_store = InMemoryVectorStore()
            else:
                raise ConfigurationError(f"Unknown vector store type: {store_type}")
        return self._vector_store

    def embedding_service(self) -> IEmbeddingService:
        if self._embedding_service is None:
            self._embedding_service = OpenAIEmbeddingService(
                self.openai_client,
                model_name=self.config.EMBEDDING_MODEL_NAME,
                dimension=self.config.EMBEDDING_DIM,
            )
        return self._embedding_service

    def embedding_cache(self) -> IEmbeddingCache:
        if self._embedding_cache is None:
            self._embedding_cache = RedisEmbeddingCache(
                self.redis,
                self.embedding_service(),
                ttl_seconds=self.config.EMBEDDING_CACHE_TTL_SECONDS,
            )
        return self._embedding_cache

    def chat_service(self) -> IChatService:
        if self._chat_service is None:
            self._chat_service = OpenAIChatService(self.openai_client, model=self.config.CHAT_MODEL_NAME)
        return self._chat_service

    def retriever(self) -> Retriever:
        return Retriever(self.embedding_cache(), self.vector_store())

    def answer_synthesizer(self) -> AnswerSynthesizer:
        return AnswerSynthesizer(self.retriever(), self.chat_service())

    def ingestion_service(self) -> IngestionService:
        return IngestionService(
            self.vector_store(),
            PyMuPDFTextExtractor(),
            chunk_size=self.config.CHUNK_SIZE,
            chunk_overlap=self.config.CHUNK_OVERLAP,
        )

    def backfill_job(self) -> BackfillJob:
        return BackfillJob(
            self.vector_store(),
            self.embedding_service(),
            max_workers=self.config.BACKFILL_MAX_WORKERS,
            max_attempts=self.config.BACKFILL_MAX_ATTEMPTS,
            retry_min_wait=self.config.BACKFILL_RETRY_MIN_WAIT,
            retry_max_wait=self.config.BACKFILL_RETRY_MAX_WAIT,
        )


# ============= FastAPI providers =============
# Overridable in tests through app.dependency_overrides

def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime

def get_vector_store(runtime: Runtime = Depends(get_runtime)) -> IVectorStore:
    return runtime.vector_store()

def get_embedding_service(runtime: Runtime = Depends(get_runtime)) -> IEmbeddingService:
    return runtime.embedding_service()

def get_embedding_cache(runtime: Runtime = Depends(get_runtime)) -> IEmbeddingCache:
    return runtime.embedding_cache()

def get_chat_service(runtime: Runtime = Depends(get_runtime)) -> IChatService:
    return runtime.chat_service()

def get_retriever(
    embedding_cache: IEmbeddingCache = Depends(get_embedding_cache),
    vector_store: IVectorStore = Depends(get_vector_store),
) -> Retriever:
    return Retriever(embedding_cache, vector_store)

def get_answer_synthesizer(
    retriever: Retriever = Depends(get_retriever),
    chat_service: IChatService = Depends(get_chat_service),
) -> AnswerSynthesizer:
    return AnswerSynthesizer(retriever, chat_service)
