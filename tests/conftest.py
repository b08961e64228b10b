"""
Shared test fixtures for the whole suite.

Provides: deterministic fake embedding/chat providers, an in-memory chunk
store, a fakeredis-backed embedding cache, and a Runtime wired to all of them.
No network, no Postgres, no Redis server.
"""

import hashlib
from typing import List
from unittest.mock import MagicMock

import fakeredis
import numpy as np
import pytest

from config import Settings
from core.interfaces import IChatService, IEmbeddingService
from infrastructure.embedding_cache import RedisEmbeddingCache
from infrastructure.memory_store import InMemoryVectorStore
from services.factory import Runtime

TEST_DIM = 16


def bag_of_words_vector(text: str, dim: int = TEST_DIM) -> List[float]:
    """Unit-length hashed bag of words: equal texts map to equal vectors."""
    vec = np.zeros(dim)
    for word in text.split():
        vec[int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % dim] += 1.0
    norm = np.linalg.norm(vec)
    return (vec / norm).tolist() if norm else vec.tolist()


def make_words(count: int, prefix: str = "w") -> str:
    """'w0 w1 ... w{count-1}': every word distinct, so windows are easy to check."""
    return " ".join(f"{prefix}{i}" for i in range(count))


class FakeEmbeddingService(IEmbeddingService):
    """Records every call; vectors come from bag_of_words_vector."""

    model_name = "fake-embedding-model"

    def __init__(self, dim: int = TEST_DIM):
        self.dim = dim
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return bag_of_words_vector(text, self.dim)


class FakeChatService(IChatService):
    """Returns a fixed answer and keeps the prompts it was given."""

    def __init__(self, answer: str = "The rotor is cooled by airflow [1]."):
        self.answer = answer
        self.prompts: List[tuple] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        return self.answer


def make_test_settings(**overrides) -> Settings:
    values = dict(
        VECTOR_STORE_TYPE="memory",
        OPENAI_API_KEY=None,
        EMBEDDING_DIM=TEST_DIM,
        BACKFILL_RETRY_MIN_WAIT=0,
        BACKFILL_RETRY_MAX_WAIT=0,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeRuntime(Runtime):
    """
    Runtime with fake providers, an in-memory store and fakeredis.

    Closing it only drops the Redis client, so the same instance can serve
    several CLI invocations (each with its own event loop).
    """

    def __init__(self, embedding_service=None, chat_service=None, vector_store=None, config=None):
        super().__init__(config or make_test_settings())
        self._embedding_service = embedding_service or FakeEmbeddingService()
        self._chat_service = chat_service or FakeChatService()
        self._vector_store = vector_store or InMemoryVectorStore()
        self._redis_server = fakeredis.FakeServer()
        self.fake_openai_client = MagicMock()

    @property
    def redis(self):
        if self._redis is None:
            self._redis = fakeredis.FakeAsyncRedis(server=self._redis_server, decode_responses=True)
        return self._redis

    @property
    def openai_client(self):
        return self.fake_openai_client

    async def aclose(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
        self._redis = None
        self._embedding_cache = None


@pytest.fixture
def embedding_service():
    """Deterministic embedding provider that counts calls."""
    return FakeEmbeddingService()


@pytest.fixture
def chat_service():
    return FakeChatService()


@pytest.fixture
def memory_store():
    """Empty in-memory chunk store."""
    return InMemoryVectorStore()


@pytest.fixture
def fake_redis():
    """Async fakeredis client on a private server."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def embedding_cache(fake_redis, embedding_service):
    return RedisEmbeddingCache(fake_redis, embedding_service, ttl_seconds=86400)


@pytest.fixture
def runtime(embedding_service, chat_service, memory_store):
    """Runtime wired to the fake providers and the in-memory store."""
    return FakeRuntime(embedding_service, chat_service, memory_store)
