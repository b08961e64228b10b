# infrastructure/embedding_cache.py
"""Content-addressed embedding cache backed by Redis"""
import asyncio
import json
import logging
import numbers
from typing import List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config import Settings, settings
from core.exceptions import CacheError
from core.interfaces import IEmbeddingCache, IEmbeddingService
from utils.common import get_text_hash

logger = logging.getLogger(settings.LOGGER_NAME)

CACHE_KEY_PREFIX = "embed:"

_REDIS_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


def create_redis_client(config: Optional[Settings] = None) -> aioredis.Redis:
    """Pooled client; every command is bounded by REDIS_TIMEOUT."""
    config = config or settings
    return aioredis.Redis.from_url(
        config.REDIS_URL,
        decode_responses=True,
        socket_timeout=config.REDIS_TIMEOUT,
        socket_connect_timeout=config.REDIS_TIMEOUT,
    )


def make_cache_key(text: str, model_name: str) -> str:
    """
    'embed:' + sha256(model_name + '\\n' + text).

    The model name is part of the fingerprint so vectors from different
    models never collide; the newline keeps (model, text) pairs unambiguous.
    """
    return CACHE_KEY_PREFIX + get_text_hash(f"{model_name}\n{text}")


class RedisEmbeddingCache(IEmbeddingCache):
    """
    get_or_compute: hit -> stored vector, miss -> provider call + SET EX ttl.

    The cache is best-effort. Read, write and decode failures are logged and
    degrade to a provider call; provider failures propagate and are never cached.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        embedding_service: IEmbeddingService,
        ttl_seconds: int = settings.EMBEDDING_CACHE_TTL_SECONDS,
    ):
        self._redis = redis_client
        self._embedding_service = embedding_service
        self._ttl_seconds = ttl_seconds

    async def get_or_compute(self, text: str) -> List[float]:
        key = make_cache_key(text, self._embedding_service.model_name)

        try:
            cached = await self._read(key)
        except CacheError as e:
            logger.warning(f"[CACHE] Read failed, falling back to provider: {e}")
            cached = None

        if cached is not None:
            logger.debug(f"[CACHE] Hit {key}")
            return cached

        vector = await self._embedding_service.embed(text)

        try:
            await self._write(key, vector)
        except CacheError as e:
            logger.warning(f"[CACHE] Write failed, returning uncached vector: {e}")

        return vector

    async def _read(self, key: str) -> Optional[List[float]]:
        try:
            raw = await self._redis.get(key)
        except _REDIS_ERRORS as e:
            raise CacheError("Cache GET failed", {"key": key, "error": type(e).__name__}) from e

        if raw is None:
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheError("Cached value is not valid JSON", {"key": key}) from e

        if not isinstance(value, list) or not value or not all(
            isinstance(v, numbers.Real) and not isinstance(v, bool) for v in value
        ):
            raise CacheError("Cached value is not a numeric vector", {"key": key})

        return [float(v) for v in value]

    async def _write(self, key: str, vector: List[float]) -> None:
        # Single SET with EX: the entry and its expiry land atomically
        try:
            await self._redis.set(key, json.dumps(vector), ex=self._ttl_seconds)
        except _REDIS_ERRORS as e:
            raise CacheError("Cache SET failed", {"key": key, "error": type(e).__name__}) from e
