import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import bag_of_words_vector
from core.exceptions import ProviderError, ProviderErrorKind
from infrastructure.embedding_cache import (CACHE_KEY_PREFIX,
                                            RedisEmbeddingCache,
                                            make_cache_key)
from utils.common import get_text_hash


class TestCacheKey:
    def test_key_should_be_prefixed_sha256_of_model_and_text(self):
        key = make_cache_key("rotor blade", "ada")
        assert key == CACHE_KEY_PREFIX + get_text_hash("ada\nrotor blade")
        assert len(key) == len("embed:") + 64

    def test_different_models_should_not_share_keys(self):
        assert make_cache_key("same text", "model-a") != make_cache_key("same text", "model-b")

    def test_exact_bytes_matter(self):
        assert make_cache_key("text", "m") != make_cache_key("text ", "m")


class TestGetOrCompute:
    @pytest.mark.asyncio
    async def test_second_lookup_should_not_call_provider(self, embedding_cache, embedding_service):
        first = await embedding_cache.get_or_compute("turbine blade cooling")
        second = await embedding_cache.get_or_compute("turbine blade cooling")

        assert first == second
        assert embedding_service.calls == ["turbine blade cooling"]

    @pytest.mark.asyncio
    async def test_miss_should_store_json_vector_with_ttl(self, embedding_cache, embedding_service, fake_redis):
        vector = await embedding_cache.get_or_compute("gear train")
        key = make_cache_key("gear train", embedding_service.model_name)

        assert json.loads(await fake_redis.get(key)) == vector
        ttl = await fake_redis.ttl(key)
        assert 0 < ttl <= 86400

    @pytest.mark.asyncio
    async def test_hit_should_return_stored_vector(self, embedding_cache, embedding_service, fake_redis):
        key = make_cache_key("stored", embedding_service.model_name)
        await fake_redis.set(key, json.dumps([0.5, 0.25]))

        assert await embedding_cache.get_or_compute("stored") == [0.5, 0.25]
        assert embedding_service.calls == []

    @pytest.mark.asyncio
    async def test_provider_error_should_propagate_and_cache_nothing(self, fake_redis):
        service = AsyncMock()
        service.model_name = "m"
        service.embed.side_effect = ProviderError("denied", ProviderErrorKind.AUTHENTICATION)
        cache = RedisEmbeddingCache(fake_redis, service)

        with pytest.raises(ProviderError):
            await cache.get_or_compute("anything")
        assert await fake_redis.keys("*") == []

    @pytest.mark.asyncio
    async def test_read_failure_should_fall_back_to_provider(self, embedding_service):
        redis_client = AsyncMock()
        redis_client.get.side_effect = RedisConnectionError("down")
        cache = RedisEmbeddingCache(redis_client, embedding_service)

        vector = await cache.get_or_compute("fallback text")

        assert vector == bag_of_words_vector("fallback text")
        assert embedding_service.calls == ["fallback text"]

    @pytest.mark.asyncio
    async def test_write_failure_should_still_return_vector(self, embedding_service):
        redis_client = AsyncMock()
        redis_client.get.return_value = None
        redis_client.set.side_effect = TimeoutError("slow")
        cache = RedisEmbeddingCache(redis_client, embedding_service)

        assert await cache.get_or_compute("write fails") == bag_of_words_vector("write fails")

    @pytest.mark.asyncio
    async def test_corrupt_entry_should_be_recomputed_and_overwritten(
        self, embedding_cache, embedding_service, fake_redis
    ):
        key = make_cache_key("corrupt", embedding_service.model_name)
        await fake_redis.set(key, "not json")

        vector = await embedding_cache.get_or_compute("corrupt")

        assert embedding_service.calls == ["corrupt"]
        assert json.loads(await fake_redis.get(key)) == vector
