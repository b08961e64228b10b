from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from core.exceptions import (MalformedResponseError, ProviderError,
                             ProviderErrorKind)
from infrastructure.chat_services import OpenAIChatService


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def client():
    mock = MagicMock()
    mock.chat.completions.create = AsyncMock(return_value=_completion("Answer [1]."))
    return mock


class TestComplete:
    @pytest.mark.asyncio
    async def test_should_send_system_and_user_turns(self, client):
        service = OpenAIChatService(client, model="gpt-4o-mini")

        answer = await service.complete("be precise", "Question: why?")

        assert answer == "Answer [1]."
        client.chat.completions.create.assert_awaited_once_with(
            model="gpt-4o-mini",
            messages=[
                {"role": "system", "content": "be precise"},
                {"role": "user", "content": "Question: why?"},
            ],
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [SimpleNamespace(choices=[]), SimpleNamespace(), _completion(None), _completion("   ")],
    )
    async def test_missing_content_should_raise_malformed(self, client, response):
        client.chat.completions.create.return_value = response

        with pytest.raises(MalformedResponseError) as exc_info:
            await OpenAIChatService(client).complete("s", "u")
        assert exc_info.value.provider == "chat"

    @pytest.mark.asyncio
    async def test_timeout_should_surface_as_timeout(self, client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)

        with pytest.raises(ProviderError) as exc_info:
            await OpenAIChatService(client).complete("s", "u")
        assert exc_info.value.kind is ProviderErrorKind.TIMEOUT
