# infrastructure/chat_services.py
import logging

import openai
from openai import AsyncOpenAI

from config import settings
from core.exceptions import MalformedResponseError
from core.interfaces import IChatService
from infrastructure.openai_client import to_provider_error

logger = logging.getLogger(settings.LOGGER_NAME)


class OpenAIChatService(IChatService):
    """Chat completions via the OpenAI API (system turn + one user turn)."""

    def __init__(self, client: AsyncOpenAI, model: str = settings.CHAT_MODEL_NAME):
        self._client = client
        self.model = model

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        logger.info(f"[CHAT] Sending prompt to model '{self.model}' ({len(user_prompt)} chars)")
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.OpenAIError as e:
            error = to_provider_error(e, "chat")
            logger.error(f"[CHAT] Provider call failed: {error}")
            raise error from e

        choices = getattr(response, "choices", None)
        if not choices:
            raise MalformedResponseError("Chat response has no choices", "chat")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("Chat response has no message content", "chat")

        return content
