# infrastructure/openai_client.py
"""Shared AsyncOpenAI construction and error classification"""
import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from config import Settings, settings
from core.exceptions import (ConfigurationError, ProviderError,
                             ProviderErrorKind)

logger = logging.getLogger(settings.LOGGER_NAME)


def build_openai_client(config: Optional[Settings] = None) -> AsyncOpenAI:
    """
    One client per process, shared by the embedding and chat services.

    The SDK's own retries are disabled: a timeout must surface as a timeout,
    and only the backfill job decides whether to try again.
    """
    config = config or settings
    if not config.OPENAI_API_KEY:
        raise ConfigurationError("OPENAI_API_KEY is not set")

    return AsyncOpenAI(
        api_key=config.OPENAI_API_KEY,
        base_url=config.OPENAI_BASE_URL,
        timeout=config.PROVIDER_TIMEOUT_SECONDS,
        max_retries=0,
    )


def classify_openai_error(error: openai.OpenAIError) -> ProviderErrorKind:
    # APITimeoutError subclasses APIConnectionError, so it is checked first
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderErrorKind.AUTHENTICATION
    if isinstance(error, openai.RateLimitError):
        return ProviderErrorKind.RATE_LIMIT
    if isinstance(error, openai.APITimeoutError):
        return ProviderErrorKind.TIMEOUT
    if isinstance(error, openai.APIConnectionError):
        return ProviderErrorKind.NETWORK
    return ProviderErrorKind.API_ERROR


def to_provider_error(error: openai.OpenAIError, provider: str) -> ProviderError:
    kind = classify_openai_error(error)
    details = {}
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        details["status_code"] = status_code
    return ProviderError(f"{type(error).__name__}: {error}", kind, provider, details)
