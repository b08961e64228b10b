# core/exceptions.py
"""
Exception hierarchy for the patent RAG service.

Every error carries a human-readable message plus an optional details dict
for logging. Cache errors are absorbed inside the embedding cache; all other
errors propagate to the HTTP handler or the CLI entry point.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ProviderErrorKind(str, Enum):
    """Closed set of failure kinds reported by external model providers."""
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    MALFORMED_RESPONSE = "malformed_response"
    API_ERROR = "api_error"

    @property
    def retryable(self) -> bool:
        return self in (ProviderErrorKind.RATE_LIMIT, ProviderErrorKind.TIMEOUT, ProviderErrorKind.NETWORK)


class PersistenceErrorCode(str, Enum):
    """Failure kinds reported by the chunk store."""
    UNAVAILABLE = "unavailable"
    DUPLICATE_CHUNK = "duplicate_chunk"
    QUERY_FAILED = "query_failed"


class RAGError(Exception):
    """Base exception for all service errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RAGError):
    """Required configuration is missing or invalid (e.g. OPENAI_API_KEY)."""


class InvalidArgumentError(RAGError):
    """A caller supplied an argument outside its contract."""


class ExtractionError(RAGError):
    """A document could not be turned into plain text."""


class CacheError(RAGError):
    """The embedding cache could not be read or written. Never fatal."""


class PersistenceError(RAGError):
    """The chunk store is unreachable or rejected an operation."""

    def __init__(
        self,
        message: str,
        code: PersistenceErrorCode = PersistenceErrorCode.QUERY_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.code = code
        super().__init__(message, details)

    def __str__(self) -> str:
        return f"[{self.code.value}] {super().__str__()}"


class ProviderError(RAGError):
    """An external embedding or chat call failed."""

    def __init__(
        self,
        message: str,
        kind: ProviderErrorKind,
        provider: str = "embedding",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.kind = kind
        self.provider = provider
        super().__init__(message, details)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        return f"[{self.provider}:{self.kind.value}] {super().__str__()}"


class MalformedResponseError(ProviderError):
    """An expected field was absent or invalid in an external response."""

    def __init__(self, message: str, provider: str = "embedding", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, ProviderErrorKind.MALFORMED_RESPONSE, provider, details)


class RetrievalError(RAGError):
    """A search failed; wraps the underlying cache, provider or store error."""
