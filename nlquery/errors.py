"""Error taxonomy for the query engine."""

from typing import Any


class QueryEngineError(Exception):
    """Base class for errors raised by the query engine."""

    code = "QUERY_ENGINE_ERROR"
    status_code = 500

    def __init__(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for transport layers."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "metadata": self.metadata,
        }


class ValidationError(QueryEngineError):
    """Invalid question or parameters."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, field: str, value: Any, requirement: str) -> None:
        super().__init__(
            f"Validation failed for {field}: {requirement}",
            {"field": field, "value_type": type(value).__name__, "requirement": requirement},
        )


class QueryParsingError(QueryEngineError):
    code = "QUERY_PARSING_FAILED"
    status_code = 400

    def __init__(self, query: str, original_error: Exception | None = None) -> None:
        reason = str(original_error) if original_error else "Invalid query format"
        super().__init__(
            f"Failed to parse natural language query: {reason}",
            {"query": query[:100], "original_error": reason},
        )


class CollectionNotFoundError(QueryEngineError):
    code = "COLLECTION_NOT_FOUND"
    status_code = 404

    def __init__(self, collection: str) -> None:
        super().__init__(f"Collection '{collection}' does not exist", {"collection": collection})
        self.collection = collection


class AuthenticationError(QueryEngineError):
    code = "AUTHENTICATION_FAILED"
    status_code = 401

    def __init__(self, provider: str, operation: str | None = None) -> None:
        operation_text = f" for {operation}" if operation else ""
        super().__init__(
            f"Authentication failed for {provider}{operation_text}. "
            "Please check your API key configuration.",
            {"provider": provider, "operation": operation},
        )
        self.provider = provider


class RateLimitError(QueryEngineError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(self, provider: str, retry_after: float | None = None) -> None:
        retry_text = f". Retry after {retry_after} seconds" if retry_after else ""
        super().__init__(
            f"Rate limit exceeded for {provider}{retry_text}",
            {"provider": provider, "retry_after": retry_after},
        )
        self.provider = provider
        self.retry_after = retry_after


class ProviderNotConfiguredError(QueryEngineError):
    code = "PROVIDER_NOT_CONFIGURED"
    status_code = 503

    def __init__(self, provider: str, operation: str) -> None:
        super().__init__(
            f"Provider '{provider}' is not configured for {operation}. "
            "Please set the required environment variables.",
            {"provider": provider, "operation": operation},
        )
        self.provider = provider


class VectorStoreConnectionError(QueryEngineError):
    code = "VECTOR_STORE_CONNECTION_FAILED"
    status_code = 503

    def __init__(self, original_error: Exception, operation: str | None = None, url: str | None = None) -> None:
        operation_text = f" during {operation}" if operation else ""
        url_text = f" at {url}" if url else ""
        super().__init__(
            f"Failed to connect to the vector store{url_text}{operation_text}: {original_error}",
            {"url": url, "operation": operation, "original_error": str(original_error)},
        )


class EmbeddingGenerationError(QueryEngineError):
    code = "EMBEDDING_FAILED"
    status_code = 502

    def __init__(self, provider: str, original_error: Exception, text: str | None = None) -> None:
        super().__init__(
            f"Embedding generation failed with {provider}: {original_error}",
            {
                "provider": provider,
                "text_length": len(text) if text is not None else None,
                "original_error": str(original_error),
            },
        )


class SearchOperationError(QueryEngineError):
    code = "SEARCH_FAILED"
    status_code = 500

    def __init__(
        self,
        original_error: Exception,
        query: str | None = None,
        collection: str | None = None,
    ) -> None:
        super().__init__(
            f"Search operation failed: {original_error}",
            {
                "query": query[:100] if query else None,
                "collection": collection,
                "original_error": str(original_error),
            },
        )

