"""Query engine: the natural-language question pipeline."""

import logging
import time
from collections.abc import Mapping
from typing import Any

from nlquery.config import LLMProvider as LLMProviderEnum
from nlquery.config import Settings, get_settings
from nlquery.errors import QueryEngineError, SearchOperationError, ValidationError
from nlquery.llm.base import LLMProvider
from nlquery.llm.factory import create_provider_pool, provider_for_model
from nlquery.llm.fallback import ProviderFallback
from nlquery.query.context import ContextResolver, ContextUpdater
from nlquery.query.executor import QueryExecutor
from nlquery.query.intent import IntentParser
from nlquery.query.models import ConversationContext, QueryResponse
from nlquery.query.response import ResponseGenerator
from nlquery.query.search import SemanticSearch
from nlquery.store.base import VectorStore

logger = logging.getLogger(__name__)

PROVIDER_NAMES = tuple(p.value for p in LLMProviderEnum)


class QueryEngine:
    """Answer natural-language questions about a vector store.

    The engine is stateless between calls: conversational state lives in the
    ConversationContext the caller threads through successive turns.

    Args:
        store: Vector store capability
        providers: Configured LLM providers keyed by name
        settings: Application settings, defaults to the global settings
    """

    def __init__(
        self,
        store: VectorStore,
        providers: Mapping[str, LLMProvider],
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.providers = dict(providers)

        db = self.settings.database_config
        fallback = ProviderFallback(self.providers)
        self.resolver = ContextResolver()
        self.intent_parser = IntentParser(db, fallback)
        self.executor = QueryExecutor(store, self.settings)
        self.response_generator = ResponseGenerator(db, fallback)
        self.context_updater = ContextUpdater(db.entity_field)
        self.semantic_search = SemanticSearch(store, self.providers, self.settings)

    def _validate(self, question: Any, provider: str) -> str:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("question", question, "question cannot be empty")
        if len(question) > self.settings.max_question_length:
            raise ValidationError(
                "question",
                question,
                f"question cannot exceed {self.settings.max_question_length} characters",
            )
        if provider not in PROVIDER_NAMES:
            raise ValidationError("provider", provider, f"provider must be one of {', '.join(PROVIDER_NAMES)}")
        return question.strip()

    async def process(
        self,
        collection: str | None,
        question: str,
        provider: str = "openai",
        model: str | None = None,
        context: ConversationContext | None = None,
    ) -> QueryResponse:
        """Answer one question.

        Args:
            collection: Explicit target collection, or None to infer it
            question: Natural-language question
            provider: Preferred LLM provider
            model: Optional model id; a catalogued model selects its provider
            context: Context returned by the previous turn

        Returns:
            QueryResponse with the answer, raw data and the new context

        Raises:
            ValidationError: Invalid question, provider or missing collection
            CollectionNotFoundError: The target collection does not exist
            VectorStoreConnectionError: The vector store is unreachable
            SearchOperationError: Any other failure while executing the query
        """
        start = time.perf_counter()
        question = self._validate(question, provider)
        preferred = provider_for_model(model) or provider
        context = context or ConversationContext()

        try:
            collections = await self.store.get_collections()
            resolved = self.resolver.resolve(question, collection, context)
            intent = await self.intent_parser.parse(
                resolved.question,
                preferred,
                model=model,
                context=context,
                collections=collections,
                collection=resolved.collection,
            )
            target = collection or intent.extracted_collection or resolved.collection
            execution = await self.executor.execute(intent, target)
        except QueryEngineError:
            raise
        except Exception as e:
            logger.error(f"Error processing natural query: {e}")
            raise SearchOperationError(e, question, collection) from e

        answer = await self.response_generator.generate(
            question, intent, execution.data, preferred, model
        )
        new_context = self.context_updater.update(
            context,
            question,
            intent,
            execution.data,
            target if intent.scope == "collection" else None,
        )

        execution_time_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"Answered {intent.type} query in {execution_time_ms}ms")

        return QueryResponse(
            answer=answer,
            query_type=intent.type,
            data=execution.data,
            execution_time_ms=execution_time_ms,
            context=new_context,
            intent=intent,
        )

    async def search_similar(
        self,
        query: str,
        collection: str | None = None,
        filters: Any = None,
        k: int = 5,
        provider: str | None = None,
    ) -> list[dict[str, Any]]:
        """Semantic similarity search, see SemanticSearch.translate_and_search."""
        return await self.semantic_search.translate_and_search(query, collection, filters, k, provider)

    async def health_check(self) -> dict[str, bool]:
        """Check the vector store and every configured provider."""
        status = {"vector_store": await self.store.health_check()}
        for name, llm in self.providers.items():
            status[name] = await llm.health_check()
        return status


def build_engine(settings: Settings | None = None, store: VectorStore | None = None) -> QueryEngine:
    """Create the engine with its clients, once per process."""
    from nlquery.store.qdrant import QdrantVectorStore

    settings = settings or get_settings()
    if store is None:
        store = QdrantVectorStore(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            timeout=settings.qdrant_timeout,
        )
    providers = create_provider_pool(settings)
    if not providers:
        logger.warning("No LLM provider configured, using rule-based parsing and template answers")
    return QueryEngine(store, providers, settings)
