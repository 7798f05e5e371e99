"""Natural-language query engine module."""

from .context import ContextResolver, ContextUpdater
from .engine import QueryEngine, build_engine
from .executor import QueryExecutor, QueryPerformanceMetrics
from .fallback import FallbackIntentParser
from .intent import IntentParser
from .models import ConversationContext, ConversationTurn, QueryIntent, QueryResponse
from .response import ResponseGenerator, pluralize
from .search import SemanticSearch

__all__ = [
    "ContextResolver",
    "ContextUpdater",
    "ConversationContext",
    "ConversationTurn",
    "FallbackIntentParser",
    "IntentParser",
    "QueryEngine",
    "QueryExecutor",
    "QueryIntent",
    "QueryPerformanceMetrics",
    "QueryResponse",
    "ResponseGenerator",
    "SemanticSearch",
    "build_engine",
    "pluralize",
]
