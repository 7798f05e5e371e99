"""Conversational context: reference resolution before parsing, memory after."""

import logging
import re
from dataclasses import dataclass
from typing import Any

from nlquery.query.models import (
    MAX_HISTORY_TURNS,
    ConversationContext,
    ConversationTurn,
    QueryIntent,
)
from nlquery.store.filters import filter_value

logger = logging.getLogger(__name__)

POSSESSIVE_PATTERN = re.compile(r"\b(their|his|her|its)\b", re.IGNORECASE)
PERSON_PRONOUN_PATTERN = re.compile(r"\b(he|him|they|them)\b", re.IGNORECASE)
ALSO_PATTERN = re.compile(r"\balso\b", re.IGNORECASE)
IT_PATTERN = re.compile(r"\bit\b", re.IGNORECASE)
CONTINUATION_PATTERN = re.compile(
    r"^\s*(?i:what about|how about|and)\s+([A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*)*)",
)
CONTINUATION_PREFIX = re.compile(r"^\s*(?:what about|how about)\b", re.IGNORECASE)
COLLECTION_REFERENCE_PATTERN = re.compile(r"\b(this|that|same|the)\s+collection\b", re.IGNORECASE)
DATABASE_WIDE_PATTERN = re.compile(
    r"\b(all collections|across (?:all )?collections|database)\b", re.IGNORECASE
)

# Result keys whose list values are compacted before being stored in history
_BREAKDOWN_KEYS = ("results_by_collection", "by_collection")


@dataclass(frozen=True)
class ResolvedQuestion:
    """Outcome of context resolution."""

    question: str
    collection: str | None
    context: ConversationContext


def _single_matching_collection(result: Any) -> str | None:
    if not isinstance(result, dict):
        return None
    breakdown = result.get("results_by_collection")
    if not isinstance(breakdown, list):
        return None
    positive = [
        entry.get("collection")
        for entry in breakdown
        if isinstance(entry, dict) and (entry.get("count") or 0) > 0
    ]
    return positive[0] if len(positive) == 1 else None


class ContextResolver:
    """Rewrite a question using earlier turns and infer the target collection."""

    def resolve(
        self,
        question: str,
        collection: str | None = None,
        context: ConversationContext | None = None,
    ) -> ResolvedQuestion:
        """Resolve pronouns, continuations and the implicit collection.

        Args:
            question: Raw user question
            collection: Collection explicitly chosen by the caller
            context: Context from the previous turn

        Returns:
            ResolvedQuestion with the enriched text, the collection (may be None)
            and the unchanged context
        """
        context = context or ConversationContext()
        enriched = self._rewrite(question, context)
        resolved_collection = collection or self._infer_collection(question, context)

        if enriched != question:
            logger.debug(f"Resolved question '{question}' -> '{enriched}'")
        return ResolvedQuestion(question=enriched, collection=resolved_collection, context=context)

    def _rewrite(self, question: str, context: ConversationContext) -> str:
        entity = context.last_entity
        text = question

        continuation = CONTINUATION_PATTERN.match(text)
        if continuation is None and CONTINUATION_PREFIX.match(text):
            # "what about jane doe" still counts, the name is just not capitalized
            continuation = re.match(
                r"^\s*(?:what about|how about)\s+(.+?)[?.!]*\s*$", text, re.IGNORECASE
            )
        if continuation and context.last_query_type and context.last_target:
            name = continuation.group(1).strip().rstrip("?.!")
            return f"{context.last_query_type} {context.last_target} by {name}"

        if entity:
            text = POSSESSIVE_PATTERN.sub(lambda _: f"{entity}'s", text)
            text = PERSON_PRONOUN_PATTERN.sub(lambda _: entity, text)
            if entity.lower() not in text.lower():
                text = ALSO_PATTERN.sub(lambda _: f"also for {entity}", text, count=1)

        if context.last_collection:
            text = IT_PATTERN.sub(lambda _: context.last_collection, text)

        return text

    def _infer_collection(self, question: str, context: ConversationContext) -> str | None:
        if context.last_collection and (
            COLLECTION_REFERENCE_PATTERN.search(question)
            or not DATABASE_WIDE_PATTERN.search(question)
        ):
            return context.last_collection

        last_turn = context.last_turn
        if last_turn is not None:
            return _single_matching_collection(last_turn.result)
        return None


def compact_result(result: Any) -> Any:
    """Shrink a handler result to what later turns need to remember."""
    if not isinstance(result, dict):
        return result

    compact: dict[str, Any] = {}
    for key, value in result.items():
        if key in _BREAKDOWN_KEYS and isinstance(value, list):
            compact[key] = [
                {
                    "collection": entry.get("collection", entry.get("name")),
                    "count": entry.get("count", entry.get("item_count", 0)),
                }
                for entry in value
                if isinstance(entry, dict)
            ]
        elif isinstance(value, (str, int, float, bool)) or value is None:
            compact[key] = value
    return compact


def extract_topic(question: str) -> str:
    lower = question.lower()
    if "image" in lower or "picture" in lower:
        return "images"
    if "artist" in lower or "painter" in lower or "creator" in lower:
        return "artists"
    if "collection" in lower:
        return "collections"
    return "general"


class ContextUpdater:
    """Fold a finished turn into a new conversation context."""

    def __init__(self, entity_field: str) -> None:
        self.entity_field = entity_field

    def update(
        self,
        context: ConversationContext | None,
        question: str,
        intent: QueryIntent,
        result: Any,
        collection: str | None,
    ) -> ConversationContext:
        """Return a new context that remembers this turn.

        Args:
            context: Context before the turn (left untouched)
            question: The question as asked by the user
            intent: Intent that was executed
            result: Handler result
            collection: Collection the turn operated on, if any

        Returns:
            New context with at most MAX_HISTORY_TURNS turns
        """
        context = context or ConversationContext()

        turn = ConversationTurn(
            question=question,
            intent=intent.summary(),
            result=compact_result(result),
        )
        history = (context.conversation_history + (turn,))[-MAX_HISTORY_TURNS:]

        entity = filter_value(intent.filter, self.entity_field)
        if entity is None and isinstance(result, dict) and not result.get("has_tie"):
            entity = result.get("top_entity")

        return context.model_copy(
            update={
                "conversation_history": history,
                "last_query_type": intent.type,
                "last_target": intent.target,
                "last_collection": collection or intent.extracted_collection or context.last_collection,
                "last_entity": str(entity) if entity is not None else context.last_entity,
                "current_topic": extract_topic(question),
            }
        )
