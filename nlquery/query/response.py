"""Natural-language answers for query results."""

import json
import logging
from collections.abc import Sequence
from typing import Any

from nlquery.config import DatabaseConfig
from nlquery.llm.base import LLMProvider
from nlquery.llm.fallback import ProviderFallback
from nlquery.query.models import QueryIntent

logger = logging.getLogger(__name__)

MAX_PROMPT_DATA_CHARS = 6000


def pluralize(count: int | float) -> str:
    return "" if count == 1 else "s"


def join_names(names: Sequence[str]) -> str:
    """Join names as "A", "A and B" or "A, B and C"."""
    names = [str(name) for name in names]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.2f}"
    return str(value)


GUIDANCE = {
    "count": (
        "State the number first. For database-wide counts with a per-collection breakdown, "
        "mention each collection with its count, and use the item_type_hint (image, document, "
        "mixed) to name what is being counted instead of the generic word 'vectors'."
    ),
    "search": (
        "If total_matches or total_count is larger than the number of items shown, say how "
        "many matched in total and how many are displayed. Mention a few example items."
    ),
    "list": "List the values returned. If the list was truncated, say so.",
    "filter": "Say how many items matched the filter and how many are displayed.",
    "describe": "Summarize the collection size, the number of unique entities and a few examples.",
    "collections": "List each collection with its size and item type.",
    "database": "Give the number of collections and the total size, then list the collections.",
    "summarize": "Summarize how many items the entity has and where they are.",
    "analyze": "Describe how the entity's items are distributed across collections.",
    "top": "List the entities in rank order with their counts.",
    "ranking": (
        "Name the entity with the most items. If has_tie is true, name every tied entity "
        "and say they share the maximum count."
    ),
    "aggregate": (
        "Give the computed value and how many items had a numeric value. If result is null, "
        "explain the message instead."
    ),
}


class ResponseGenerator:
    """Turn structured results into prose.

    Args:
        database_config: Domain vocabulary used in the templates
        fallback: Provider fallback policy over the configured providers
    """

    def __init__(self, database_config: DatabaseConfig, fallback: ProviderFallback) -> None:
        self.db = database_config
        self.fallback = fallback

    async def generate(
        self,
        question: str,
        intent: QueryIntent,
        data: Any,
        provider: str,
        model: str | None = None,
    ) -> str:
        """Generate an answer, never raising.

        Args:
            question: The question as asked by the user
            intent: Intent that produced the data
            data: Handler result
            provider: Preferred provider name
            model: Optional model override

        Returns:
            LLM answer, or a template answer on any failure
        """
        if not self.fallback.is_configured():
            return self.fallback_response(intent, data)

        system_prompt = self.build_system_prompt(intent)
        prompt = self.build_prompt(question, intent, data)

        async def request(name: str, llm: LLMProvider) -> str:
            result = await llm.generate_response(
                prompt,
                system_prompt=system_prompt,
                model=model if name == provider else None,
                temperature=0.3,
                max_tokens=300,
            )
            answer = result.content.strip()
            if not answer:
                raise ValueError("Empty response from model")
            return answer

        try:
            return await self.fallback.run(provider, request, label="response generation")
        except Exception as e:
            logger.warning(f"Failed to generate LLM response, using fallback: {e}")
            return self.fallback_response(intent, data)

    def build_system_prompt(self, intent: QueryIntent) -> str:
        guidance = GUIDANCE.get(intent.type, "")
        return f"""You are a helpful assistant that explains vector database query results in natural language.

The database stores {self.db.item_type_plural}; each belongs to a {self.db.entity_type} (payload field "{self.db.entity_field}").

Guidance for this result:
{guidance}

Provide a concise, natural language response that directly answers the user's question. Be specific with numbers and names when available. Do not invent data that is not in the result."""

    def build_prompt(self, question: str, intent: QueryIntent, data: Any) -> str:
        serialized = json.dumps(data, indent=2, default=str)
        if len(serialized) > MAX_PROMPT_DATA_CHARS:
            serialized = serialized[:MAX_PROMPT_DATA_CHARS] + "\n... (truncated)"
        return f"""The user asked: "{question}"
The query type was: {intent.type}
The query scope was: {intent.scope}
The data returned is:
{serialized}"""

    # Fallback templates

    def _item_noun(self, count: int, hint: str | None = None) -> str:
        noun = hint if hint in ("image", "document") else self.db.item_type
        return f"{noun}{pluralize(count)}"

    def _entity_noun(self, count: int) -> str:
        return self.db.entity_type if count == 1 else self.db.entity_type_plural

    def fallback_response(self, intent: QueryIntent, data: Any) -> str:
        """Deterministic template answer for a result."""
        if not isinstance(data, dict):
            return "I processed your query successfully using pattern matching."

        if intent.type == "aggregate" or ("result" in data and data.get("result") is None and "message" in data):
            return self._aggregate(data)
        if "tie_count" in data:
            return self._ranking(intent, data)

        handler = {
            "count": self._count,
            "collections": self._collections,
            "database": self._database,
            "search": self._search,
            "filter": self._search,
            "list": self._list,
            "describe": self._describe,
            "summarize": self._summarize,
            "analyze": self._analyze,
        }.get(intent.type)
        if handler is None:
            return "I processed your query successfully using pattern matching."
        return handler(intent, data)

    def _count(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        count = data.get("count") or 0

        if "collections" in data and isinstance(data["collections"], list) and intent.scope == "database":
            names = ", ".join(data["collections"]) or "None found"
            return f"I found {count} collection{pluralize(count)} in the database: {names}."

        if "results_by_collection" in data:
            entity = data.get("entity") or "the matching filter"
            if not count:
                return f"I couldn't find any {self.db.item_type_plural} by {entity} in the database."
            parts = [
                f"{entry['collection']} ({entry['count']})"
                for entry in data["results_by_collection"]
                if entry.get("count")
            ]
            return (
                f"{entity} has {count} {self._item_noun(count)} across the database: "
                f"{', '.join(parts)}."
            )

        if "by_collection" in data:
            breakdown = data["by_collection"]
            parts = [
                f"{entry['name']} ({entry['count']} {self._item_noun(entry['count'], entry.get('item_type_hint'))})"
                for entry in breakdown
            ]
            summary = (
                f"The database contains {count} total item{pluralize(count)} across "
                f"{len(breakdown)} collection{pluralize(len(breakdown))}"
            )
            return f"{summary}: {', '.join(parts)}." if parts else f"{summary}."

        if "entities" in data:
            where = "across all collections" if intent.scope == "database" else "in the collection"
            sample = ", ".join(data["entities"][:5]) or f"No {self.db.entity_type_plural} found"
            answer = (
                f"I found {count} unique {self._entity_noun(count)} {where}. "
                f"Some of them include: {sample}."
            )
            if data.get("truncated"):
                answer += " The scan stopped at its safety limit, so the real number may be higher."
            return answer

        if data.get("filter"):
            return f"I found {count} {self._item_noun(count)} matching your criteria."
        return f"The collection contains {count} total {self._item_noun(count)}."

    def _collections(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        # Collection-scoped "collections" intents carry a collection description
        if "collections" not in data:
            return self._describe(intent, data)
        collections = data["collections"] or []
        if not collections:
            return "The database doesn't contain any collections yet."
        parts = [
            f"{c['name']} ({c.get('vectors_count', 0)} {self._item_noun(c.get('vectors_count', 0), c.get('item_type_hint'))})"
            for c in collections
        ]
        return (
            f"The database contains {len(collections)} collection{pluralize(len(collections))}: "
            f"{', '.join(parts)}."
        )

    def _database(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        if "total_collections" not in data:
            return self._describe(intent, data)
        total_collections = data.get("total_collections", 0)
        total_vectors = data.get("total_vectors", 0)
        return (
            f"The database contains {total_collections} collection{pluralize(total_collections)} "
            f"with a total of {total_vectors} vector{pluralize(total_vectors)}."
        )

    def _search(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        if "results_by_collection" in data:
            total = data.get("total_count", 0)
            searched = data.get("collections_searched", 0)
            answer = (
                f"I searched across {searched} collection{pluralize(searched)} and found "
                f"{total} matching {self._item_noun(total)}"
            )
            displayed = data.get("displayed_count", total)
            if displayed < total:
                answer += f" (showing {displayed})"
            parts = [f"{entry['collection']} ({entry['count']})" for entry in data["results_by_collection"]]
            return f"{answer}: {', '.join(parts)}." if parts else f"{answer}."

        shown = data.get("count", 0)
        total = data.get("total_matches", shown)
        if total > shown:
            return (
                f"I found {total} {self._item_noun(total)} matching your criteria, "
                f"showing the first {shown}."
            )
        return f"I found {shown} {self._item_noun(shown)} matching your criteria."

    def _list(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        if "entities" in data:
            entities = data["entities"]
            where = "across all collections" if intent.scope == "database" else "in the collection"
            total = data.get("count", len(entities))
            shown = ", ".join(entities[:10]) or f"No {self.db.entity_type_plural} found"
            more = "..." if len(entities) > 10 else ""
            return f"I found {total} unique {self._entity_noun(total)} {where}: {shown}{more}."
        if "collections" in data:
            return self._collections(intent, data)
        if "results_by_collection" in data:
            return self._search(intent, data)
        count = data.get("count", 0)
        return f"I found {count} {self._item_noun(count)} in the collection."

    def _describe(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        if "total_collections" in data:
            return self._database(intent, data)
        total = data.get("total_items", 0)
        unique = data.get("unique_entities", 0)
        sample = ", ".join(data.get("sample_entities", [])[:5]) or f"No {self.db.entity_type_plural} found"
        name = data.get("collection", "This collection")
        return (
            f"{name} contains {total} {self._item_noun(total, data.get('item_type_hint'))} from "
            f"{unique} unique {self._entity_noun(unique)}. Some featured {self.db.entity_type_plural} "
            f"include: {sample}."
        )

    def _summarize(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        if "entity" not in data:
            return self._describe(intent, data)
        entity = data.get("entity") or "This " + self.db.entity_type
        if "results_by_collection" in data:
            total = data.get("total_items", 0)
            if not total:
                return f"I couldn't find any {self.db.item_type_plural} by {entity}."
            parts = [f"{entry['collection']} ({entry['count']})" for entry in data["results_by_collection"]]
            return (
                f"{entity} has {total} {self._item_noun(total)} across "
                f"{len(parts)} collection{pluralize(len(parts))}: {', '.join(parts)}."
            )
        count = data.get("count", 0)
        if not count:
            return f"I couldn't find any {self.db.item_type_plural} by {entity} in {data.get('collection')}."
        return f"{entity} has {count} {self._item_noun(count, data.get('item_type_hint'))} in {data.get('collection')}."

    def _analyze(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        entity = data.get("entity") or "This " + self.db.entity_type
        if "results_by_collection" in data:
            total = data.get("total_items", 0)
            with_items = data.get("collections_with_items", 0)
            share = data.get("share", 0.0) * 100
            return (
                f"{entity} has {total} {self._item_noun(total)} spread over {with_items} "
                f"collection{pluralize(with_items)}, {share:.1f}% of the database."
            )
        count = data.get("count", 0)
        share = data.get("share", 0.0) * 100
        return (
            f"{entity} has {count} of the {data.get('total_items', 0)} "
            f"{self.db.item_type_plural} in {data.get('collection')} ({share:.1f}%)."
        )

    def _ranking(self, intent: QueryIntent, data: dict[str, Any]) -> str:
        entities = data.get("entities") or []
        if not entities:
            return f"I couldn't find any {self.db.entity_type_plural} to rank."

        max_count = data.get("max_count", 0)
        items = self._item_noun(max_count)

        if intent.type == "top" and (intent.limit or 0) > 1:
            ranked = ", ".join(f"{e['entity']} ({e['count']})" for e in entities)
            return (
                f"The top {len(entities)} {self._entity_noun(len(entities))} by number of "
                f"{self.db.item_type_plural} are: {ranked}."
            )

        if not data.get("has_tie"):
            return f"{data['top_entity']} has the most {self.db.item_type_plural} with {max_count} {items}."

        tied = data.get("tied_entities") or []
        return f"{join_names(tied)} are tied for the most {self.db.item_type_plural} with {max_count} {items} each."

    def _aggregate(self, data: dict[str, Any]) -> str:
        if data.get("result") is None:
            return data.get("message") or "I couldn't compute that aggregation."
        function = data.get("function")
        label = "average" if function == "average" else {"sum": "total", "min": "minimum", "max": "maximum"}[function]
        considered = data.get("item_count_considered", 0)
        return (
            f"The {label} {data.get('field')} in {data.get('collection')} is "
            f"{_format_number(data['result'])}, based on {considered} "
            f"{self._item_noun(considered)} with a numeric value."
        )
