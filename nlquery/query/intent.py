"""Intent parsing: LLM-backed with a deterministic fallback."""

import json
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from nlquery.config import DatabaseConfig
from nlquery.errors import QueryParsingError, ValidationError
from nlquery.llm.base import LLMProvider
from nlquery.llm.fallback import ProviderFallback
from nlquery.query.fallback import FallbackIntentParser
from nlquery.query.models import ConversationContext, QueryIntent
from nlquery.store.filters import parse_filter_expr

logger = logging.getLogger(__name__)

PROMPT_HISTORY_TURNS = 3


def extract_json_object(text: str) -> dict[str, Any]:
    """Return the first balanced ``{...}`` block in ``text`` as a dict.

    Raises:
        ValueError: If no JSON object can be found or decoded
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for position in range(start, len(text)):
            char = text[position]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        value = json.loads(text[start : position + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(value, dict):
                        return value
                    break
        start = text.find("{", start + 1)
    raise ValueError("No JSON object found in model output")


class IntentParser:
    """Turn an enriched question into a QueryIntent.

    Args:
        database_config: Domain vocabulary
        fallback: Provider fallback policy over the configured providers
    """

    def __init__(self, database_config: DatabaseConfig, fallback: ProviderFallback) -> None:
        self.db = database_config
        self.fallback = fallback
        self.rules = FallbackIntentParser(database_config)

    async def parse(
        self,
        question: str,
        provider: str,
        model: str | None = None,
        context: ConversationContext | None = None,
        collections: Sequence[str] = (),
        collection: str | None = None,
    ) -> QueryIntent:
        """Parse a question, never raising.

        Args:
            question: Enriched question text
            provider: Preferred provider name
            model: Optional model override
            context: Conversation context for the prompt and fallback rules
            collections: Known collection names
            collection: Collection resolved from the conversation, if any

        Returns:
            Intent from the LLM, or from the rule-based parser on any failure
        """
        if not self.fallback.is_configured():
            logger.info("No LLM provider configured, using rule-based intent parsing")
            return self.rules.parse(question, collections, context, collection)

        system_prompt = self.build_system_prompt(collections, context)
        user_prompt = f'Question: "{question}"'

        async def request(name: str, llm: LLMProvider) -> QueryIntent:
            result = await llm.generate_response(
                user_prompt,
                system_prompt=system_prompt,
                model=model if name == provider else None,
                temperature=0.0,
            )
            return self.to_intent(question, result.content)

        try:
            intent = await self.fallback.run(provider, request, label="intent parsing")
        except Exception as e:
            logger.warning(f"LLM intent parsing failed, using rule-based parser: {e}")
            return self.rules.parse(question, collections, context, collection)

        logger.debug(f"Parsed intent: {intent.model_dump(exclude_none=True)}")
        return intent

    def to_intent(self, question: str, content: str) -> QueryIntent:
        """Validate raw model output as an intent.

        Raises:
            QueryParsingError: If the output holds no valid intent object or
                its filter is not a valid filter expression
        """
        try:
            data = extract_json_object(content)
            data = self._normalize(data)
            intent = QueryIntent.model_validate(data)
            parse_filter_expr(intent.filter)
        except (ValueError, PydanticValidationError, ValidationError) as e:
            raise QueryParsingError(question, e) from e
        return intent

    def _normalize(self, data: dict[str, Any]) -> dict[str, Any]:
        # Models sometimes echo the placeholder key from the prompt
        filter_expr = data.get("filter")
        if isinstance(filter_expr, dict) and "entityField" in filter_expr:
            filter_expr = dict(filter_expr)
            filter_expr[self.db.entity_field] = filter_expr.pop("entityField")
            data = {**data, "filter": filter_expr}
        if data.get("limit") is not None and not isinstance(data["limit"], int):
            try:
                data = {**data, "limit": int(data["limit"])}
            except (TypeError, ValueError):
                data = {**data, "limit": None}
        return data

    def build_system_prompt(
        self,
        collections: Sequence[str],
        context: ConversationContext | None = None,
    ) -> str:
        db = self.db
        entity_plural = db.entity_type_plural
        item_plural = db.item_type_plural
        extra_fields = "\n".join(
            f"- {key} ({label})" for label, key in db.additional_fields.items()
        )
        known = ", ".join(collections) if collections else "(none)"

        history = ""
        if context and context.conversation_history:
            lines = []
            for turn in context.conversation_history[-PROMPT_HISTORY_TURNS:]:
                intent = turn.intent
                lines.append(
                    f'- "{turn.question}" -> type={intent.get("type")}, '
                    f'target={intent.get("target")}, filter={json.dumps(intent.get("filter"))}, '
                    f'collection={intent.get("extractedCollection")}'
                )
            history = "\nRecent conversation:\n" + "\n".join(lines) + "\n"

        return f"""You are a query analyzer for a vector database system. Parse the user's question and return a JSON object with the query intent.

Each collection holds {item_plural}. Payload fields:
- {db.entity_field} ({db.entity_type} name)
{extra_fields}

Known collections: {known}
{history}
Available query types:
- "count": count {item_plural} or {entity_plural}
- "search": find specific {item_plural} (e.g. "find {item_plural} by Jane Doe")
- "list": list {entity_plural} or {item_plural}
- "filter": filter {item_plural} by criteria
- "describe": describe one collection
- "collections": list the collections
- "database": describe the whole database
- "summarize": summarize a {db.entity_type}'s {item_plural}
- "analyze": analyze a {db.entity_type}'s distribution across collections
- "top": top N {entity_plural} by number of {item_plural}
- "ranking": which {db.entity_type} has the most {item_plural}
- "aggregate": sum, average, min or max of a numeric field

Scopes: "collection" for one collection, "database" for every collection.

Filter grammar:
- {{"field": value}} equality
- {{"field": {{"contains": "text"}}}} text match
- {{"field": {{"gt": n, "gte": n, "lt": n, "lte": n}}}} numeric range
- {{"field": {{"in": [a, b]}}}} any of
- {{"field": {{"not": value}}}} anything except
- [{{...}}, {{...}}] all conditions must hold

Return ONLY a JSON object in this format:
{{
  "type": "count|search|list|filter|describe|collections|database|summarize|analyze|top|ranking|aggregate",
  "target": "what to count/search/list (e.g. 'entities', 'items', 'total', 'collections')",
  "filter": filter or null,
  "limit": number or null,
  "scope": "collection|database",
  "extractedCollection": "collection name if mentioned" or null,
  "sortBy": "item_count" or null,
  "sortOrder": "asc|desc" or null,
  "aggregationFunction": "sum|average|min|max" or null,
  "aggregationField": "field name" or null
}}

Examples:
- "How many {entity_plural}?" -> {{"type": "count", "target": "entities", "filter": null, "limit": null, "scope": "database", "extractedCollection": null}}
- "How many collections are there?" -> {{"type": "count", "target": "collections", "filter": null, "limit": null, "scope": "database", "extractedCollection": null}}
- "What collections exist?" -> {{"type": "collections", "target": "list", "filter": null, "limit": null, "scope": "database", "extractedCollection": null}}
- "Describe the database" -> {{"type": "database", "target": "overview", "filter": null, "limit": null, "scope": "database", "extractedCollection": null}}
- "Find {item_plural} by Jane Doe across all collections" -> {{"type": "search", "target": "items", "filter": {{"{db.entity_field}": "Jane Doe"}}, "limit": 10, "scope": "database", "extractedCollection": null}}
- "Which {db.entity_type} has the most {item_plural}?" -> {{"type": "ranking", "target": "entities", "limit": 1, "sortBy": "item_count", "sortOrder": "desc", "scope": "database", "extractedCollection": null}}
- "Average price in sales" -> {{"type": "aggregate", "target": "price", "scope": "collection", "extractedCollection": "sales", "aggregationFunction": "average", "aggregationField": "price"}}"""
