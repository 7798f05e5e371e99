"""Deterministic, rule-based intent parsing.

Used whenever no LLM is configured or the LLM path fails. Rules are evaluated
in a fixed priority order and the first matching rule builds the intent.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from nlquery.config import DatabaseConfig
from nlquery.query.models import ConversationContext, QueryIntent

logger = logging.getLogger(__name__)

NAME = r"[A-Z][\w'.-]*(?:\s+[A-Z][\w'.-]*)*"

ENTITY_PATTERNS = [
    re.compile(rf"\b(?:done|created|made|painted|drawn|taken)\s+by\s+({NAME})"),
    re.compile(rf"\b(?:by|from|of)\s+({NAME})"),
    re.compile(
        rf"\b({NAME})(?:'s)?\s+(?:work|works|items|images|pictures|pieces|art|artworks|documents|records)\b"
    ),
    re.compile(rf"\b(?:does|do|did|has|have)\s+({NAME})\s+(?:have|has|make|made|create|created|own)\b"),
]

GENERIC_TERMS = ("collections", "database", "many", "total", "how", "what", "where", "when")
# Sentence-initial words that the capitalized-name patterns can swallow
LEADING_WORDS = {
    "analyze", "analyse", "summarize", "summarise", "find", "show", "search", "count",
    "list", "describe", "which", "who", "does", "do", "did", "has", "have", "is", "are",
    "the", "all", "also", "please",
}

COLLECTION_PATTERNS = [
    re.compile(r"\b(?:in|from|of)\s+(?:the\s+)?([A-Za-z][\w-]*)"),
    re.compile(r"\b([A-Za-z][\w-]*)\s+collection\b"),
    re.compile(r"\bcollection\s+([A-Za-z][\w-]*)"),
]
COLLECTION_STOPWORDS = {
    "the", "this", "that", "same", "my", "your", "our", "their", "all", "some",
    "any", "each", "every", "a", "an", "database", "collections", "collection",
}
COLLECTION_REFERENCE = re.compile(r"\b(this|that|same|the)\s+collection\b", re.IGNORECASE)

TOP_N_PATTERN = re.compile(r"\btop\s+(\d+)\b", re.IGNORECASE)
RANKING_PATTERN = re.compile(r"\bwhich\b.*\b(most|top|best|highest)\b", re.IGNORECASE)
AGGREGATE_PATTERN = re.compile(
    r"\b(sum|total|average|avg|mean|minimum|min|lowest|maximum|max|highest)\s+(?:of\s+)?(?:the\s+)?([a-z_][\w]*)",
    re.IGNORECASE,
)
AGGREGATE_FUNCTIONS = {
    "sum": "sum",
    "total": "sum",
    "average": "average",
    "avg": "average",
    "mean": "average",
    "minimum": "min",
    "min": "min",
    "lowest": "min",
    "maximum": "max",
    "max": "max",
    "highest": "max",
}
# Words that follow an aggregate keyword without naming a numeric field
AGGREGATE_NON_FIELDS = {"number", "count", "amount", "items", "vectors", "records", "collections"}


def _has_any(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)


@dataclass
class QuestionFeatures:
    """Facts extracted once from a question and shared by every rule."""

    text: str
    lower: str
    collection: str | None = None
    entity: str | None = None
    entity_words: tuple[str, ...] = field(default_factory=tuple)

    @property
    def scope(self) -> str:
        return "collection" if self.collection else "database"

    @property
    def mentions_entities(self) -> bool:
        return any(re.search(rf"\b{re.escape(word)}\b", self.lower) for word in self.entity_words)

    @property
    def asks_count(self) -> bool:
        return _has_any(self.lower, "how many", "count", "number of")


@dataclass(frozen=True)
class FallbackRule:
    """A (predicate, builder) pair in the priority list."""

    name: str
    matches: Callable[[QuestionFeatures], bool]
    build: Callable[[QuestionFeatures], QueryIntent]


def extract_collection(
    question: str,
    collections: Sequence[str],
    current_collection: str | None = None,
) -> str | None:
    """Find the collection a question refers to.

    Known collection names mentioned anywhere win. Without a known list, only
    explicit "<name> collection" / "collection <name>" phrasing is trusted. A
    "this/that/the collection" reference falls back to ``current_collection``.
    """
    lower = question.lower()
    known = {name.lower(): name for name in collections}

    for lowered, name in sorted(known.items(), key=lambda item: -len(item[0])):
        if re.search(rf"(?<![\w-]){re.escape(lowered)}(?![\w-])", lower):
            return name

    patterns = COLLECTION_PATTERNS if known else COLLECTION_PATTERNS[1:]
    for pattern in patterns:
        for match in pattern.finditer(lower):
            candidate = match.group(1)
            if candidate in COLLECTION_STOPWORDS:
                continue
            if known:
                if candidate in known:
                    return known[candidate]
            else:
                return candidate

    if current_collection and COLLECTION_REFERENCE.search(question):
        return current_collection
    return None


def _clean_name(candidate: str) -> str:
    return candidate.strip().rstrip("'.?!,").removesuffix("'s").strip()


def _strip_leading_words(candidate: str) -> str:
    words = candidate.split()
    while words and words[0].lower() in LEADING_WORDS:
        words.pop(0)
    return " ".join(words)


def extract_entity(
    question: str,
    collections: Sequence[str],
    known_entity: str | None = None,
) -> tuple[str | None, str | None]:
    """Extract an entity name, diverting collection names.

    Returns:
        ``(entity, collection)``; a candidate naming a known collection is
        returned as the collection instead of the entity
    """
    if known_entity and known_entity.lower() in question.lower():
        return known_entity, None

    known = {name.lower(): name for name in collections}
    for pattern in ENTITY_PATTERNS:
        for match in pattern.finditer(question):
            candidate = _clean_name(match.group(1))
            if not candidate:
                continue
            words = candidate.lower().split()
            if any(term in words for term in GENERIC_TERMS):
                continue
            candidate = _strip_leading_words(candidate)
            if not candidate:
                continue
            if candidate.lower() in known:
                return None, known[candidate.lower()]
            return candidate, None
    return None, None


class FallbackIntentParser:
    """Priority-ordered decision list turning a question into an intent."""

    def __init__(self, database_config: DatabaseConfig) -> None:
        self.db = database_config
        self.rules: list[FallbackRule] = [
            FallbackRule("database_count", self._is_database_count, self._database_count),
            FallbackRule("database_enumerate", self._is_database_enumerate, self._database_enumerate),
            FallbackRule("database_describe", self._is_database_describe, self._database_describe),
            FallbackRule("ranking", self._is_ranking, self._ranking),
            FallbackRule("top_n", lambda f: bool(TOP_N_PATTERN.search(f.text)), self._top_n),
            FallbackRule("entity_summarize", self._entity_verb("summarize", "summarise"), self._entity("summarize")),
            FallbackRule("entity_count", self._entity_verb("how many", "count"), self._entity("count")),
            FallbackRule("entity_search", self._entity_verb("find", "search", "show"), self._entity("search")),
            FallbackRule("entity_analyze", self._entity_verb("analyze", "analyse", "analysis"), self._entity("analyze")),
            FallbackRule("collection_describe", self._is_collection_describe, self._collection_describe),
            FallbackRule("generic_count", lambda f: f.asks_count, self._generic_count),
            FallbackRule("generic_search", lambda f: _has_any(f.lower, "find", "search"), self._generic_search),
            FallbackRule("generic_list", lambda f: _has_any(f.lower, "list", "show"), self._generic_list),
            FallbackRule("generic_describe", lambda f: "describe" in f.lower, self._generic_describe),
            FallbackRule("aggregate", lambda f: bool(self._aggregate_match(f)), self._aggregate),
        ]

    def features(
        self,
        question: str,
        collections: Sequence[str] = (),
        context: ConversationContext | None = None,
        current_collection: str | None = None,
    ) -> QuestionFeatures:
        entity, entity_collection = extract_entity(
            question, collections, context.last_entity if context else None
        )
        collection = entity_collection or extract_collection(question, collections, current_collection)
        entity_words = (
            self.db.entity_type,
            self.db.entity_type_plural,
            "entity",
            "entities",
            "artist",
            "artists",
            "creator",
            "creators",
        )
        return QuestionFeatures(
            text=question,
            lower=question.lower(),
            collection=collection,
            entity=entity,
            entity_words=entity_words,
        )

    def parse(
        self,
        question: str,
        collections: Sequence[str] = (),
        context: ConversationContext | None = None,
        current_collection: str | None = None,
    ) -> QueryIntent:
        """Build an intent from the first matching rule.

        Args:
            question: Enriched question text
            collections: Known collection names
            context: Conversation context, used to recognise the last entity
            current_collection: Collection resolved from the conversation

        Returns:
            A QueryIntent; never raises for any input text
        """
        features = self.features(question, collections, context, current_collection)
        for rule in self.rules:
            if rule.matches(features):
                logger.debug(f"Fallback rule '{rule.name}' matched: {question}")
                return rule.build(features)
        return self._final(features)

    # Database / collection management

    @staticmethod
    def _mentions_database(f: QuestionFeatures) -> bool:
        return _has_any(f.lower, "collections", "database")

    def _is_database_count(self, f: QuestionFeatures) -> bool:
        return self._mentions_database(f) and f.asks_count

    def _database_count(self, f: QuestionFeatures) -> QueryIntent:
        wants_total = _has_any(f.lower, "vector", "item", "record", "total")
        return QueryIntent(type="count", target="total" if wants_total else "collections", scope="database")

    def _is_database_enumerate(self, f: QuestionFeatures) -> bool:
        return self._mentions_database(f) and _has_any(f.lower, "list", "what", "show", "exist")

    def _database_enumerate(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(type="collections", target="list", scope="database")

    def _is_database_describe(self, f: QuestionFeatures) -> bool:
        return self._mentions_database(f) and "describe" in f.lower

    def _database_describe(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(type="database", target="overview", scope="database")

    # Rankings

    @staticmethod
    def _is_ranking(f: QuestionFeatures) -> bool:
        return bool(RANKING_PATTERN.search(f.text))

    def _ranking(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(
            type="ranking",
            target="entities",
            limit=1,
            sort_by="item_count",
            sort_order="desc",
            scope=f.scope,
            extracted_collection=f.collection,
        )

    def _top_n(self, f: QuestionFeatures) -> QueryIntent:
        limit = max(int(TOP_N_PATTERN.search(f.text).group(1)), 1)
        return QueryIntent(
            type="top",
            target="entities",
            limit=limit,
            sort_by="item_count",
            sort_order="desc",
            scope=f.scope,
            extracted_collection=f.collection,
        )

    # Entity-centred questions

    @staticmethod
    def _entity_verb(*verbs: str) -> Callable[[QuestionFeatures], bool]:
        def matches(f: QuestionFeatures) -> bool:
            return f.entity is not None and _has_any(f.lower, *verbs)

        return matches

    def _entity(self, query_type: str) -> Callable[[QuestionFeatures], QueryIntent]:
        def build(f: QuestionFeatures) -> QueryIntent:
            return QueryIntent(
                type=query_type,
                target="items",
                filter={self.db.entity_field: f.entity},
                limit=10 if query_type == "search" else None,
                scope=f.scope,
                extracted_collection=f.collection,
            )

        return build

    @staticmethod
    def _is_collection_describe(f: QuestionFeatures) -> bool:
        return (
            f.collection is not None
            and f.entity is None
            and _has_any(f.lower, "summarize", "summarise", "summary", "describe")
        )

    def _collection_describe(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(
            type="describe",
            target="collection",
            scope="collection",
            extracted_collection=f.collection,
        )

    # Generic fallbacks

    def _generic_count(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(
            type="count",
            target="entities" if f.mentions_entities else "total",
            scope=f.scope,
            extracted_collection=f.collection,
        )

    def _generic_search(self, f: QuestionFeatures) -> QueryIntent:
        scope = "database" if _has_any(f.lower, "all collections", "across") else f.scope
        return QueryIntent(
            type="search",
            target="items",
            limit=10,
            scope=scope,
            extracted_collection=f.collection,
        )

    def _generic_list(self, f: QuestionFeatures) -> QueryIntent:
        if f.mentions_entities:
            return QueryIntent(
                type="list",
                target="entities",
                limit=50,
                scope=f.scope,
                extracted_collection=f.collection,
            )
        return QueryIntent(
            type="list",
            target="items",
            limit=20,
            scope=f.scope,
            extracted_collection=f.collection,
        )

    def _generic_describe(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(
            type="describe",
            target="collection" if f.collection else "database",
            scope=f.scope,
            extracted_collection=f.collection,
        )

    @staticmethod
    def _aggregate_match(f: QuestionFeatures) -> re.Match | None:
        for match in AGGREGATE_PATTERN.finditer(f.text):
            if match.group(2).lower() not in AGGREGATE_NON_FIELDS:
                return match
        return None

    def _aggregate(self, f: QuestionFeatures) -> QueryIntent:
        match = self._aggregate_match(f)
        return QueryIntent(
            type="aggregate",
            target=match.group(2).lower(),
            aggregation_function=AGGREGATE_FUNCTIONS[match.group(1).lower()],
            aggregation_field=match.group(2).lower(),
            scope=f.scope,
            extracted_collection=f.collection,
        )

    def _final(self, f: QuestionFeatures) -> QueryIntent:
        return QueryIntent(
            type="describe",
            target="collection",
            scope=f.scope,
            extracted_collection=f.collection,
        )
