"""Query processing models and data structures."""

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

QueryType = Literal[
    "count",
    "search",
    "list",
    "filter",
    "describe",
    "collections",
    "database",
    "summarize",
    "analyze",
    "top",
    "ranking",
    "aggregate",
]
Scope = Literal["collection", "database"]

MAX_HISTORY_TURNS = 10


class QueryIntent(BaseModel):
    """Structured interpretation of a question."""

    model_config = ConfigDict(populate_by_name=True)

    type: QueryType
    target: str = "items"
    filter: dict[str, Any] | list[dict[str, Any]] | None = None
    limit: int | None = Field(default=None, ge=1)
    scope: Scope = "database"
    extracted_collection: str | None = Field(default=None, alias="extractedCollection")
    sort_by: str | None = Field(default=None, alias="sortBy")
    sort_order: Literal["asc", "desc"] | None = Field(default=None, alias="sortOrder")
    aggregation_function: Literal["sum", "average", "min", "max"] | None = Field(
        default=None, alias="aggregationFunction"
    )
    aggregation_field: str | None = Field(default=None, alias="aggregationField")

    @model_validator(mode="before")
    @classmethod
    def _default_scope(cls, data: Any) -> Any:
        # LLM output may omit or null the scope; infer it from the collection
        if isinstance(data, dict) and not data.get("scope"):
            data = dict(data)
            has_collection = data.get("extractedCollection") or data.get("extracted_collection")
            data["scope"] = "collection" if has_collection else "database"
        if isinstance(data, dict) and not data.get("target"):
            data = dict(data)
            data["target"] = "items"
        return data

    @property
    def is_actionable_aggregate(self) -> bool:
        return self.type == "aggregate" and bool(self.aggregation_function and self.aggregation_field)

    def summary(self) -> dict[str, Any]:
        """Fields remembered in conversation history."""
        return {
            "type": self.type,
            "target": self.target,
            "filter": self.filter,
            "scope": self.scope,
            "extractedCollection": self.extracted_collection,
        }


class ConversationTurn(BaseModel):
    """One question/answer exchange remembered by the context."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"turn_{uuid.uuid4().hex[:12]}")
    question: str
    intent: dict[str, Any]
    result: Any = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationContext(BaseModel):
    """Rolling conversational state threaded through turns by the caller.

    Instances are never mutated; every turn produces a new value.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    last_entity: str | None = Field(default=None, alias="lastEntity")
    last_collection: str | None = Field(default=None, alias="lastCollection")
    last_query_type: str | None = Field(default=None, alias="lastQueryType")
    last_target: str | None = Field(default=None, alias="lastTarget")
    current_topic: str | None = Field(default=None, alias="currentTopic")
    conversation_history: tuple[ConversationTurn, ...] = Field(
        default=(), alias="conversationHistory"
    )

    @property
    def last_turn(self) -> ConversationTurn | None:
        return self.conversation_history[-1] if self.conversation_history else None


class QueryResponse(BaseModel):
    """Complete result of processing one question."""

    answer: str
    query_type: str
    data: Any = None
    execution_time_ms: int
    context: ConversationContext
    intent: QueryIntent | None = None
