"""Translation of intent filter expressions into Qdrant filters.

A filter expression is one of:

* a mapping ``{field: value}`` meaning equality,
* a mapping ``{field: {operator: value}}`` with operators
  ``contains``, ``gt``, ``gte``, ``lt``, ``lte``, ``in`` and ``not``,
* a list of such mappings, combined with AND.

Every expression is first parsed into the typed conditions below, so malformed
shapes fail loudly instead of producing a filter that silently matches
something else.
"""

from dataclasses import dataclass
from typing import Any, Union

from qdrant_client import models

from nlquery.errors import ValidationError

RANGE_OPERATORS = ("gt", "gte", "lt", "lte")
OPERATORS = ("contains", "in", "not") + RANGE_OPERATORS

Scalar = Union[str, int, float, bool]


@dataclass(frozen=True)
class Equals:
    value: Scalar


@dataclass(frozen=True)
class TextContains:
    value: str


@dataclass(frozen=True)
class Range:
    op: str
    value: float


@dataclass(frozen=True)
class In:
    values: tuple[Scalar, ...]


@dataclass(frozen=True)
class NotEquals:
    value: Scalar


Condition = Union[Equals, TextContains, Range, In, NotEquals]


@dataclass(frozen=True)
class FieldFilter:
    """A single condition on one payload field."""

    field: str
    condition: Condition


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _parse_operators(field: str, spec: dict[str, Any]) -> list[FieldFilter]:
    if not spec:
        raise ValidationError(f"filter.{field}", spec, "operator object cannot be empty")

    parsed = []
    for op, value in spec.items():
        if op not in OPERATORS:
            raise ValidationError(
                f"filter.{field}", op, f"unknown operator '{op}', expected one of {', '.join(OPERATORS)}"
            )
        if op == "contains":
            if not isinstance(value, str):
                raise ValidationError(f"filter.{field}.contains", value, "text match needs a string")
            parsed.append(FieldFilter(field, TextContains(value)))
        elif op in RANGE_OPERATORS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"filter.{field}.{op}", value, "range bound must be numeric")
            parsed.append(FieldFilter(field, Range(op, value)))
        elif op == "in":
            if not isinstance(value, (list, tuple)) or not all(_is_scalar(v) for v in value):
                raise ValidationError(f"filter.{field}.in", value, "'in' needs a list of values")
            parsed.append(FieldFilter(field, In(tuple(value))))
        else:
            if not _is_scalar(value):
                raise ValidationError(f"filter.{field}.not", value, "'not' needs a single value")
            parsed.append(FieldFilter(field, NotEquals(value)))
    return parsed


def _parse_mapping(expr: dict[str, Any]) -> list[FieldFilter]:
    parsed = []
    for field, value in expr.items():
        if isinstance(value, dict):
            parsed.extend(_parse_operators(field, value))
        elif _is_scalar(value):
            parsed.append(FieldFilter(field, Equals(value)))
        else:
            raise ValidationError(f"filter.{field}", value, "value must be a scalar or operator object")
    return parsed


def parse_filter_expr(expr: Any) -> list[FieldFilter]:
    """Parse a filter expression into AND-ed field conditions.

    Raises:
        ValidationError: If the expression is not a mapping or a flat list of mappings
    """
    if expr is None:
        return []
    if isinstance(expr, dict):
        return _parse_mapping(expr)
    if isinstance(expr, list):
        parsed = []
        for element in expr:
            if not isinstance(element, dict):
                raise ValidationError("filter", element, "filter arrays may only contain mappings")
            parsed.extend(_parse_mapping(element))
        return parsed
    raise ValidationError("filter", expr, "filter must be a mapping or a list of mappings")


def _keyword(value: Scalar) -> Scalar:
    # Integral floats match integer payloads
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _match_list(values: tuple[Scalar, ...]) -> list[str] | list[int] | None:
    """Return values usable by MatchAny/MatchExcept, which only take all-str or all-int lists."""
    keywords = [_keyword(v) for v in values]
    if all(isinstance(v, str) for v in keywords):
        return keywords
    if all(isinstance(v, int) and not isinstance(v, bool) for v in keywords):
        return keywords
    return None


def _equals(field: str, value: Scalar) -> models.FieldCondition:
    value = _keyword(value)
    # MatchValue only accepts keywords, integers and booleans
    if isinstance(value, float):
        return models.FieldCondition(key=field, range=models.Range(gte=value, lte=value))
    return models.FieldCondition(key=field, match=models.MatchValue(value=value))


def _to_condition(item: FieldFilter) -> models.FieldCondition | models.Filter:
    condition = item.condition
    if isinstance(condition, Equals):
        return _equals(item.field, condition.value)
    if isinstance(condition, TextContains):
        return models.FieldCondition(key=item.field, match=models.MatchText(text=condition.value))
    if isinstance(condition, In):
        values = _match_list(condition.values)
        if values is not None:
            return models.FieldCondition(key=item.field, match=models.MatchAny(any=values))
        return models.Filter(should=[_equals(item.field, value) for value in condition.values])
    if isinstance(condition, NotEquals):
        values = _match_list((condition.value,))
        if values is not None:
            return models.FieldCondition(key=item.field, match=models.MatchExcept(**{"except": values}))
        return models.Filter(must_not=[_equals(item.field, condition.value)])
    return models.FieldCondition(key=item.field, range=models.Range(**{condition.op: condition.value}))


def translate_filter(expr: Any) -> models.Filter | None:
    """Translate a filter expression into a native ``must`` filter.

    Range bounds on the same field are merged into one range condition.

    Args:
        expr: Filter expression from a query intent

    Returns:
        Qdrant filter, or None when the expression is empty
    """
    conditions: list[models.FieldCondition | models.Filter] = []
    range_index: dict[str, int] = {}

    for item in parse_filter_expr(expr):
        if isinstance(item.condition, Range) and item.field in range_index:
            position = range_index[item.field]
            bounds = conditions[position].range.model_dump(exclude_none=True)
            bounds[item.condition.op] = item.condition.value
            conditions[position] = models.FieldCondition(key=item.field, range=models.Range(**bounds))
            continue
        if isinstance(item.condition, Range):
            range_index[item.field] = len(conditions)
        conditions.append(_to_condition(item))

    if not conditions:
        return None
    return models.Filter(must=conditions)


def filter_value(expr: Any, field: str) -> Any | None:
    """Return the equality value a filter expression sets for ``field``."""
    try:
        parsed = parse_filter_expr(expr)
    except ValidationError:
        return None
    for item in parsed:
        if item.field == field and isinstance(item.condition, (Equals, TextContains)):
            return item.condition.value
    return None
