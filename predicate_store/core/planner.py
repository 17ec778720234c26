"""
Predicate planning.

A predicate is a flat ``{attribute: value}`` equality filter. When it names the
table's partition key (and optionally its sort key) the read becomes a direct
key-condition query; otherwise it falls back to a full scan filtered on the
client. Attribute names only ever reach the expression through ``#`` name
placeholders, values through ``:`` value placeholders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Sequence

from ..db.dynamodb.document_store import TableSchema

_MISSING = object()


def key_value(value: Any) -> str:
    """Key attribute values are sent as strings regardless of their type."""
    return str(value)


@dataclass(slots=True)
class ReadPlan:
    use_scan: bool
    key_condition_expression: str | None = None
    expression_attribute_names: dict[str, str] = field(default_factory=dict)
    expression_attribute_values: dict[str, Any] = field(default_factory=dict)
    # Predicate attributes the store did not match; checked on every result.
    residual: dict[str, Any] = field(default_factory=dict)
    projection: tuple[str, ...] | None = None
    projection_expression: str | None = None


def plan_read(
    schema: TableSchema,
    predicate: dict[str, Any],
    projection: Sequence[str] | None = None,
) -> ReadPlan:
    partition_term: tuple[str, Any] | None = None
    sort_term: tuple[str, Any] | None = None
    for attr, value in predicate.items():
        if schema.partition_key and attr == schema.partition_key:
            partition_term = (attr, value)
        elif schema.sort_key and attr == schema.sort_key:
            sort_term = (attr, value)

    proj = tuple(dict.fromkeys(projection)) if projection is not None else None

    # A sort key alone cannot drive a query.
    if partition_term is None:
        return ReadPlan(use_scan=True, residual=dict(predicate), projection=proj)

    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    parts: list[str] = []
    for i, (attr, value) in enumerate(t for t in (partition_term, sort_term) if t):
        names[f"#k{i}"] = attr
        values[f":k{i}"] = key_value(value)
        parts.append(f"#k{i} = :k{i}")

    matched = set(names.values())
    residual = {k: v for k, v in predicate.items() if k not in matched}

    projection_expression = None
    if proj:
        # Residual attributes must come back too, or they could not be checked.
        fetch = tuple(dict.fromkeys(proj + tuple(residual)))
        placeholders = []
        for i, attr in enumerate(fetch):
            names[f"#p{i}"] = attr
            placeholders.append(f"#p{i}")
        projection_expression = ", ".join(placeholders)

    return ReadPlan(
        use_scan=False,
        key_condition_expression=" AND ".join(parts),
        expression_attribute_names=names,
        expression_attribute_values=values,
        residual=residual,
        projection=proj,
        projection_expression=projection_expression,
    )


def strict_equal(a: Any, b: Any) -> bool:
    # bool is an int subclass; True must not match 1.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def matches(item: dict[str, Any], predicate: dict[str, Any]) -> bool:
    for attr, expected in predicate.items():
        actual = item.get(attr, _MISSING)
        if actual is _MISSING or not strict_equal(actual, expected):
            return False
    return True


def project(item: dict[str, Any], attributes: Iterable[str]) -> dict[str, Any]:
    return {a: item[a] for a in attributes if a in item}


def select(
    items: Iterable[dict[str, Any]],
    plan: ReadPlan,
) -> Iterator[dict[str, Any]]:
    """Lazily apply the residual filter and projection of ``plan``."""
    for item in items:
        if plan.residual and not matches(item, plan.residual):
            continue
        if plan.projection is not None:
            yield project(item, plan.projection)
        else:
            yield item
