"""Builds keys and condition/update expressions for the write operations."""

from __future__ import annotations

from typing import Any

from ..db.dynamodb.document_store import TableSchema, UpdateRequest
from ..db.dynamodb.errors import DdbValidation
from .planner import key_value


def extract_key(table: str, schema: TableSchema, predicate: dict[str, Any], *, operation: str) -> dict[str, str]:
    """
    Pick the key attributes out of ``predicate``, string-coerced.

    Every key attribute of the table must be present; other attributes are ignored.
    """
    key: dict[str, str] = {}
    missing: list[str] = []
    for attr in schema.key_attributes():
        if attr in predicate and predicate[attr] is not None:
            key[attr] = key_value(predicate[attr])
        else:
            missing.append(attr)
    if missing or not key:
        raise DdbValidation(
            message=f"Predicate is missing key attribute(s) {missing} for table {table!r}",
            operation=operation,
            table_name=table,
            key=key or None,
        )
    return key


def check_item_keys(table: str, schema: TableSchema, item: dict[str, Any]) -> None:
    missing = [a for a in schema.key_attributes() if item.get(a) is None]
    if missing:
        raise DdbValidation(
            message=f"Item is missing key attribute(s) {missing} for table {table!r}",
            operation="PutItem",
            table_name=table,
        )


def build_insert_guard(schema: TableSchema) -> tuple[str, dict[str, str]] | None:
    """
    Condition that rejects overwriting an existing item.

    Only partition-key-only tables are guarded; with a sort key several items
    legitimately share a partition key.
    """
    if schema.partition_key and not schema.sort_key:
        return "attribute_not_exists(#pk)", {"#pk": schema.partition_key}
    return None


def build_update(key: dict[str, str], attributes: dict[str, Any]) -> UpdateRequest:
    """
    ``None`` values become REMOVE clauses, everything else a SET clause.

    SET values are sent as given, only the key is string-coerced.
    """
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    set_parts: list[str] = []
    remove_parts: list[str] = []
    for i, (attr, value) in enumerate(attributes.items()):
        names[f"#u{i}"] = attr
        if value is None:
            remove_parts.append(f"#u{i}")
        else:
            values[f":u{i}"] = value
            set_parts.append(f"#u{i} = :u{i}")

    clauses: list[str] = []
    if set_parts:
        clauses.append("SET " + ", ".join(set_parts))
    if remove_parts:
        clauses.append("REMOVE " + ", ".join(remove_parts))

    return UpdateRequest(
        key=key,
        update_expression=" ".join(clauses),
        expression_attribute_names=names,
        expression_attribute_values=values,
    )
