"""
Document store collaborator.

``DocumentStore`` is the narrow surface the predicate store needs from a
key-value/document database. ``Boto3DocumentStore`` implements it over a boto3
DynamoDB resource, marshalling values the way the DynamoDB document client
does (native numbers in, native numbers out).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Context, Decimal, Inexact, InvalidOperation, Rounded
from typing import Any

from .retry import RetryPolicy, ddb_call

# Same precision limits DynamoDB enforces on numbers.
_DECIMAL_CONTEXT = Context(Emin=-128, Emax=126, prec=38, traps=[InvalidOperation])
_DECIMAL_CONTEXT.traps[Inexact] = False
_DECIMAL_CONTEXT.traps[Rounded] = False


@dataclass(frozen=True, slots=True)
class TableSchema:
    partition_key: str | None = None
    sort_key: str | None = None

    def key_attributes(self) -> tuple[str, ...]:
        return tuple(a for a in (self.partition_key, self.sort_key) if a)


@dataclass(slots=True)
class Page:
    items: list[dict[str, Any]]
    next_token: dict[str, Any] | None = None


@dataclass(slots=True)
class UpdateRequest:
    key: dict[str, Any]
    update_expression: str
    expression_attribute_names: dict[str, str] = field(default_factory=dict)
    expression_attribute_values: dict[str, Any] = field(default_factory=dict)


class DocumentStore(ABC):
    """The operations the predicate store consumes."""

    @abstractmethod
    def list_tables(self) -> list[str]:
        pass

    @abstractmethod
    def describe_table(self, table: str) -> TableSchema:
        pass

    @abstractmethod
    def put(
        self,
        table: str,
        item: dict[str, Any],
        *,
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
    ) -> None:
        """Write ``item``; raise ``DdbConflict`` when the condition fails."""

    @abstractmethod
    def update(self, table: str, request: UpdateRequest) -> None:
        pass

    @abstractmethod
    def delete(self, table: str, key: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def query(
        self,
        table: str,
        *,
        key_condition_expression: str,
        expression_attribute_names: dict[str, str],
        expression_attribute_values: dict[str, Any],
        projection_expression: str | None = None,
        next_token: dict[str, Any] | None = None,
    ) -> Page:
        pass

    @abstractmethod
    def scan(self, table: str, *, next_token: dict[str, Any] | None = None) -> Page:
        pass


def to_ddb_value(value: Any) -> Any:
    """Convert a Python value into something boto3's serializer accepts."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return _DECIMAL_CONTEXT.create_decimal_from_float(value)
    if isinstance(value, dict):
        return {k: to_ddb_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_ddb_value(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {to_ddb_value(v) for v in value}
    return value


def from_ddb_value(value: Any) -> Any:
    """Convert boto3 ``Decimal`` numbers back to ``int``/``float``."""
    if isinstance(value, Decimal):
        try:
            is_int = value % 1 == 0
        except InvalidOperation:
            is_int = False
        return int(value) if is_int else float(value)
    if isinstance(value, dict):
        return {k: from_ddb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_ddb_value(v) for v in value]
    if isinstance(value, set):
        return {from_ddb_value(v) for v in value}
    return value


class Boto3DocumentStore(DocumentStore):
    def __init__(self, resource, *, retry_policy: RetryPolicy | None = None):
        self._resource = resource
        self._client = resource.meta.client
        self._retry_policy = retry_policy

    def _table(self, table: str):
        return self._resource.Table(table)

    def list_tables(self) -> list[str]:
        names: list[str] = []
        kwargs: dict[str, Any] = {}
        while True:
            resp = ddb_call(
                "ListTables",
                lambda: self._client.list_tables(**kwargs),
                retry_policy=self._retry_policy,
            )
            names.extend(resp.get("TableNames") or [])
            last = resp.get("LastEvaluatedTableName")
            if not last:
                return names
            kwargs = {"ExclusiveStartTableName": last}

    def describe_table(self, table: str) -> TableSchema:
        resp = ddb_call(
            "DescribeTable",
            lambda: self._client.describe_table(TableName=table),
            table_name=table,
            retry_policy=self._retry_policy,
        )
        partition_key = None
        sort_key = None
        for element in (resp.get("Table") or {}).get("KeySchema") or []:
            if element.get("KeyType") == "HASH":
                partition_key = element.get("AttributeName")
            elif element.get("KeyType") == "RANGE":
                sort_key = element.get("AttributeName")
        return TableSchema(partition_key=partition_key, sort_key=sort_key)

    def put(
        self,
        table: str,
        item: dict[str, Any],
        *,
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
    ) -> None:
        def _op():
            kwargs: dict[str, Any] = {"Item": to_ddb_value(item)}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression
            if expression_attribute_names:
                kwargs["ExpressionAttributeNames"] = expression_attribute_names
            return self._table(table).put_item(**kwargs)

        ddb_call("PutItem", _op, table_name=table, retry_policy=self._retry_policy)

    def update(self, table: str, request: UpdateRequest) -> None:
        def _op():
            kwargs: dict[str, Any] = {
                "Key": request.key,
                "UpdateExpression": request.update_expression,
            }
            if request.expression_attribute_names:
                kwargs["ExpressionAttributeNames"] = request.expression_attribute_names
            # DynamoDB rejects an empty ExpressionAttributeValues map (REMOVE-only updates).
            if request.expression_attribute_values:
                kwargs["ExpressionAttributeValues"] = to_ddb_value(
                    request.expression_attribute_values
                )
            return self._table(table).update_item(**kwargs)

        ddb_call(
            "UpdateItem",
            _op,
            table_name=table,
            key=request.key,
            retry_policy=self._retry_policy,
        )

    def delete(self, table: str, key: dict[str, Any]) -> None:
        ddb_call(
            "DeleteItem",
            lambda: self._table(table).delete_item(Key=key),
            table_name=table,
            key=key,
            retry_policy=self._retry_policy,
        )

    def query(
        self,
        table: str,
        *,
        key_condition_expression: str,
        expression_attribute_names: dict[str, str],
        expression_attribute_values: dict[str, Any],
        projection_expression: str | None = None,
        next_token: dict[str, Any] | None = None,
    ) -> Page:
        def _op():
            kwargs: dict[str, Any] = {
                "KeyConditionExpression": key_condition_expression,
                "ExpressionAttributeNames": expression_attribute_names,
                "ExpressionAttributeValues": to_ddb_value(expression_attribute_values),
            }
            if projection_expression:
                kwargs["ProjectionExpression"] = projection_expression
            # Only pass ExclusiveStartKey when present.
            if next_token:
                kwargs["ExclusiveStartKey"] = next_token
            return self._table(table).query(**kwargs)

        resp = ddb_call("Query", _op, table_name=table, retry_policy=self._retry_policy)
        return self._page(resp)

    def scan(self, table: str, *, next_token: dict[str, Any] | None = None) -> Page:
        def _op():
            kwargs: dict[str, Any] = {}
            if next_token:
                kwargs["ExclusiveStartKey"] = next_token
            return self._table(table).scan(**kwargs)

        resp = ddb_call("Scan", _op, table_name=table, retry_policy=self._retry_policy)
        return self._page(resp)

    @staticmethod
    def _page(resp: dict[str, Any]) -> Page:
        items = [from_ddb_value(item) for item in resp.get("Items") or []]
        # The continuation token stays in wire form; it is handed back verbatim.
        return Page(items=items, next_token=resp.get("LastEvaluatedKey"))
