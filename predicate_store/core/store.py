from __future__ import annotations

from functools import lru_cache
from typing import Any, Sequence

from ..db.dynamodb.client import dynamodb_resource
from ..db.dynamodb.document_store import Boto3DocumentStore, DocumentStore, TableSchema
from ..db.dynamodb.errors import DdbValidation
from ..db.dynamodb.retry import RetryPolicy
from ..settings import Settings, get_settings
from .mutations import build_insert_guard, build_update, check_item_keys, extract_key
from .pager import collect_pages
from .planner import plan_read, select
from .schema import SchemaCache


class PredicateStore:
    """
    Insert/query/update/delete by flat equality predicates.

    Every operation discovers the key schemas first (once per instance). Reads
    whose predicate names the partition key run as a key-condition query,
    anything else is a full scan filtered here, so keep an eye on scan costs.
    """

    def __init__(self, document_store: DocumentStore):
        self._store = document_store
        self._schemas = SchemaCache(document_store)

    def init(self) -> None:
        self._schemas.ensure_initialized()

    def schema(self, table: str) -> TableSchema:
        return self._schemas.get(table)

    def tables(self) -> list[str]:
        return self._schemas.tables()

    # --- writes ---

    def insert(self, table: str, item: dict[str, Any]) -> None:
        schema = self._schemas.get(table)
        check_item_keys(table, schema, item)
        guard = build_insert_guard(schema)
        condition, names = guard if guard else (None, None)
        # A duplicate partition key surfaces as DdbConflict from the put.
        self._store.put(
            table,
            dict(item),
            condition_expression=condition,
            expression_attribute_names=names,
        )

    def update(self, table: str, predicate: dict[str, Any], attributes: dict[str, Any]) -> None:
        schema = self._schemas.get(table)
        key = extract_key(table, schema, predicate, operation="UpdateItem")
        if not attributes:
            raise DdbValidation(
                message="Nothing to update",
                operation="UpdateItem",
                table_name=table,
                key=key,
            )
        self._store.update(table, build_update(key, attributes))

    def delete(self, table: str, predicate: dict[str, Any]) -> None:
        schema = self._schemas.get(table)
        key = extract_key(table, schema, predicate, operation="DeleteItem")
        self._store.delete(table, key)

    # --- reads ---

    def query(
        self,
        table: str,
        predicate: dict[str, Any],
        is_single: bool = False,
        projection: Sequence[str] | None = None,
    ) -> dict[str, Any] | list[dict[str, Any]] | None:
        """
        Items matching every attribute of ``predicate``.

        With ``is_single`` returns the first match in store order or ``None``.
        ``projection`` keeps only the listed attributes present on each item.
        """
        schema = self._schemas.get(table)
        plan = plan_read(schema, predicate, projection)

        if plan.use_scan:
            items = self.scan_internal(table)
        else:
            items = self.query_internal(
                table,
                key_condition_expression=plan.key_condition_expression or "",
                expression_attribute_names=plan.expression_attribute_names,
                expression_attribute_values=plan.expression_attribute_values,
                projection_expression=plan.projection_expression,
            )

        results = select(items, plan)
        if is_single:
            return next(results, None)
        return list(results)

    def query_internal(
        self,
        table: str,
        *,
        key_condition_expression: str,
        expression_attribute_names: dict[str, str],
        expression_attribute_values: dict[str, Any],
        projection_expression: str | None = None,
    ) -> list[dict[str, Any]]:
        return collect_pages(
            lambda token: self._store.query(
                table,
                key_condition_expression=key_condition_expression,
                expression_attribute_names=expression_attribute_names,
                expression_attribute_values=expression_attribute_values,
                projection_expression=projection_expression,
                next_token=token,
            )
        )

    def scan_internal(self, table: str) -> list[dict[str, Any]]:
        return collect_pages(lambda token: self._store.scan(table, next_token=token))


def create_store(
    settings: Settings | None = None,
    *,
    document_store: DocumentStore | None = None,
) -> PredicateStore:
    """Bind a ``PredicateStore`` to a document store (boto3 DynamoDB by default)."""
    if document_store is None:
        s = settings or get_settings()
        document_store = Boto3DocumentStore(
            dynamodb_resource(s),
            retry_policy=RetryPolicy(max_attempts=s.ddb_app_max_attempts),
        )
    return PredicateStore(document_store)


@lru_cache(maxsize=1)
def get_store() -> PredicateStore:
    return create_store()
