from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
import structlog

# Ensure the repo root is on sys.path so `import predicate_store.*` works in tests.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

from predicate_store.db.dynamodb.document_store import (  # noqa: E402
    DocumentStore,
    Page,
    TableSchema,
    UpdateRequest,
)
from predicate_store.db.dynamodb.errors import DdbConflict, DdbThrottled  # noqa: E402


class FakeDocumentStore(DocumentStore):
    """
    Minimal in-memory stand-in for DynamoDB.

    Understands exactly the expressions the predicate store emits
    (``#a = :b AND ...``, ``SET``/``REMOVE``, ``attribute_not_exists(#pk)``),
    pages results ``page_size`` at a time and records every call.
    """

    def __init__(self, schemas: dict[str, TableSchema], *, page_size: int = 100):
        self.schemas = dict(schemas)
        self.items: dict[str, list[dict[str, Any]]] = {t: [] for t in schemas}
        self.page_size = page_size
        self.calls: list[tuple[str, dict[str, Any]]] = []
        # operation name -> (n, exc): raise exc on the n-th call of that operation
        self.fail_on: dict[str, tuple[int, Exception]] = {}

    def _record(self, op: str, **kwargs) -> None:
        self.calls.append((op, kwargs))
        if op in self.fail_on:
            n, exc = self.fail_on[op]
            if self.ops().count(op) == n:
                raise exc

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    def _key_of(self, table: str, item: dict[str, Any]) -> tuple:
        return tuple(item.get(a) for a in self.schemas[table].key_attributes())

    def _find(self, table: str, key: dict[str, Any]) -> int | None:
        wanted = self._key_of(table, key)
        for i, cur in enumerate(self.items[table]):
            if self._key_of(table, cur) == wanted:
                return i
        return None

    def _page(self, items: list[dict[str, Any]], next_token: dict[str, Any] | None) -> Page:
        start = int((next_token or {}).get("offset", 0))
        end = start + self.page_size
        token = {"offset": end} if end < len(items) else None
        return Page(items=[dict(i) for i in items[start:end]], next_token=token)

    # --- DocumentStore ---

    def list_tables(self) -> list[str]:
        self._record("ListTables")
        return list(self.schemas)

    def describe_table(self, table: str) -> TableSchema:
        self._record("DescribeTable", table=table)
        return self.schemas[table]

    def put(self, table, item, *, condition_expression=None, expression_attribute_names=None) -> None:
        self._record(
            "PutItem",
            table=table,
            item=item,
            condition_expression=condition_expression,
            expression_attribute_names=expression_attribute_names,
        )
        idx = self._find(table, item)
        if condition_expression == "attribute_not_exists(#pk)" and idx is not None:
            raise DdbConflict(message="conflict", operation="PutItem", table_name=table)
        if idx is None:
            self.items[table].append(dict(item))
        else:
            self.items[table][idx] = dict(item)

    def update(self, table: str, request: UpdateRequest) -> None:
        self._record("UpdateItem", table=table, request=request)
        names = request.expression_attribute_names
        values = request.expression_attribute_values
        idx = self._find(table, request.key)
        if idx is None:
            self.items[table].append(dict(request.key))
            idx = len(self.items[table]) - 1
        cur = self.items[table][idx]

        expr = request.update_expression
        set_part, _, remove_part = expr.partition("REMOVE ")
        if set_part.startswith("SET "):
            for assign in set_part[len("SET "):].split(","):
                left, right = assign.split("=", 1)
                cur[names[left.strip()]] = values[right.strip()]
        for placeholder in remove_part.split(","):
            if placeholder.strip():
                cur.pop(names[placeholder.strip()], None)

    def delete(self, table: str, key: dict[str, Any]) -> None:
        self._record("DeleteItem", table=table, key=key)
        idx = self._find(table, key)
        if idx is not None:
            del self.items[table][idx]

    def query(
        self,
        table,
        *,
        key_condition_expression,
        expression_attribute_names,
        expression_attribute_values,
        projection_expression=None,
        next_token=None,
    ) -> Page:
        self._record(
            "Query",
            table=table,
            key_condition_expression=key_condition_expression,
            expression_attribute_names=expression_attribute_names,
            expression_attribute_values=expression_attribute_values,
            projection_expression=projection_expression,
            next_token=next_token,
        )
        conditions = []
        for term in key_condition_expression.split(" AND "):
            left, right = term.split(" = ")
            conditions.append((expression_attribute_names[left], expression_attribute_values[right]))
        matched = [i for i in self.items[table] if all(i.get(a) == v for a, v in conditions)]
        if projection_expression:
            attrs = [expression_attribute_names[p.strip()] for p in projection_expression.split(",")]
            matched = [{a: i[a] for a in attrs if a in i} for i in matched]
        return self._page(matched, next_token)

    def scan(self, table, *, next_token=None) -> Page:
        self._record("Scan", table=table, next_token=next_token)
        return self._page(self.items[table], next_token)


@pytest.fixture(autouse=True)
def _structlog_through_stdlib():
    # Keep log events off stdout so CLI output stays parseable; pytest captures them.
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.KeyValueRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture()
def throttled():
    return DdbThrottled(message="throttled", operation="Scan", retryable=True)


@pytest.fixture()
def fake_store():
    return FakeDocumentStore(
        {
            "Users": TableSchema(partition_key="userId"),
            "Orders": TableSchema(partition_key="customerId", sort_key="orderId"),
        }
    )


@pytest.fixture()
def store(fake_store):
    from predicate_store.core.store import PredicateStore

    return PredicateStore(fake_store)


@pytest.fixture()
def make_fake_store():
    def _make(schemas: dict[str, TableSchema], **kwargs) -> FakeDocumentStore:
        return FakeDocumentStore(schemas, **kwargs)

    return _make
