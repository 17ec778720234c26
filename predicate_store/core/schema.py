from __future__ import annotations

import threading

from ..db.dynamodb.document_store import DocumentStore, TableSchema
from ..db.dynamodb.errors import DdbSchemaUnavailable


class SchemaCache:
    """
    Key schemas of every table visible to a document store, discovered once.

    Discovery is single-flight: concurrent first callers block on one lock and
    the losers find the cache already populated. A failed discovery leaves the
    cache unpopulated so the next call retries it from scratch.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._schemas: dict[str, TableSchema] = {}
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            schemas: dict[str, TableSchema] = {}
            for table in self._store.list_tables():
                schemas[table] = self._store.describe_table(table)
            # Publish only a complete discovery.
            self._schemas = schemas
            self._initialized = True

    def get(self, table: str) -> TableSchema:
        self.ensure_initialized()
        schema = self._schemas.get(table)
        if schema is None:
            raise DdbSchemaUnavailable(
                message=f"No key schema known for table {table!r}",
                operation="SchemaLookup",
                table_name=table,
            )
        return schema

    def tables(self) -> list[str]:
        self.ensure_initialized()
        return list(self._schemas)
