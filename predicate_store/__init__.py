"""Predicate-driven insert/query/update/delete over DynamoDB tables."""

from __future__ import annotations

from .core.store import PredicateStore, create_store, get_store
from .db.dynamodb.document_store import Boto3DocumentStore, DocumentStore, Page, TableSchema
from .db.dynamodb.errors import (
    DdbConflict,
    DdbError,
    DdbInternal,
    DdbSchemaUnavailable,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)

__all__ = [
    "Boto3DocumentStore",
    "DdbConflict",
    "DdbError",
    "DdbInternal",
    "DdbSchemaUnavailable",
    "DdbThrottled",
    "DdbUnavailable",
    "DdbValidation",
    "DocumentStore",
    "Page",
    "PredicateStore",
    "TableSchema",
    "create_store",
    "get_store",
]
