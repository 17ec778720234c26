from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class DdbError(Exception):
    """Base error for DynamoDB operations.

    Everything the store surfaces to callers is a ``DdbError``. Transport level
    failures keep the original botocore exception in ``cause``.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class DdbSchemaUnavailable(DdbError):
    """The table has no cached key schema (unknown to this store instance)."""


@dataclass(slots=True)
class DdbConflict(DdbError):
    """A conditional write was rejected, e.g. insert of an existing key."""


@dataclass(slots=True)
class DdbValidation(DdbError):
    pass


@dataclass(slots=True)
class DdbThrottled(DdbError):
    pass


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    pass


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass
