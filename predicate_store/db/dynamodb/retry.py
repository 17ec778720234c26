from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from ...observability.logging import get_logger
from .errors import (
    DdbConflict,
    DdbError,
    DdbInternal,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)

T = TypeVar("T")

log = get_logger("ddb_call")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    # A single attempt: failures surface to the caller immediately and any
    # transient retry is left to botocore's own policy.
    max_attempts: int = 1
    base_delay_s: float = 0.05
    max_delay_s: float = 1.5


_RETRYABLE_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
}


def _sleep_backoff(policy: RetryPolicy, attempt: int) -> None:
    # Full jitter exponential backoff.
    cap = policy.max_delay_s
    base = policy.base_delay_s
    exp = min(cap, base * (2 ** max(0, attempt - 1)))
    time.sleep(random.random() * exp)


def _aws_request_id_from_client_error(e: ClientError) -> str | None:
    return (e.response or {}).get("ResponseMetadata", {}).get("RequestId")


def _err_code_from_client_error(e: ClientError) -> str | None:
    return (e.response or {}).get("Error", {}).get("Code")


def map_botocore_error(
    *,
    operation: str,
    table_name: str | None,
    key: dict[str, Any] | None,
    exc: ClientError | BotoCoreError,
) -> DdbError:
    if isinstance(exc, ClientError):
        code = _err_code_from_client_error(exc) or ""
        aws_request_id = _aws_request_id_from_client_error(exc)

        if code == "ConditionalCheckFailedException":
            return DdbConflict(
                message="DynamoDB conditional check failed",
                operation=operation,
                table_name=table_name,
                key=key,
                aws_request_id=aws_request_id,
                retryable=False,
                cause=exc,
            )

        if code in ("ValidationException", "ResourceNotFoundException"):
            return DdbValidation(
                message=f"DynamoDB request validation failed ({code})",
                operation=operation,
                table_name=table_name,
                key=key,
                aws_request_id=aws_request_id,
                retryable=False,
                cause=exc,
            )

        if code in ("AccessDeniedException", "UnrecognizedClientException"):
            return DdbUnavailable(
                message="DynamoDB access denied",
                operation=operation,
                table_name=table_name,
                key=key,
                aws_request_id=aws_request_id,
                retryable=False,
                cause=exc,
            )

        if code in _RETRYABLE_CODES:
            return DdbThrottled(
                message="DynamoDB request throttled or unavailable",
                operation=operation,
                table_name=table_name,
                key=key,
                aws_request_id=aws_request_id,
                retryable=True,
                cause=exc,
            )

        return DdbInternal(
            message=f"DynamoDB request failed ({code or 'ClientError'})",
            operation=operation,
            table_name=table_name,
            key=key,
            aws_request_id=aws_request_id,
            retryable=False,
            cause=exc,
        )

    # Raised client-side before anything is sent; retrying cannot help.
    if isinstance(exc, ParamValidationError):
        return DdbValidation(
            message="DynamoDB request parameters are invalid",
            operation=operation,
            table_name=table_name,
            key=key,
            retryable=False,
            cause=exc,
        )

    return DdbUnavailable(
        message="DynamoDB client error",
        operation=operation,
        table_name=table_name,
        key=key,
        retryable=True,
        cause=exc,
    )


def ddb_call(
    operation: str,
    fn: Callable[[], T],
    *,
    table_name: str | None = None,
    key: dict[str, Any] | None = None,
    retry_policy: RetryPolicy | None = None,
) -> T:
    policy = retry_policy or RetryPolicy()
    max_attempts = max(1, int(policy.max_attempts))

    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except (ClientError, BotoCoreError) as e:
            mapped = map_botocore_error(
                operation=operation,
                table_name=table_name,
                key=key,
                exc=e,
            )

            # Never retry validation/conflict errors.
            if not mapped.retryable or attempt >= max_attempts:
                raise mapped from e

            log.warning(
                "ddb_call_retry",
                operation=operation,
                table_name=table_name,
                attempt=attempt,
                error=str(mapped),
            )
            _sleep_backoff(policy, attempt)
