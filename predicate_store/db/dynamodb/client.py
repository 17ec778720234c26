from __future__ import annotations

from functools import lru_cache

import boto3
from botocore.config import Config

from ...settings import Settings


@lru_cache(maxsize=8)
def botocore_config(
    *,
    max_attempts: int = 3,
    connect_timeout: float = 2.0,
    read_timeout: float = 10.0,
) -> Config:
    return Config(
        retries={"max_attempts": int(max_attempts), "mode": "standard"},
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
    )


def _session_kwargs(settings: Settings) -> dict[str, str]:
    kwargs = {"region_name": settings.aws_region}
    # Explicit keys only when both halves are present; otherwise boto3 resolves
    # credentials through its default provider chain.
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        kwargs["aws_access_key_id"] = settings.aws_access_key_id
        kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        if settings.aws_session_token:
            kwargs["aws_session_token"] = settings.aws_session_token
    return kwargs


def _config_for(settings: Settings) -> Config:
    return botocore_config(
        max_attempts=settings.ddb_botocore_max_attempts,
        connect_timeout=settings.ddb_connect_timeout,
        read_timeout=settings.ddb_read_timeout,
    )


def dynamodb_resource(settings: Settings):
    session = boto3.session.Session(**_session_kwargs(settings))
    return session.resource(
        "dynamodb",
        endpoint_url=settings.ddb_endpoint_url,
        config=_config_for(settings),
    )

