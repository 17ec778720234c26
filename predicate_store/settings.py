from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # AWS credentials are optional: when unset boto3 falls back to its own
    # provider chain (instance role, shared config, ...).
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    aws_access_key_id: str | None = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )
    aws_session_token: str | None = Field(default=None, validation_alias="AWS_SESSION_TOKEN")

    # DynamoDB client
    ddb_endpoint_url: str | None = Field(default=None, validation_alias="DDB_ENDPOINT_URL")
    ddb_connect_timeout: float = Field(default=2.0, validation_alias="DDB_CONNECT_TIMEOUT")
    ddb_read_timeout: float = Field(default=10.0, validation_alias="DDB_READ_TIMEOUT")
    ddb_botocore_max_attempts: int = Field(
        default=3, validation_alias="DDB_BOTOCORE_MAX_ATTEMPTS"
    )
    # 1 means no app-layer retry on top of botocore.
    ddb_app_max_attempts: int = Field(default=1, validation_alias="DDB_APP_MAX_ATTEMPTS")

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    def require_in_production(self) -> None:
        """
        Enforce sane client settings in production.

        Local runs may point at an emulator with partial config, production must not.
        """
        if not self.is_production:
            return

        problems: list[str] = []
        if self.ddb_endpoint_url:
            problems.append("DDB_ENDPOINT_URL must not be set")
        if bool(self.aws_access_key_id) != bool(self.aws_secret_access_key):
            problems.append("AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together")

        if problems:
            raise RuntimeError("Invalid production configuration: " + "; ".join(problems))

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "log_level": self.log_level,
            "aws": {
                "aws_region": self.aws_region,
                "aws_access_key_id_configured": _has(self.aws_access_key_id),
                "aws_secret_access_key_configured": _has(self.aws_secret_access_key),
                "aws_session_token_configured": _has(self.aws_session_token),
            },
            "dynamodb": {
                "endpoint_url": self.ddb_endpoint_url,
                "connect_timeout": self.ddb_connect_timeout,
                "read_timeout": self.ddb_read_timeout,
                "botocore_max_attempts": self.ddb_botocore_max_attempts,
                "app_max_attempts": self.ddb_app_max_attempts,
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s

