"""Configuration for `ChunkUploader`.

Every field is resolved with the same precedence:

1. An explicit keyword argument to :meth:`UploaderConfig.from_env`.
2. The matching environment variable (``CHUNK_UPLOAD_*`` / ``S3_*``).
3. The built-in default.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Callable, Optional

from .exceptions import ConfigurationError
from .uploader import DEFAULT_MAX_CHUNK_SIZE, DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

__all__ = ["ENV_VARS", "UploaderConfig"]

ENV_VARS = {
    "max_retries": "CHUNK_UPLOAD_MAX_RETRIES",
    "max_chunk_size": "CHUNK_UPLOAD_CHUNK_SIZE",
    "retry_delay": "CHUNK_UPLOAD_RETRY_DELAY",
    "max_concurrency": "CHUNK_UPLOAD_MAX_CONCURRENCY",
    "endpoint_url": "S3_ENDPOINT",
    "aws_access_key_id": "S3_ACCESS_KEY_ID",
    "aws_secret_access_key": "S3_SECRET_ACCESS_KEY",
    "region_name": "S3_REGION",
    "verify_ssl": "S3_VERIFY_SSL",
    "root_ca_path": "S3_ROOT_CA_PATH",
    "addressing_style": "S3_ADDRESSING_STYLE",
}

_CLIENT_FIELDS = (
    "endpoint_url",
    "aws_access_key_id",
    "aws_secret_access_key",
    "region_name",
    "verify_ssl",
    "root_ca_path",
    "addressing_style",
)


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(raw)


_PARSERS: dict[str, Callable[[str], Any]] = {
    "max_retries": int,
    "max_chunk_size": int,
    "retry_delay": float,
    "max_concurrency": int,
    "verify_ssl": _parse_bool,
}


@dataclass
class UploaderConfig:
    max_retries: int = DEFAULT_MAX_RETRIES
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_concurrency: Optional[int] = None
    endpoint_url: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    region_name: str = "us-east-1"
    verify_ssl: bool = True
    root_ca_path: Optional[str] = None
    addressing_style: str = "path"

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ConfigurationError(
                "max_retries must be at least 1", field="max_retries", value=self.max_retries
            )
        if self.max_chunk_size <= 0:
            raise ConfigurationError(
                "max_chunk_size must be positive", field="max_chunk_size", value=self.max_chunk_size
            )
        if self.retry_delay < 0:
            raise ConfigurationError(
                "retry_delay must not be negative", field="retry_delay", value=self.retry_delay
            )
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ConfigurationError(
                "max_concurrency must be at least 1",
                field="max_concurrency",
                value=self.max_concurrency,
            )
        if self.addressing_style not in ("auto", "path", "virtual"):
            raise ConfigurationError(
                "addressing_style must be 'auto', 'path' or 'virtual'",
                field="addressing_style",
                value=self.addressing_style,
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> "UploaderConfig":
        """Build a config from ``os.environ``; *overrides* win over both."""
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for name, env_name in ENV_VARS.items():
            if overrides.get(name) is not None:
                values[name] = overrides[name]
                continue
            raw = os.getenv(env_name)
            if raw is None or raw == "":
                continue
            parser = _PARSERS.get(name, str)
            try:
                values[name] = parser(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid value for {env_name}", field=env_name, value=raw
                ) from exc
        return cls(**values)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for `build_s3_client`."""
        return {name: getattr(self, name) for name in _CLIENT_FIELDS}
