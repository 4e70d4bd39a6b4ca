"""Exception types raised by s3chunkupload.

Remote failures are surfaced as :class:`RemoteError`; the botocore exception
that caused them stays reachable through ``__cause__``.
"""
from __future__ import annotations

from typing import Any, Optional


class ChunkUploadError(Exception):
    """Base class for all s3chunkupload errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class RemoteError(ChunkUploadError):
    """A call to the object store failed.

    ``operation`` names the primitive (``begin``, ``upload_part`` or
    ``complete``); ``code`` and ``status`` are filled from the S3 error
    response when one was received.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        code: Optional[str] = None,
        status: Optional[int] = None,
        part_number: Optional[int] = None,
    ) -> None:
        details: dict[str, Any] = {"operation": operation}
        if code:
            details["code"] = code
        if status is not None:
            details["status"] = status
        if part_number is not None:
            details["part"] = part_number
        super().__init__(message, details)
        self.operation = operation
        self.code = code
        self.status = status
        self.part_number = part_number


class ConfigurationError(ChunkUploadError, ValueError):
    """A configuration value is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None) -> None:
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = repr(value)
        super().__init__(message, details)
        self.field = field
        self.value = value
