"""Operation logging for ChunkUploader.

Contains `UploadLogger` for one-line operation records and
`LoggedChunkUploader`, a thin subclass that records every
``upload_media_in_chunks`` call with its duration.
"""
from __future__ import annotations

import logging
from datetime import datetime
from time import perf_counter
from typing import Optional

from .uploader import ChunkUploader

__all__ = ["UploadLogger", "LoggedChunkUploader"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class UploadLogger:
    """Write upload operations to stderr and, optionally, *log_file*."""

    def __init__(self, log_file: Optional[str] = "chunk_upload.log") -> None:
        handlers: list[logging.Handler] = [logging.StreamHandler()]
        if log_file:
            handlers.append(logging.FileHandler(log_file))
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers)
        self.logger = logging.getLogger("ChunkUploader")

    def log_operation(self, operation: str, key: str, success: bool, details: str | None = None) -> None:
        status = "SUCCESS" if success else "FAILED"
        msg = f"[{datetime.now().isoformat()}] {operation} - {key} - {status}"
        if details:
            msg += f" - {details}"
        (self.logger.info if success else self.logger.error)(msg)


class LoggedChunkUploader(ChunkUploader):
    """ChunkUploader subclass that records each upload via UploadLogger."""

    def __init__(self, *args, log_file: Optional[str] = "chunk_upload.log", **kwargs):  # noqa: ANN002, ANN003
        super().__init__(*args, **kwargs)
        self._logger = UploadLogger(log_file)

    def upload_media_in_chunks(self, blob, bucket, key, *args, **kwargs):  # type: ignore[override]
        target = f"s3://{bucket}/{key}"
        start = perf_counter()
        try:
            location = super().upload_media_in_chunks(blob, bucket, key, *args, **kwargs)
        except Exception as exc:
            duration = perf_counter() - start
            self._logger.log_operation("UPLOAD", target, False, f"{duration:.2f}s: {exc}")
            raise
        duration = perf_counter() - start
        self._logger.log_operation("UPLOAD", target, True, f"{duration:.2f}s")
        return location
