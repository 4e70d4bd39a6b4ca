"""Chunked multipart upload orchestration.

`ChunkUploader.upload_media_in_chunks` splits a blob into parts, opens a
multipart transaction, uploads every part (one at a time or all at once),
retrying each part a bounded number of times, and finally completes the
transaction with the acknowledged tags in part order.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from .exceptions import RemoteError
from .partition import Blob, BlobSource, Chunk, partition_blob
from .progress import (
    ParallelProgressAggregator,
    ProgressAggregator,
    ProgressCallback,
    ProgressState,
    SerialProgressAggregator,
)
from .transport import MultipartTransport, Payload, S3Transport

if TYPE_CHECKING:
    from .config import UploaderConfig

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_MAX_CHUNK_SIZE",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "MIN_PART_SIZE",
    "ChunkUploader",
    "PartResult",
    "UploadStrategy",
    "upload_part_with_retry",
]

MIN_PART_SIZE = 5 * 1024 * 1024  # S3 minimum for every part but the last
DEFAULT_MAX_CHUNK_SIZE = MIN_PART_SIZE
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds, fixed between attempts
# Uncapped parallel uploads above this many parts get a warning
FANOUT_WARNING_THRESHOLD = 64


class UploadStrategy(str, Enum):
    SERIAL = "serial"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class PartResult:
    part_number: int
    etag: Optional[str]


def upload_part_with_retry(
    transport: MultipartTransport,
    chunk: Chunk,
    payload: Payload,
    *,
    bucket: str,
    key: str,
    upload_id: str,
    aggregator: Optional[ProgressAggregator] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> PartResult:
    """Upload one chunk as one part, retrying on `RemoteError`.

    At most *max_retries* attempts are made with a fixed *retry_delay*
    between them. The error of the last attempt is re-raised unchanged.
    Byte progress of every attempt goes to *aggregator*.
    """
    on_bytes = None
    if aggregator is not None:
        def on_bytes(loaded: int, total: int) -> None:
            aggregator.update(chunk.chunk_id, loaded, total)

    attempt = 1
    while True:
        try:
            etag = transport.upload_part(
                bucket, key, chunk.part_number, upload_id, payload, on_bytes
            )
            break
        except RemoteError as exc:
            if attempt >= max_retries:
                logger.error(
                    "Part %d of s3://%s/%s failed after %d attempts: %s",
                    chunk.part_number, bucket, key, attempt, exc,
                )
                raise
            logger.warning(
                "Part %d of s3://%s/%s failed on attempt %d/%d, retrying in %.1fs: %s",
                chunk.part_number, bucket, key, attempt, max_retries, retry_delay, exc,
            )
            time.sleep(retry_delay)
            attempt += 1

    if aggregator is not None:
        aggregator.chunk_finished(chunk.chunk_id)
    logger.debug("Part %d uploaded (%d bytes, etag=%s)", chunk.part_number, chunk.size, etag)
    return PartResult(part_number=chunk.part_number, etag=etag)


class ChunkUploader:
    """Upload large blobs to an S3-compatible store in parts.

    Either pass a ready *transport* (anything implementing the three
    multipart primitives) or the keyword arguments of `build_s3_client`, in
    which case an `S3Transport` is created:

    >>> uploader = ChunkUploader(endpoint_url="https://s3.example.com",
    ...                          aws_access_key_id="...", aws_secret_access_key="...")

    Progress counters live in a per-call `ProgressState`, so a single
    instance can serve several uploads at the same time.
    """

    def __init__(
        self,
        transport: Optional[MultipartTransport] = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_concurrency: Optional[int] = None,
        **client_kwargs: Any,
    ) -> None:
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
        if retry_delay < 0:
            raise ValueError(f"retry_delay must not be negative, got {retry_delay}")
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        if max_chunk_size < MIN_PART_SIZE:
            logger.warning(
                "max_chunk_size %d is below the usual %d byte minimum part size; "
                "the object store may reject the upload",
                max_chunk_size, MIN_PART_SIZE,
            )

        if transport is None:
            transport = S3Transport.from_credentials(**client_kwargs)
        elif client_kwargs:
            raise TypeError("client keyword arguments cannot be combined with a transport")

        self.transport = transport
        self.max_retries = max_retries
        self.max_chunk_size = max_chunk_size
        self.retry_delay = retry_delay
        self.max_concurrency = max_concurrency

    @classmethod
    def from_config(
        cls, config: "UploaderConfig", transport: Optional[MultipartTransport] = None
    ) -> "ChunkUploader":
        if transport is None:
            transport = S3Transport.from_credentials(**config.client_kwargs())
        return cls(
            transport,
            max_retries=config.max_retries,
            max_chunk_size=config.max_chunk_size,
            retry_delay=config.retry_delay,
            max_concurrency=config.max_concurrency,
        )

    # ───────────────────────────────── Public API ──────────────────────────────
    def upload_media_in_chunks(
        self,
        blob: Union[Blob, BlobSource],
        bucket: str,
        key: str,
        acl: Optional[str] = None,
        strategy: Union[UploadStrategy, str] = UploadStrategy.SERIAL,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[str]:
        """Upload *blob* to ``s3://bucket/key`` and return the object location.

        Parameters
        ----------
        blob:
            Bytes-like object or seekable binary file.
        acl:
            Canned ACL passed to the store when the transaction is opened.
        strategy : {"serial", "parallel"}
            "serial" uploads parts one after another in order, "parallel"
            uploads all parts concurrently.
        on_progress:
            Called with an ``int`` in ``0..99`` as bytes are sent.

        Any `RemoteError` from opening the transaction, from a part that ran
        out of retries, or from completing the transaction propagates. The
        transaction is left open on the store in that case.
        """
        strategy = UploadStrategy(strategy)
        blob = Blob.of(blob)
        chunks = partition_blob(blob, self.max_chunk_size)
        state = ProgressState(total_chunks=len(chunks), total_bytes=blob.size)
        if strategy is UploadStrategy.SERIAL:
            aggregator: ProgressAggregator = SerialProgressAggregator(state, on_progress)
        else:
            aggregator = ParallelProgressAggregator(state, on_progress)

        logger.info(
            "Starting %s upload of %d bytes to s3://%s/%s in %d parts",
            strategy.value, blob.size, bucket, key, len(chunks),
        )
        upload_id = self.transport.begin_transaction(bucket, key, acl)
        logger.debug("Opened multipart upload %s", upload_id)

        if strategy is UploadStrategy.SERIAL:
            results = self._upload_serial(blob, chunks, bucket, key, upload_id, aggregator)
        else:
            results = self._upload_parallel(blob, chunks, bucket, key, upload_id, aggregator)

        parts = [(r.part_number, r.etag) for r in sorted(results, key=lambda r: r.part_number)]
        location = self.transport.complete_transaction(bucket, key, upload_id, parts)
        logger.info("Completed upload of s3://%s/%s (%d parts)", bucket, key, len(parts))
        return location

    # ───────────────────────────── Internal helpers ────────────────────────────
    def _upload_chunk(
        self,
        blob: Blob,
        chunk: Chunk,
        bucket: str,
        key: str,
        upload_id: str,
        aggregator: ProgressAggregator,
    ) -> PartResult:
        return upload_part_with_retry(
            self.transport,
            chunk,
            blob.read(chunk),
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            aggregator=aggregator,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    def _upload_serial(self, blob, chunks, bucket, key, upload_id, aggregator) -> list[PartResult]:
        return [
            self._upload_chunk(blob, chunk, bucket, key, upload_id, aggregator)
            for chunk in chunks
        ]

    def _upload_parallel(self, blob, chunks, bucket, key, upload_id, aggregator) -> list[PartResult]:
        if not chunks:
            return []
        workers = self.max_concurrency or len(chunks)
        if self.max_concurrency is None and len(chunks) > FANOUT_WARNING_THRESHOLD:
            logger.warning(
                "Uploading %d parts at once; set max_concurrency to bound the fan-out",
                len(chunks),
            )

        with ThreadPoolExecutor(max_workers=min(workers, len(chunks))) as executor:
            futures = [
                executor.submit(self._upload_chunk, blob, chunk, bucket, key, upload_id, aggregator)
                for chunk in chunks
            ]
            first_error: Optional[BaseException] = None
            # as_completed also drains the remaining parts after a failure
            for future in as_completed(futures):
                if first_error is None and future.exception() is not None:
                    first_error = future.exception()

        if first_error is not None:
            raise first_error
        return [f.result() for f in futures]
