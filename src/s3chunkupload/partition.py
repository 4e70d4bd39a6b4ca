"""Splitting a blob into fixed-size parts.

A :class:`Blob` hides whether the bytes live in memory or in a seekable file;
:func:`partition_blob` turns it into the ordered list of :class:`Chunk`
ranges that become the parts of one multipart upload.
"""
from __future__ import annotations

import io
import threading
from dataclasses import dataclass
from typing import BinaryIO, Union

__all__ = ["Blob", "Chunk", "partition_blob"]

BlobSource = Union[bytes, bytearray, memoryview, BinaryIO]


@dataclass(frozen=True)
class Chunk:
    """Half-open byte range ``[start, end)`` of a blob."""

    chunk_id: int
    start: int
    end: int

    @property
    def part_number(self) -> int:
        # S3 part numbers are 1-based
        return self.chunk_id + 1

    @property
    def size(self) -> int:
        return self.end - self.start


class Blob:
    """Read-only view over the bytes being uploaded.

    In-memory sources are sliced through a ``memoryview`` so no part is
    copied before it is sent. File sources are read range by range; the lock
    keeps concurrent readers from interleaving ``seek`` and ``read``.
    """

    def __init__(self, source: BlobSource) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._view = memoryview(source).cast("B")
            self._file = None
            self.size = self._view.nbytes
        elif hasattr(source, "read") and hasattr(source, "seek"):
            self._view = None
            self._file = source
            self._lock = threading.Lock()
            self.size = source.seek(0, io.SEEK_END)
        else:
            raise TypeError(
                f"Unsupported blob source {type(source).__name__}; "
                "expected bytes-like or a seekable binary file"
            )

    @classmethod
    def of(cls, source: Union["Blob", BlobSource]) -> "Blob":
        return source if isinstance(source, Blob) else cls(source)

    def read(self, chunk: Chunk) -> Union[memoryview, bytes]:
        """Return the payload for *chunk*."""
        if self._view is not None:
            return self._view[chunk.start:chunk.end]
        with self._lock:
            self._file.seek(chunk.start)
            data = self._file.read(chunk.size)
        if len(data) != chunk.size:
            raise OSError(
                f"Short read for part {chunk.part_number}: "
                f"expected {chunk.size} bytes, got {len(data)}"
            )
        return data


def partition_blob(blob: Union[Blob, BlobSource], max_chunk_size: int) -> list[Chunk]:
    """Split *blob* into ``ceil(size / max_chunk_size)`` contiguous chunks.

    An empty blob yields an empty list.
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    size = Blob.of(blob).size
    chunks: list[Chunk] = []
    offset = 0
    while offset < size:
        end = min(offset + max_chunk_size, size)
        chunks.append(Chunk(chunk_id=len(chunks), start=offset, end=end))
        offset = end
    return chunks
