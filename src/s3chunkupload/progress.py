"""Progress aggregation for chunked uploads.

Part transfers report ``(bytes_loaded, bytes_total)`` for their own chunk.
The aggregators below fold those events into one whole-number percentage for
the caller. Two rules are kept on purpose:

* the reported value never exceeds ``99``; the caller learns about completion
  from ``upload_media_in_chunks`` returning, not from a progress event;
* a retried part restarts from zero bytes, so its share can go down before it
  climbs again.
"""
from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

__all__ = [
    "MAX_REPORTED_PROGRESS",
    "ProgressCallback",
    "ProgressState",
    "ProgressAggregator",
    "SerialProgressAggregator",
    "ParallelProgressAggregator",
    "round_half_up",
]

logger = logging.getLogger(__name__)

MAX_REPORTED_PROGRESS = 99

ProgressCallback = Callable[[int], None]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ProgressState:
    """Counters for one ``upload_media_in_chunks`` call.

    A new instance is created per call, so concurrent uploads through the
    same uploader never share counters.
    """

    total_chunks: int
    total_bytes: int
    # serial strategy
    completed_total: int = 0
    current_contribution: int = 0
    # parallel strategy
    bytes_per_chunk: dict[int, int] = field(default_factory=dict)
    last_reported: Optional[int] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class ProgressAggregator:
    """Base class; subclasses implement :meth:`_compute`."""

    def __init__(self, state: ProgressState, on_progress: Optional[ProgressCallback] = None) -> None:
        self.state = state
        self.on_progress = on_progress

    def update(self, chunk_id: int, bytes_loaded: int, bytes_total: int) -> int:
        """Record one transfer event and notify the callback.

        Returns the (clamped) value that was reported.
        """
        with self.state.lock:
            value = min(self._compute(chunk_id, bytes_loaded, bytes_total), MAX_REPORTED_PROGRESS)
            self.state.last_reported = value
            if self.on_progress is not None:
                self.on_progress(value)
        return value

    def chunk_finished(self, chunk_id: int) -> None:
        """Called once the part for *chunk_id* has been acknowledged."""

    def _compute(self, chunk_id: int, bytes_loaded: int, bytes_total: int) -> int:
        raise NotImplementedError


class SerialProgressAggregator(ProgressAggregator):
    """Whole-chunk shares accumulated in upload order.

    The share of the chunk in flight is
    ``round((loaded / total * 100) / total_chunks)``. When the chunk finishes,
    its last observed share is added to the running total as-is, even if the
    final event did not report the full chunk.
    """

    def _compute(self, chunk_id: int, bytes_loaded: int, bytes_total: int) -> int:
        state = self.state
        if bytes_total > 0 and state.total_chunks > 0:
            fraction = (bytes_loaded / bytes_total) * 100
            state.current_contribution = round_half_up(fraction / state.total_chunks)
        else:
            state.current_contribution = 0
        return state.completed_total + state.current_contribution

    def chunk_finished(self, chunk_id: int) -> None:
        with self.state.lock:
            self.state.completed_total += self.state.current_contribution
            self.state.current_contribution = 0
            logger.debug(
                "Chunk %d finished, serial progress at %d%%", chunk_id, self.state.completed_total
            )


class ParallelProgressAggregator(ProgressAggregator):
    """Latest absolute byte count per chunk, summed over the whole blob."""

    def _compute(self, chunk_id: int, bytes_loaded: int, bytes_total: int) -> int:
        state = self.state
        state.bytes_per_chunk[chunk_id] = bytes_loaded
        if state.total_bytes <= 0:
            return 0
        return round_half_up(sum(state.bytes_per_chunk.values()) / state.total_bytes * 100)
