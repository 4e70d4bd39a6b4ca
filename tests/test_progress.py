import pytest

from s3chunkupload import ParallelProgressAggregator, ProgressState, SerialProgressAggregator
from s3chunkupload.progress import MAX_REPORTED_PROGRESS, round_half_up


@pytest.fixture
def reported():
    return []


@pytest.mark.parametrize("value,expected", [(0, 0), (2.4, 2), (2.5, 3), (12.5, 13), (99.49, 99)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_serial_adds_in_flight_share_to_finished_chunks(reported):
    agg = SerialProgressAggregator(ProgressState(total_chunks=4, total_bytes=400), reported.append)

    agg.update(0, 50, 100)
    agg.update(0, 100, 100)
    agg.chunk_finished(0)
    agg.update(1, 10, 100)
    agg.update(1, 100, 100)
    agg.chunk_finished(1)

    assert reported == [13, 25, 28, 50]
    assert agg.state.completed_total == 50


def test_serial_finished_chunk_keeps_last_observed_share(reported):
    agg = SerialProgressAggregator(ProgressState(total_chunks=2, total_bytes=200), reported.append)

    agg.update(0, 60, 100)
    agg.chunk_finished(0)
    agg.update(1, 0, 100)

    # 60% of the first half, not 50
    assert agg.state.completed_total == 30
    assert reported == [30, 30]


def test_serial_progress_is_capped(reported):
    agg = SerialProgressAggregator(ProgressState(total_chunks=1, total_bytes=10), reported.append)

    assert agg.update(0, 10, 10) == MAX_REPORTED_PROGRESS
    assert reported == [99]


def test_serial_retry_can_move_progress_back(reported):
    agg = SerialProgressAggregator(ProgressState(total_chunks=2, total_bytes=20), reported.append)

    agg.update(0, 8, 10)
    agg.update(0, 2, 10)

    assert reported == [40, 10]


def test_parallel_sums_latest_bytes_per_chunk(reported):
    agg = ParallelProgressAggregator(ProgressState(total_chunks=3, total_bytes=300), reported.append)

    agg.update(0, 100, 100)
    agg.update(2, 50, 100)
    agg.update(0, 80, 100)
    agg.update(1, 100, 100)

    assert reported == [33, 50, 43, 77]
    assert agg.state.bytes_per_chunk == {0: 80, 1: 100, 2: 50}


def test_parallel_duplicate_events_are_idempotent(reported):
    agg = ParallelProgressAggregator(ProgressState(total_chunks=2, total_bytes=200), reported.append)

    agg.update(1, 40, 100)
    agg.update(1, 40, 100)

    assert reported == [20, 20]


def test_parallel_progress_is_capped(reported):
    agg = ParallelProgressAggregator(ProgressState(total_chunks=2, total_bytes=200), reported.append)

    agg.update(0, 100, 100)
    agg.update(1, 100, 100)

    assert reported == [50, 99]


def test_parallel_zero_total_reports_zero(reported):
    agg = ParallelProgressAggregator(ProgressState(total_chunks=0, total_bytes=0), reported.append)

    assert agg.update(0, 0, 0) == 0


def test_state_updated_without_callback():
    agg = ParallelProgressAggregator(ProgressState(total_chunks=2, total_bytes=20))

    assert agg.update(0, 5, 10) == 25
    assert agg.state.last_reported == 25
