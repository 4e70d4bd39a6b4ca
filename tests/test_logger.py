import logging

import pytest

from conftest import FakeTransport
from s3chunkupload import LoggedChunkUploader, RemoteError, UploadLogger


@pytest.fixture
def logged(transport):
    return LoggedChunkUploader(transport, max_chunk_size=100, retry_delay=0, log_file=None)


def test_successful_upload_is_recorded(logged, transport, caplog):
    with caplog.at_level(logging.INFO, logger="ChunkUploader"):
        location = logged.upload_media_in_chunks(b"x" * 250, "bucket", "media/a.bin")

    assert location == transport.location
    records = [r for r in caplog.records if r.name == "ChunkUploader"]
    assert len(records) == 1
    assert "UPLOAD - s3://bucket/media/a.bin - SUCCESS" in records[0].getMessage()


def test_failed_upload_is_recorded_and_raised(caplog):
    uploader = LoggedChunkUploader(
        FakeTransport(failures={1: 100}), max_chunk_size=100, retry_delay=0, log_file=None
    )

    with caplog.at_level(logging.INFO, logger="ChunkUploader"):
        with pytest.raises(RemoteError):
            uploader.upload_media_in_chunks(b"x" * 250, "bucket", "key", strategy="parallel")

    records = [r for r in caplog.records if r.name == "ChunkUploader"]
    assert [r.levelno for r in records] == [logging.ERROR]
    assert "FAILED" in records[0].getMessage()


def test_log_operation_details(caplog):
    upload_logger = UploadLogger(log_file=None)

    with caplog.at_level(logging.INFO, logger="ChunkUploader"):
        upload_logger.log_operation("UPLOAD", "s3://b/k", True, "1.00s")

    assert caplog.records[-1].getMessage().endswith("UPLOAD - s3://b/k - SUCCESS - 1.00s")


def test_log_file_handler_created(tmp_path):
    log_file = tmp_path / "upload.log"
    upload_logger = UploadLogger(log_file=str(log_file))

    assert upload_logger.logger.name == "ChunkUploader"
    assert log_file.exists()
