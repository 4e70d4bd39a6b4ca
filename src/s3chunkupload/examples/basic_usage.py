"""Minimal example demonstrating how to use *s3chunkupload*.

Prerequisite:
    1. Export the required S3 credentials / endpoint variables OR create a .env file.
    2. Install the package in editable mode:  `pip install -e .[test]`

This script will
    • generate a 12 MB test payload in memory
    • upload it serially, printing progress
    • upload it again in parallel with at most 4 concurrent parts
"""
from __future__ import annotations

import os

from s3chunkupload import ChunkUploader, LoggedChunkUploader, UploaderConfig

# ---------------------------------------------------------------------------
# 1. Read configuration from environment (see UploaderConfig for details)
# ---------------------------------------------------------------------------
S3_BUCKET = os.getenv("S3_BUCKET")
OBJECT_KEY = os.getenv("OBJECT_KEY", "examples/payload.bin")

if not S3_BUCKET:
    raise SystemExit("Please set S3_BUCKET (and S3_ENDPOINT / credentials if needed)")

config = UploaderConfig.from_env()

# ---------------------------------------------------------------------------
# 2. Serial upload with progress output
# ---------------------------------------------------------------------------
payload = os.urandom(12 * 1024 * 1024)
uploader = ChunkUploader.from_config(config)


def show(progress: int) -> None:
    print(f"\r{progress:3d}%", end="", flush=True)


location = uploader.upload_media_in_chunks(payload, S3_BUCKET, OBJECT_KEY, on_progress=show)
print(f"\nSerial upload done -> {location}")

# ---------------------------------------------------------------------------
# 3. Parallel upload with a bounded worker pool and an operation log
# ---------------------------------------------------------------------------
logged = LoggedChunkUploader(uploader.transport, max_concurrency=4, log_file=None)
location = logged.upload_media_in_chunks(
    payload, S3_BUCKET, OBJECT_KEY, strategy="parallel", on_progress=show
)
print(f"\nParallel upload done -> {location}")
