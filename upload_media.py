#!/usr/bin/env python3
"""Upload one local file to S3 in chunks.

Configuration comes from the environment or a .env file, see
``s3chunkupload.config`` for the variable names. Usage::

    S3_BUCKET=media python upload_media.py video.mp4 uploads/video.mp4 [serial|parallel]
"""
import os
import sys

from dotenv import load_dotenv

# Ensure that the local src/ directory (which contains the s3chunkupload package)
# is on the Python import path when running from a checkout.
CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
SRC_DIR = os.path.join(CURRENT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from s3chunkupload import ChunkUploadError, LoggedChunkUploader, UploaderConfig  # noqa: E402
from s3chunkupload.transport import S3Transport  # noqa: E402


def main(argv: list[str]) -> int:
    load_dotenv()

    if len(argv) < 2:
        print("usage: upload_media.py FILE KEY [serial|parallel]", file=sys.stderr)
        return 1
    path, key = argv[0], argv[1]
    strategy = argv[2] if len(argv) > 2 else "serial"

    bucket = os.getenv("S3_BUCKET")
    if not bucket:
        print("ERROR: env S3_BUCKET not set", file=sys.stderr)
        return 1
    acl = os.getenv("S3_ACL") or None

    try:
        config = UploaderConfig.from_env()
        uploader = LoggedChunkUploader(
            S3Transport.from_credentials(**config.client_kwargs()),
            max_retries=config.max_retries,
            max_chunk_size=config.max_chunk_size,
            retry_delay=config.retry_delay,
            max_concurrency=config.max_concurrency,
            log_file=os.getenv("CHUNK_UPLOAD_LOG_FILE") or None,
        )
        print(f"Uploading '{path}' to s3://{bucket}/{key} ({strategy}) ...")
        with open(path, "rb") as fh:
            location = uploader.upload_media_in_chunks(
                fh,
                bucket,
                key,
                acl=acl,
                strategy=strategy,
                on_progress=lambda p: print(f"\r{p:3d}%", end="", flush=True),
            )
    except (ChunkUploadError, OSError, ValueError) as exc:
        print(f"\nERROR: upload failed: {exc}", file=sys.stderr)
        return 1

    print(f"\rUpload complete: {location or f's3://{bucket}/{key}'}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
