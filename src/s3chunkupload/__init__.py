"""s3chunkupload package

Classic src/ layout:
    src/s3chunkupload/
        __init__.py          (re-export public API)
        uploader.py          (ChunkUploader + retrying part upload)
        partition.py         (Blob / Chunk splitting)
        progress.py          (serial and parallel progress aggregation)
        transport.py         (boto3 multipart primitives)
        config.py            (UploaderConfig from environment)
        logger.py            (UploadLogger + LoggedChunkUploader)
        exceptions.py        (error types)
"""
from .config import UploaderConfig  # noqa: F401
from .exceptions import ChunkUploadError, ConfigurationError, RemoteError  # noqa: F401
from .logger import LoggedChunkUploader, UploadLogger  # noqa: F401
from .partition import Blob, Chunk, partition_blob  # noqa: F401
from .progress import ParallelProgressAggregator, ProgressState, SerialProgressAggregator  # noqa: F401
from .transport import MultipartTransport, ProgressBody, S3Transport, build_s3_client  # noqa: F401
from .uploader import ChunkUploader, PartResult, UploadStrategy, upload_part_with_retry  # noqa: F401
