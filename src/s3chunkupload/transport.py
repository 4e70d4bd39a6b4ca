"""boto3 adapter for the three multipart primitives.

`S3Transport` is what `ChunkUploader` talks to by default. Anything with the
same three methods (see `MultipartTransport`) can stand in for it, which is
how the unit tests drive the orchestrator without a network.
"""
from __future__ import annotations

import io
import logging
from collections.abc import Callable, Sequence
from typing import Any, Optional, Protocol, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from botocore.httpchecksum import AwsChunkedWrapper

from .exceptions import RemoteError

logger = logging.getLogger(__name__)

__all__ = ["MultipartTransport", "ProgressBody", "S3Transport", "build_s3_client"]

BytesProgress = Callable[[int, int], None]
Payload = Union[bytes, bytearray, memoryview]


class MultipartTransport(Protocol):
    def begin_transaction(self, bucket: str, key: str, acl: Optional[str] = None) -> str:
        ...

    def upload_part(
        self,
        bucket: str,
        key: str,
        part_number: int,
        upload_id: str,
        body: Payload,
        on_progress: Optional[BytesProgress] = None,
    ) -> Optional[str]:
        ...

    def complete_transaction(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: Sequence[tuple[int, Optional[str]]],
    ) -> Optional[str]:
        ...


# ───────────────────────────── Client construction ────────────────────────────
def build_s3_client(
    endpoint_url: Optional[str] = None,
    aws_access_key_id: Optional[str] = None,
    aws_secret_access_key: Optional[str] = None,
    region_name: str = "us-east-1",
    use_ssl: bool = True,
    verify_ssl: bool = True,
    root_ca_path: Optional[str] = None,
    addressing_style: str = "path",
):
    """Create a boto3 S3 client for AWS or any S3-compatible endpoint.

    Credentials left as ``None`` fall back to boto3's usual lookup chain.
    ``root_ca_path`` takes precedence over ``verify_ssl`` for certificate
    verification (useful with self-signed endpoints).
    """
    session = boto3.Session(
        aws_access_key_id=aws_access_key_id,
        aws_secret_access_key=aws_secret_access_key,
        region_name=region_name,
    )
    _verify_param = root_ca_path if root_ca_path else verify_ssl
    return session.client(
        "s3",
        endpoint_url=endpoint_url,
        use_ssl=use_ssl,
        verify=_verify_param,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": addressing_style},
            # ChunkUploader owns retrying; one HTTP attempt per call here
            retries={"total_max_attempts": 1},
        ),
    )


# ──────────────────────────────── Progress body ───────────────────────────────
class ProgressBody(io.RawIOBase):
    """Seekable read-only wrapper that reports how far a payload was read.

    The reported value is the absolute read position, so rewinding makes it
    go back down. The body starts muted: the checksum and signing passes
    botocore makes while preparing the request are not reported. The
    ``before-send`` hook switches reporting on right before the bytes go out,
    and ``request-created`` mutes it again when botocore rebuilds a request.
    """

    def __init__(self, payload: Payload, on_progress: Optional[BytesProgress] = None) -> None:
        super().__init__()
        self._view = memoryview(payload).cast("B")
        self._position = 0
        self._on_progress = on_progress
        self._transferring = False

    def __len__(self) -> int:
        return self._view.nbytes

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def read(self, amt: Optional[int] = -1) -> bytes:
        total = len(self)
        end = total if amt is None or amt < 0 else min(self._position + amt, total)
        data = self._view[self._position:end].tobytes()
        self._position = end
        if data and self._transferring and self._on_progress is not None:
            self._on_progress(self._position, total)
        return data

    def readinto(self, buffer) -> int:
        data = self.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            position = len(self) + offset
        else:
            raise ValueError(f"invalid whence ({whence})")
        self._position = max(0, min(position, len(self)))
        return self._position

    def tell(self) -> int:
        return self._position

    def signal_transferring(self) -> None:
        self._transferring = True

    def signal_not_transferring(self) -> None:
        self._transferring = False


def _progress_body(request) -> Any:
    body = request.body
    if isinstance(body, AwsChunkedWrapper):
        body = getattr(body, "_raw", None)
    return body


def _signal_not_transferring(request, **kwargs) -> None:
    body = _progress_body(request)
    if hasattr(body, "signal_not_transferring"):
        body.signal_not_transferring()


def _signal_transferring(request, **kwargs) -> None:
    # before-send runs after checksum and signing, just before the wire
    body = _progress_body(request)
    if hasattr(body, "signal_transferring"):
        body.signal_transferring()


def _remote_error(operation: str, exc: Exception, part_number: Optional[int] = None) -> RemoteError:
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {}) or {}
        meta = exc.response.get("ResponseMetadata", {}) or {}
        return RemoteError(
            operation,
            err.get("Message") or str(exc),
            code=err.get("Code"),
            status=meta.get("HTTPStatusCode"),
            part_number=part_number,
        )
    return RemoteError(operation, str(exc), part_number=part_number)


# ───────────────────────────────── Transport ──────────────────────────────────
class S3Transport:
    """Multipart primitives on top of a boto3 S3 client.

    botocore errors are re-raised as `RemoteError` with the original
    exception chained.
    """

    def __init__(self, s3_client) -> None:
        self.s3_client = s3_client
        events = s3_client.meta.events
        events.register_first(
            "request-created.s3.UploadPart",
            _signal_not_transferring,
            unique_id="s3chunkupload-not-transferring",
        )
        events.register_first(
            "before-send.s3.UploadPart",
            _signal_transferring,
            unique_id="s3chunkupload-transferring",
        )

    @classmethod
    def from_credentials(cls, **client_kwargs: Any) -> "S3Transport":
        return cls(build_s3_client(**client_kwargs))

    def begin_transaction(self, bucket: str, key: str, acl: Optional[str] = None) -> str:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if acl:
            params["ACL"] = acl
        try:
            resp = self.s3_client.create_multipart_upload(**params)
        except (BotoCoreError, ClientError) as exc:
            logger.error("create_multipart_upload failed for s3://%s/%s: %s", bucket, key, exc)
            raise _remote_error("begin", exc) from exc
        return resp["UploadId"]

    def upload_part(
        self,
        bucket: str,
        key: str,
        part_number: int,
        upload_id: str,
        body: Payload,
        on_progress: Optional[BytesProgress] = None,
    ) -> Optional[str]:
        try:
            resp = self.s3_client.upload_part(
                Bucket=bucket,
                Key=key,
                PartNumber=part_number,
                UploadId=upload_id,
                Body=ProgressBody(body, on_progress),
            )
        except (BotoCoreError, ClientError) as exc:
            raise _remote_error("upload_part", exc, part_number) from exc
        return resp.get("ETag")

    def complete_transaction(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        parts: Sequence[tuple[int, Optional[str]]],
    ) -> Optional[str]:
        """Complete the upload with *parts* sorted by part number.

        S3 rejects a completion without parts, so an empty blob is stored by
        sending a single zero-length part 1 first.
        """
        if not parts:
            parts = [(1, self._upload_empty_part(bucket, key, upload_id))]

        part_list = []
        for part_number, etag in parts:
            entry: dict[str, Any] = {"PartNumber": part_number}
            # a missing tag is dropped rather than sent as null
            if etag is not None:
                entry["ETag"] = etag
            part_list.append(entry)
        try:
            resp = self.s3_client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": part_list},
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("complete_multipart_upload failed for s3://%s/%s: %s", bucket, key, exc)
            raise _remote_error("complete", exc) from exc
        return resp.get("Location")

    def _upload_empty_part(self, bucket: str, key: str, upload_id: str) -> Optional[str]:
        logger.debug("No parts for s3://%s/%s, sending an empty part 1", bucket, key)
        try:
            resp = self.s3_client.upload_part(
                Bucket=bucket, Key=key, PartNumber=1, UploadId=upload_id, Body=b""
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Empty part upload failed for s3://%s/%s: %s", bucket, key, exc)
            raise _remote_error("complete", exc, 1) from exc
        return resp.get("ETag")
