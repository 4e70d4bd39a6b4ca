import threading
import time
from collections import Counter

import pytest

from s3chunkupload import RemoteError


class FakeTransport:
    """In-memory stand-in for S3Transport that records every call."""

    def __init__(self, failures=None, progress_steps=2, etag=lambda n: f'"etag-{n}"',
                 location="https://bucket.example.com/key", delay=0.0, delays=None):
        self.failures = dict(failures or {})
        self.progress_steps = progress_steps
        self.etag = etag
        self.location = location
        self.delay = delay
        self.delays = dict(delays or {})
        self.lock = threading.Lock()
        self.attempts = Counter()
        self.calls = []
        self.payloads = {}
        self.completed_parts = None
        self.in_flight = 0
        self.max_in_flight = 0

    def begin_transaction(self, bucket, key, acl=None):
        self.calls.append(("begin", bucket, key, acl))
        return "upload-1"

    def upload_part(self, bucket, key, part_number, upload_id, body, on_progress=None):
        data = bytes(body)
        with self.lock:
            self.attempts[part_number] += 1
            self.calls.append(("upload_part", part_number, upload_id))
            should_fail = self.failures.get(part_number, 0) > 0
            if should_fail:
                self.failures[part_number] -= 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(part_number, self.delay)
            if delay:
                time.sleep(delay)
            total = len(data)
            steps = self.progress_steps
            if should_fail:
                steps = max(steps // 2, 1)
            for step in range(1, steps + 1):
                if on_progress is not None:
                    on_progress(total * step // self.progress_steps, total)
            if should_fail:
                raise RemoteError("upload_part", "connection reset", part_number=part_number)
            self.payloads[part_number] = data
            return self.etag(part_number)
        finally:
            with self.lock:
                self.in_flight -= 1

    def complete_transaction(self, bucket, key, upload_id, parts):
        self.calls.append(("complete", bucket, key, upload_id))
        self.completed_parts = list(parts)
        return self.location

    def upload_calls(self):
        return [c for c in self.calls if c[0] == "upload_part"]


@pytest.fixture
def transport():
    return FakeTransport()
