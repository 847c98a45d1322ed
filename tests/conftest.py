from __future__ import annotations

import random
import threading
import time
from pathlib import Path
from types import SimpleNamespace

import pytest


class FakeS3:
    """Records puts instead of talking to a bucket."""

    def __init__(self, endpoint_url: str = "https://oss-cn-hangzhou.aliyuncs.com", fail_keys: tuple = ()) -> None:
        self.meta = SimpleNamespace(endpoint_url=endpoint_url)
        self.fail_keys = set(fail_keys)
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def _record(self, kind: str, body, bucket: str, key: str, callback) -> None:
        # finish out of order so ordering comes from the join, not completion time
        time.sleep(random.uniform(0, 0.02))
        if key in self.fail_keys:
            raise RuntimeError(f"put {key} denied")
        with self._lock:
            self.calls.append((kind, bucket, key, body))
        if callback is not None:
            callback(len(body) if isinstance(body, bytes) else Path(body).stat().st_size)

    def upload_file(self, filename: str, bucket: str, key: str, Callback=None) -> None:
        self._record("file", filename, bucket, key, Callback)

    def upload_fileobj(self, fileobj, bucket: str, key: str, Callback=None) -> None:
        self._record("fileobj", fileobj.read(), bucket, key, Callback)


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()
