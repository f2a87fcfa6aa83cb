"""Tests for blob gateways."""

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
from botocore.exceptions import ClientError

from mediamod.blob import LocalBlobGateway, S3BlobGateway, build_key
from mediamod.errors import StorageUnavailable


class FakeS3Client:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict[str, Any]] = []

    def put_object(self, **kwargs: Any) -> dict:
        if self.fail:
            raise ClientError({"Error": {"Code": "503", "Message": "Slow Down"}}, "PutObject")
        self.calls.append(kwargs)
        return {}


def test_build_key_keeps_only_basename() -> None:
    key = build_key("media", "../../etc/passwd")
    folder, name = key.split("/")
    assert folder == "media"
    assert name.endswith("-passwd")
    assert name.split("-", 1)[0].isdigit()


def test_local_upload_writes_file_and_returns_public_url(tmp_path: Path) -> None:
    gateway = LocalBlobGateway(tmp_path, public_base_url="http://cdn.local/")

    url = gateway.upload(b"abc", "image/png", "cat.png", "media")

    assert url.startswith("http://cdn.local/uploads/media/")
    assert url.endswith("-cat.png")
    key = url.split("/uploads/", 1)[1]
    assert (tmp_path / key).read_bytes() == b"abc"


def test_local_upload_failure_is_storage_unavailable(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    gateway = LocalBlobGateway(blocker)

    with pytest.raises(StorageUnavailable):
        gateway.upload(b"abc", "image/png", "cat.png", "media")


def test_s3_upload_puts_public_object() -> None:
    client = FakeS3Client()
    gateway = S3BlobGateway("bucket-1", region="eu-west-1", client=client)

    url = gateway.upload(b"abc", "video/mp4", "clip.mp4", "media")

    assert len(client.calls) == 1
    call = client.calls[0]
    assert call["Bucket"] == "bucket-1"
    assert call["Body"] == b"abc"
    assert call["ContentType"] == "video/mp4"
    assert call["ACL"] == "public-read"
    assert url == f"https://bucket-1.s3.eu-west-1.amazonaws.com/{call['Key']}"


def test_s3_public_base_url_override() -> None:
    client = FakeS3Client()
    gateway = S3BlobGateway("bucket-1", public_base_url="https://media.example.com/", client=client)

    url = gateway.upload(b"abc", None, "a.png", "media")

    assert url == f"https://media.example.com/{client.calls[0]['Key']}"
    assert "ContentType" not in client.calls[0]


def test_s3_failure_is_storage_unavailable() -> None:
    gateway = S3BlobGateway("bucket-1", client=FakeS3Client(fail=True))

    with pytest.raises(StorageUnavailable):
        gateway.upload(b"abc", "image/png", "a.png", "media")


def test_same_name_same_millisecond_never_overwrites(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("mediamod.blob.time", SimpleNamespace(time=lambda: 1700000000.123))
    gateway = LocalBlobGateway(tmp_path, public_base_url="http://testserver")

    first = gateway.upload(b"A", "image/png", "cat.png", "media")
    second = gateway.upload(b"B", "image/png", "cat.png", "media")

    assert first != second
    assert first.endswith("-cat.png") and second.endswith("-cat.png")
    assert (tmp_path / first.split("/uploads/", 1)[1]).read_bytes() == b"A"
    assert (tmp_path / second.split("/uploads/", 1)[1]).read_bytes() == b"B"


def test_s3_keys_are_unique_within_a_millisecond(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("mediamod.blob.time", SimpleNamespace(time=lambda: 1700000000.123))
    client = FakeS3Client()
    gateway = S3BlobGateway("bucket-1", client=client)

    gateway.upload(b"A", "image/png", "cat.png", "media")
    gateway.upload(b"B", "image/png", "cat.png", "media")

    assert client.calls[0]["Key"] != client.calls[1]["Key"]
