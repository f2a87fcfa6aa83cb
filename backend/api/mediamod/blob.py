"""Blob gateway: stores uploaded bytes and returns a stable public URL."""

from __future__ import annotations

import time
from pathlib import Path, PurePath
from typing import Protocol
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from mediamod.config import Settings
from mediamod.errors import StorageUnavailable
from mediamod.logging_config import get_logger

logger = get_logger(__name__)


class BlobGateway(Protocol):
    def upload(self, data: bytes, content_type: str | None, filename: str, folder: str) -> str:
        ...


def build_key(folder: str, filename: str) -> str:
    """`<folder>/<epoch_ms>-<random>-<basename>`; directory parts of the client filename are dropped.

    Keys are unique per call, so an uploaded object is never overwritten.
    """
    name = PurePath((filename or "upload").replace("\\", "/")).name or "upload"
    return f"{folder.strip('/')}/{int(time.time() * 1000)}-{uuid4().hex[:12]}-{name}"


class LocalBlobGateway:
    """Writes under `root`; files are served by the API at /uploads."""

    def __init__(self, root: Path, public_base_url: str = ""):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def upload(self, data: bytes, content_type: str | None, filename: str, folder: str) -> str:
        key = build_key(folder, filename)
        target = self.root / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as fh:
                fh.write(data)
        except OSError as e:
            logger.error("blob_upload_failed", backend="local", key=key, error=str(e))
            raise StorageUnavailable(f"Could not store upload: {e}") from e

        logger.info("blob_uploaded", backend="local", key=key, size=len(data), content_type=content_type)
        return f"{self.public_base_url}/uploads/{key}"


class S3BlobGateway:
    def __init__(self, bucket: str, region: str | None = None, public_base_url: str | None = None, client=None):
        self.bucket = bucket
        self.region = region
        self.public_base_url = (public_base_url or "").rstrip("/")
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(signature_version="s3v4"),
        )

    def _public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def upload(self, data: bytes, content_type: str | None, filename: str, folder: str) -> str:
        key = build_key(folder, filename)
        extra = {"ACL": "public-read"}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            logger.error("blob_upload_failed", backend="s3", bucket=self.bucket, key=key, error=str(e))
            raise StorageUnavailable(f"Could not upload to S3: {e}") from e

        logger.info("blob_uploaded", backend="s3", bucket=self.bucket, key=key, size=len(data))
        return self._public_url(key)


def build_blob_gateway(settings: Settings) -> BlobGateway:
    if settings.blob_backend == "s3":
        if not settings.s3_bucket:
            raise RuntimeError("BLOB_BACKEND=s3 requires S3_BUCKET to be set.")
        return S3BlobGateway(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            public_base_url=settings.s3_public_base_url,
        )
    if settings.blob_backend != "local":
        raise RuntimeError(f"Unknown BLOB_BACKEND: {settings.blob_backend!r} (expected 'local' or 's3')")
    return LocalBlobGateway(settings.upload_dir, settings.public_base_url)
