# contactsheet/storage.py
"""
Storage boundary: list, fetch and put named byte blobs.

Two backends share one interface. ``LocalStorage`` keeps each bucket as a
directory under ``DATA_DIR/buckets``; ``S3Storage`` talks to S3 via boto3.
"""
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from contactsheet.config import Settings
from contactsheet.errors import ItemFetchError, ListingError, UploadError
from contactsheet.logging_config import get_logger
from contactsheet.selector import SourceItem

log = get_logger(__name__)


class Storage(Protocol):
    def list(self, bucket: str) -> List[SourceItem]: ...

    def fetch_bytes(self, bucket: str, key: str) -> bytes: ...

    def put_bytes(self, bucket: str, key: str, data: bytes, content_type: str) -> str: ...


class LocalStorage:
    def __init__(self, root: str):
        self.root = Path(root)

    def _bucket(self, bucket: str) -> Path:
        path = (self.root / bucket).resolve()
        if self.root.resolve() not in path.parents:
            raise ListingError(bucket, "invalid bucket name")
        return path

    def _object(self, bucket: str, key: str) -> Path:
        base = self._bucket(bucket)
        path = (base / key).resolve()
        if base not in path.parents:
            raise ItemFetchError(key, "invalid key")
        return path

    def list(self, bucket: str) -> List[SourceItem]:
        base = self._bucket(bucket)
        if not base.is_dir():
            raise ListingError(bucket, "no such bucket")
        items = []
        for path in sorted(base.rglob("*")):
            if not path.is_file():
                continue
            mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            items.append(SourceItem(name=path.relative_to(base).as_posix(), last_modified=mtime))
        return items

    def fetch_bytes(self, bucket: str, key: str) -> bytes:
        try:
            return self._object(bucket, key).read_bytes()
        except OSError as e:
            raise ItemFetchError(key, str(e))

    def put_bytes(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            path = self._object(bucket, key)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except (OSError, ItemFetchError, ListingError) as e:
            raise UploadError(key, str(e))
        log.debug("Stored %s (%s, %d bytes)", path, content_type, len(data))
        return path.as_uri()


class S3Storage:
    def __init__(self, client=None, region: Optional[str] = None):
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def list(self, bucket: str) -> List[SourceItem]:
        items = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket):
                for obj in page.get("Contents", []):
                    items.append(SourceItem(name=obj["Key"], last_modified=obj["LastModified"]))
        except (ClientError, BotoCoreError) as e:
            raise ListingError(bucket, str(e))
        return items

    def fetch_bytes(self, bucket: str, key: str) -> bytes:
        try:
            resp = self.client.get_object(Bucket=bucket, Key=key)
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise ItemFetchError(key, f"could not download from S3: {e}")

    def put_bytes(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            raise UploadError(key, str(e))
        if self.region:
            return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{bucket}.s3.amazonaws.com/{key}"


def get_storage(settings: Settings, region: Optional[str] = None) -> Storage:
    if settings.storage_backend == "s3":
        return S3Storage(region=region or settings.aws_region)
    os.makedirs(settings.buckets_dir, exist_ok=True)
    return LocalStorage(settings.buckets_dir)


def optional_storage(settings: Settings, bucket: Optional[str],
                     region: Optional[str] = None) -> Optional[Storage]:
    """
    Storage for a best-effort upload to ``bucket``. Returns None when no
    bucket is configured or the backend cannot be set up.
    """
    if not bucket:
        return None
    try:
        return get_storage(settings, region)
    except (BotoCoreError, OSError) as e:
        log.warning("Cannot connect to storage, image will not be uploaded: %s", e)
        return None
