import os
import struct
import tempfile
import zlib
from datetime import datetime, timedelta, timezone
from io import BytesIO

# must be set before contactsheet.db is imported
_TMP = tempfile.mkdtemp(prefix="contactsheet-tests-")
os.environ["DATA_DIR"] = _TMP
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["AUTH_USERS"] = "alice:password1:user,admin:admin123:admin"

import pytest
from PIL import Image

from contactsheet.config import Settings
from contactsheet.errors import ItemFetchError, ListingError, UploadError
from contactsheet.selector import SourceItem

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def solid(color, size=(10, 10), mode="RGB") -> Image.Image:
    return Image.new(mode, size, color)


def image_bytes(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def png_header_only(width: int, height: int) -> bytes:
    """A PNG signature and IHDR chunk with no pixel data."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    chunk = b"IHDR" + ihdr
    return (b"\x89PNG\r\n\x1a\n" + struct.pack(">I", len(ihdr)) + chunk
            + struct.pack(">I", zlib.crc32(chunk) & 0xFFFFFFFF))


class FakeStorage:
    """In-memory storage that records every call."""

    def __init__(self, fail_put=False):
        self.objects = {}
        self.fetched = []
        self.puts = []
        self.fail_put = fail_put

    def add(self, bucket, name, data, minutes=0):
        ts = BASE_TIME + timedelta(minutes=minutes)
        self.objects.setdefault(bucket, []).append((SourceItem(name, ts), data))

    def list(self, bucket):
        if bucket not in self.objects:
            raise ListingError(bucket, "no such bucket")
        return [item for item, _ in self.objects[bucket]]

    def fetch_bytes(self, bucket, key):
        self.fetched.append(key)
        for item, data in self.objects.get(bucket, []):
            if item.name == key:
                if data is None:
                    raise ItemFetchError(key, "simulated failure")
                return data
        raise ItemFetchError(key, "missing")

    def put_bytes(self, bucket, key, data, content_type):
        if self.fail_put:
            raise UploadError(key, "simulated failure")
        self.puts.append((bucket, key, data, content_type))
        return f"mem://{bucket}/{key}"


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=str(tmp_path),
        storage_backend="local",
        aws_region=None,
        combined_bucket="sheets",
        modified_bucket="modified",
        fetch_workers=4,
        debug=False,
    )


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("BUCKET_FOR_SAVING_COMBINED_IMG", "sheets")
    monkeypatch.setenv("BUCKET_FOR_SAVING_IMG", "modified")
    return tmp_path


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from contactsheet.main import app

    with TestClient(app) as c:
        yield c


def _login(client, username, password):
    r = client.post("/auth/login", data={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return _login(client, "alice", "password1")


@pytest.fixture
def admin_headers(client):
    return _login(client, "admin", "admin123")
