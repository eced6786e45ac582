import base64
import os
from io import BytesIO

import pytest
from PIL import Image

from conftest import image_bytes, solid
from contactsheet.routers import combine as combine_routes
from contactsheet.routers import modify as modify_routes


def _bucket_file(data_dir, bucket, name, data, mtime):
    path = data_dir / "buckets" / bucket / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    os.utime(path, (mtime, mtime))


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_rejects_bad_password(client):
    r = client.post("/auth/login", data={"username": "alice", "password": "wrong"})
    assert r.status_code == 401


def test_me(client, auth_headers):
    assert client.get("/me", headers=auth_headers).json() == {"username": "alice", "role": "user"}


def test_combine_requires_auth(client):
    assert client.post("/v1/combine", json={"bucket": "uploads"}).status_code == 401


def test_combine_bucket(client, auth_headers, data_dir):
    _bucket_file(data_dir, "uploads", "b.png", image_bytes(solid((0, 0, 255))), 2000)
    _bucket_file(data_dir, "uploads", "a.png", image_bytes(solid((255, 0, 0))), 1000)
    _bucket_file(data_dir, "uploads", "bad.png", b"nope", 1500)

    r = client.post("/v1/combine", json={"bucket": "uploads"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["image_count"] == 2
    assert (body["width"], body["height"]) == (2100, 2100)
    assert body["key"] == "combined.png"

    sheet = Image.open(data_dir / "buckets" / "sheets" / "combined.png")
    assert sheet.getpixel((0, 0)) == (255, 0, 0, 255)
    assert sheet.getpixel((420, 0)) == (0, 0, 255, 255)

    job = client.get(f"/v1/jobs/{body['job_id']}", headers=auth_headers).json()
    assert job["status"] == "done"
    assert job["kind"] == "combine"
    assert job["image_count"] == 2


def test_combine_too_many(client, auth_headers, data_dir):
    for i in range(76):
        _bucket_file(data_dir, "crowded", f"{i}.png", b"x", 1000 + i)
    r = client.post("/v1/combine", json={"bucket": "crowded"}, headers=auth_headers)
    assert r.status_code == 413
    assert "76" in r.json()["detail"]
    assert not (data_dir / "buckets" / "sheets" / "combined.png").exists()


def test_combine_unknown_bucket(client, auth_headers, data_dir):
    r = client.post("/v1/combine", json={"bucket": "ghost"}, headers=auth_headers)
    assert r.status_code == 404


def test_combine_without_destination(client, auth_headers, data_dir, monkeypatch):
    monkeypatch.delenv("BUCKET_FOR_SAVING_COMBINED_IMG")
    _bucket_file(data_dir, "uploads", "a.png", image_bytes(solid((1, 1, 1))), 1000)
    r = client.post("/v1/combine", json={"bucket": "uploads"}, headers=auth_headers)
    assert r.status_code == 500


def test_failed_jobs_are_recorded(client, auth_headers, data_dir):
    client.post("/v1/combine", json={"bucket": "ghost"}, headers=auth_headers)
    r = client.get("/v1/jobs", params={"status": "error", "kind": "combine"}, headers=auth_headers)
    assert r.status_code == 200
    assert int(r.headers["X-Total-Count"]) >= 1
    assert all(j["status"] == "error" for j in r.json())
    assert 'rel="self"' in r.headers["Link"]


def test_combine_upload(client, auth_headers):
    files = [
        ("files", ("one.png", image_bytes(solid((255, 0, 0))), "image/png")),
        ("files", ("two.jpg", image_bytes(solid((0, 255, 0)), "JPEG"), "image/jpeg")),
    ]
    r = client.post("/v1/combine/upload", files=files, headers=auth_headers)
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    sheet = Image.open(BytesIO(r.content))
    assert sheet.size == (2100, 2100)
    assert sheet.getpixel((0, 0)) == (255, 0, 0, 255)


def test_modify(client, auth_headers, data_dir):
    payload = {
        "operation": "all",
        "base64Image": base64.b64encode(image_bytes(solid((90, 40, 10), size=(120, 80)))).decode(),
        "imgName": "sunset.png",
    }
    r = client.post("/v1/modify", json=payload, headers=auth_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    out = Image.open(BytesIO(base64.b64decode(body["image"])))
    assert out.size == (400, 400)
    assert body["key"] == "sunset-modified.jpg"
    assert (data_dir / "buckets" / "modified" / "sunset-modified.jpg").is_file()


def test_modify_rejects_unknown_operation(client, auth_headers, data_dir):
    payload = {"operation": "sharpen", "base64Image": "", "imgName": "a.png"}
    r = client.post("/v1/modify", json=payload, headers=auth_headers)
    assert r.status_code == 400
    assert "sharpen" in r.json()["detail"]


def test_modify_rejects_bad_name(client, auth_headers, data_dir):
    payload = {"operation": "blur", "base64Image": "", "imgName": "photo.txt"}
    assert client.post("/v1/modify", json=payload, headers=auth_headers).status_code == 400


def test_modify_file(client, auth_headers):
    files = {"file": ("tall.jpg", image_bytes(solid((10, 200, 30), size=(100, 300)), "JPEG"), "image/jpeg")}
    r = client.post("/v1/modify/file", params={"op": "grayscale"}, files=files, headers=auth_headers)
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/jpeg"
    assert Image.open(BytesIO(r.content)).size == (400, 400)


def test_modify_file_rejects_unknown_op(client, auth_headers):
    files = {"file": ("a.png", image_bytes(solid((0, 0, 0))), "image/png")}
    r = client.post("/v1/modify/file", params={"op": "sharpen"}, files=files, headers=auth_headers)
    assert r.status_code == 400
    assert "sharpen" in r.json()["detail"]


def test_admin_logs_require_admin(client, auth_headers, admin_headers):
    assert client.get("/admin/logs", headers=auth_headers).status_code == 403
    r = client.get("/admin/logs", headers=admin_headers)
    assert r.status_code == 200
    assert isinstance(r.json(), list)


def test_my_logs(client, auth_headers, data_dir):
    client.post("/v1/combine", json={"bucket": "ghost"}, headers=auth_headers)
    rows = client.get("/logs/mine", params={"action": "error"}, headers=auth_headers).json()
    assert rows
    assert all(row["user_id"] == "alice" for row in rows)


@pytest.mark.parametrize("name", ["photo.txt", "photo"])
def test_modify_file_rejects_bad_names(client, auth_headers, name):
    files = {"file": (name, image_bytes(solid((0, 0, 0))), "image/png")}
    r = client.post("/v1/modify/file", params={"op": "blur"}, files=files, headers=auth_headers)
    assert r.status_code == 400


def test_combine_upload_too_many(client, auth_headers):
    png = image_bytes(solid((0, 0, 0), size=(2, 2)))
    files = [("files", (f"{i}.png", png, "image/png")) for i in range(76)]
    r = client.post("/v1/combine/upload", files=files, headers=auth_headers)
    assert r.status_code == 413


def _boom(*args, **kwargs):
    raise RuntimeError("boom")


def test_unexpected_combine_failure_is_recorded(client, auth_headers, data_dir, monkeypatch):
    monkeypatch.setattr(combine_routes, "run_combine", _boom)
    r = client.post("/v1/combine", json={"bucket": "uploads"}, headers=auth_headers)
    assert r.status_code == 500

    jobs = client.get("/v1/jobs", params={"kind": "combine", "status": "error", "limit": 100},
                      headers=auth_headers).json()
    assert any(j["error_message"] == "boom" for j in jobs)
    assert not any(j["status"] == "processing" for j in client.get(
        "/v1/jobs", params={"kind": "combine", "limit": 100}, headers=auth_headers).json())


def test_unexpected_modify_failure_is_recorded(client, auth_headers, data_dir, monkeypatch):
    monkeypatch.setattr(modify_routes, "run_modify", _boom)
    payload = {"operation": "blur", "base64Image": "", "imgName": "a.png"}
    r = client.post("/v1/modify", json=payload, headers=auth_headers)
    assert r.status_code == 500

    rows = client.get("/logs/mine", params={"action": "error", "limit": 200},
                      headers=auth_headers).json()
    assert any(row["details"].get("type") == "RuntimeError" for row in rows)


def test_database_url_comes_from_env():
    from contactsheet import db
    assert db.DATABASE_URL == os.environ["DATABASE_URL"]
