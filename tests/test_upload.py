import io

import httpx
import pytest
from werkzeug.datastructures import FileStorage

from aquaroom.errors import StorageError, ValidationError
from aquaroom.services.storage import SupabaseStorage, generated_name, get_storage, validate_image


def _file(name="fish.jpg", size=32, mimetype="image/jpeg"):
    return (io.BytesIO(b"x" * size), name, mimetype)


def test_upload_many_files(admin_client):
    r = admin_client.post(
        "/api/upload",
        data={"a": _file("one.jpg"), "b": _file("two.png", mimetype="image/png")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 200
    body = r.get_json()
    assert body["success"] is True
    assert len(body["urls"]) == 2
    assert all(u.startswith("/uploads/products/") for u in body["urls"])
    assert admin_client.get(body["urls"][0]).data == b"x" * 32


def test_upload_rejects_non_images(admin_client):
    r = admin_client.post(
        "/api/upload",
        data={"file": _file("notes.txt", mimetype="text/plain")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 400
    assert r.get_json()["message"] == "อนุญาตเฉพาะไฟล์รูปภาพเท่านั้น"


def test_upload_rejects_large_files(admin_client):
    r = admin_client.post(
        "/api/upload",
        data={"file": _file(size=5 * 1024 * 1024 + 1)},
        content_type="multipart/form-data",
    )
    assert r.status_code == 400
    assert r.get_json()["message"] == "ขนาดไฟล์ต้องไม่เกิน 5MB"


def test_upload_without_files(admin_client):
    r = admin_client.post("/api/upload", data={}, content_type="multipart/form-data")
    assert r.status_code == 400


def test_upload_requires_admin(client):
    r = client.post("/api/upload", data={"file": _file()}, content_type="multipart/form-data")
    assert r.status_code == 401


def test_generated_name():
    name = generated_name("My Photo.JPG", prefix="bank-icon-1")
    assert name.startswith("bank-icon-1-")
    assert name.endswith(".jpg")


def test_validate_image_size_limit():
    f = FileStorage(stream=io.BytesIO(b"x" * 2048), filename="icon.png", content_type="image/png")
    with pytest.raises(ValidationError):
        validate_image(f, 1024)


def _supabase(handler):
    storage = SupabaseStorage("https://demo.supabase.co", "service-key", "images")
    storage.client = httpx.Client(
        base_url=storage.url, headers=storage.headers, transport=httpx.MockTransport(handler)
    )
    return storage


def test_supabase_upload_returns_public_url():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["upsert"] = request.headers.get("x-upsert")
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"Key": "images/products/a.jpg"})

    f = FileStorage(stream=io.BytesIO(b"img"), filename="a.jpg", content_type="image/jpeg")
    url = _supabase(handler).save(f, "products/a.jpg")
    assert url == "https://demo.supabase.co/storage/v1/object/public/images/products/a.jpg"
    assert seen == {
        "path": "/storage/v1/object/images/products/a.jpg",
        "upsert": "true",
        "auth": "Bearer service-key",
    }


def test_supabase_failure_is_storage_error():
    f = FileStorage(stream=io.BytesIO(b"img"), filename="a.jpg", content_type="image/jpeg")
    storage = _supabase(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(StorageError) as e:
        storage.save(f, "products/a.jpg")
    assert e.value.status_code == 502


def test_supabase_client_is_shared(app):
    app.config.update(
        STORAGE_BACKEND="supabase",
        SUPABASE_URL="https://demo.supabase.co",
        SUPABASE_SERVICE_ROLE_KEY="service-key",
        SUPABASE_BUCKET="images",
    )
    first = get_storage()
    assert isinstance(first, SupabaseStorage)
    assert get_storage() is first
    assert get_storage().client is first.client


def test_supabase_requires_config():
    with pytest.raises(StorageError):
        SupabaseStorage("", "key", "bucket")
