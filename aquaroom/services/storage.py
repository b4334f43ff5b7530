# aquaroom/services/storage.py
"""
Image storage gateway: local disk (served under /uploads) or a Supabase
Storage bucket through its REST API.
"""
from __future__ import annotations

import mimetypes
import os
import secrets
import time

import httpx
from flask import current_app
from werkzeug.utils import secure_filename

from ..errors import StorageError, ValidationError
from ..utils.logger import get_logger

logger = get_logger("storage")

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg"}
STORAGE_FAILED = "ไม่สามารถอัปโหลดไฟล์ได้ กรุณาลองใหม่อีกครั้ง"


def _ext(filename: str) -> str:
    return filename.rsplit(".", 1)[1].lower() if "." in filename else ""


def file_size(file_storage) -> int:
    stream = file_storage.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def validate_image(file_storage, max_size: int):
    """Rejects non-images and files larger than ``max_size`` bytes."""
    if not file_storage or not file_storage.filename:
        raise ValidationError("กรุณาเลือกไฟล์", field="file")
    mimetype = file_storage.mimetype or mimetypes.guess_type(file_storage.filename)[0] or ""
    if not mimetype.startswith("image/") or _ext(file_storage.filename) not in ALLOWED_EXTENSIONS:
        raise ValidationError("อนุญาตเฉพาะไฟล์รูปภาพเท่านั้น", field="file")
    if file_size(file_storage) > max_size:
        mb = max_size / (1024 * 1024)
        raise ValidationError(f"ขนาดไฟล์ต้องไม่เกิน {mb:g}MB", field="file")


def generated_name(filename: str, prefix: str | None = None) -> str:
    ext = _ext(secure_filename(filename) or filename) or "bin"
    stem = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"
    return f"{prefix}-{stem}.{ext}" if prefix else f"{stem}.{ext}"


class LocalStorage:
    def __init__(self, root: str, base_url: str = "/uploads"):
        self.root = root
        self.base_url = base_url.rstrip("/")

    def save(self, file_storage, path: str) -> str:
        abs_path = os.path.join(self.root, *path.split("/"))
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        try:
            file_storage.stream.seek(0)
            file_storage.save(abs_path)
        except OSError as e:
            logger.error("Local save failed for %s: %s", path, e)
            raise StorageError(STORAGE_FAILED)
        logger.info("Stored upload %s", path)
        return f"{self.base_url}/{path}"

    def delete(self, url: str):
        prefix = f"{self.base_url}/"
        if not url or not url.startswith(prefix):
            return
        abs_path = os.path.join(self.root, *url[len(prefix):].split("/"))
        if os.path.exists(abs_path):
            os.remove(abs_path)
            logger.info("Removed upload %s", abs_path)


class SupabaseStorage:
    """
    Lightweight client for the Supabase Storage REST API.
    """
    def __init__(self, url: str, key: str, bucket: str, timeout: float = 30.0):
        if not url or not key or not bucket:
            raise StorageError("ยังไม่ได้ตั้งค่าที่เก็บไฟล์")
        self.url = url.rstrip("/")
        self.bucket = bucket
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }
        self.client = httpx.Client(base_url=self.url, headers=self.headers, timeout=timeout)

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{path}"

    def save(self, file_storage, path: str) -> str:
        file_storage.stream.seek(0)
        content = file_storage.stream.read()
        try:
            response = self.client.post(
                f"/storage/v1/object/{self.bucket}/{path}",
                content=content,
                headers={
                    "Content-Type": file_storage.mimetype or "application/octet-stream",
                    "x-upsert": "true",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Supabase upload failed for %s: %s", path, e)
            raise StorageError(STORAGE_FAILED)
        logger.info("Uploaded %s to bucket %s", path, self.bucket)
        return self.public_url(path)

    def delete(self, url: str):
        prefix = f"{self.url}/storage/v1/object/public/{self.bucket}/"
        if not url or not url.startswith(prefix):
            return
        path = url[len(prefix):]
        try:
            response = self.client.request(
                "DELETE", f"/storage/v1/object/{self.bucket}", json={"prefixes": [path]}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Supabase delete failed for %s: %s", path, e)
            raise StorageError("ไม่สามารถลบไฟล์ได้")


def get_storage():
    """One Supabase client per app, reused across requests."""
    app = current_app._get_current_object()
    cfg = app.config
    if cfg.get("STORAGE_BACKEND") == "supabase":
        storage = app.extensions.get("aquaroom.storage")
        if storage is None:
            storage = SupabaseStorage(cfg.get("SUPABASE_URL"), cfg.get("SUPABASE_SERVICE_ROLE_KEY"), cfg.get("SUPABASE_BUCKET"))
            app.extensions["aquaroom.storage"] = storage
        return storage
    return LocalStorage(cfg["UPLOAD_FOLDER"])


def store_image(file_storage, folder: str, max_size: int, prefix: str | None = None) -> str:
    validate_image(file_storage, max_size)
    path = f"{folder}/{generated_name(file_storage.filename, prefix)}"
    return get_storage().save(file_storage, path)
