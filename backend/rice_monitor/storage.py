"""Blob storage for uploaded field photos."""

from __future__ import annotations

import io
import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from fastapi import Request
from minio import Minio

from .config import Settings

logger = logging.getLogger(__name__)

# purpose: persist image blobs and hand back the public URL clients render
# status: active

ALLOWED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")
_KEY_PART = re.compile(r"[^A-Za-z0-9_.-]")


def is_allowed_image(filename: str) -> bool:
    """Suffix check against the image allow-list; content is not sniffed."""
    return filename.lower().endswith(ALLOWED_IMAGE_EXTENSIONS)


def build_image_key(
    submission_id: str,
    filename: str,
    now: datetime | None = None,
    owner_id: str | None = None,
) -> str:
    """Return ``{submission_id}/{uuid}_{YYYYmmdd_HHMMSS}{ext}`` for an upload.

    With ``owner_id`` the uploader gets a folder of their own:
    ``{submission_id}/{owner_id}/{uuid}_{YYYYmmdd_HHMMSS}{ext}``.
    """
    now = now or datetime.now()
    ext = os.path.splitext(filename)[1].lower()
    namespace = _KEY_PART.sub("_", submission_id) or "unassigned"
    if owner_id:
        namespace = f"{namespace}/{_KEY_PART.sub('_', owner_id)}"
    return f"{namespace}/{uuid4()}_{now:%Y%m%d_%H%M%S}{ext}"


def normalize_key(key: str) -> str:
    """Reject keys that would escape the bucket or upload directory."""
    parts = [p for p in key.strip("/").split("/") if p]
    if not parts or any(p in (".", "..") for p in parts):
        raise ValueError(f"Invalid image key: {key!r}")
    return "/".join(parts)


def submission_id_from_key(key: str) -> str:
    return normalize_key(key).split("/", 1)[0]


def owner_from_key(key: str) -> str | None:
    """Uploader folder of a ``{namespace}/{owner_id}/{file}`` key, if it has one."""
    parts = normalize_key(key).split("/")
    return parts[1] if len(parts) > 2 else None


class BlobStore(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> str: ...

    def delete(self, key: str) -> None: ...

    def url_for(self, key: str) -> str: ...

    def close(self) -> None: ...


class LocalBlobStore:
    """Files under ``upload_dir``, published as static files by the app."""

    def __init__(self, upload_dir: str, base_url: str):
        self.upload_dir = Path(upload_dir)
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        return self.upload_dir.joinpath(*normalize_key(key).split("/"))

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as handle:
            handle.write(data)
        return self.url_for(key)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        path.unlink()

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{normalize_key(key)}"

    def close(self) -> None:
        pass


class MinioBlobStore:
    """S3-compatible bucket made anonymously readable so image URLs are public."""

    def __init__(self, endpoint: str, access_key: str, secret_key: str, bucket: str):
        secure = endpoint.startswith("https://")
        host = endpoint.split("://", 1)[-1].rstrip("/")
        self.bucket = bucket
        self.public_root = f"{'https' if secure else 'http'}://{host}/{bucket}"
        self.client = Minio(host, access_key=access_key, secret_key=secret_key, secure=secure)
        self._ensure_public_bucket()

    def _ensure_public_bucket(self) -> None:
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{self.bucket}/*"],
                }
            ],
        }
        self.client.set_bucket_policy(self.bucket, json.dumps(policy))

    def put(self, key: str, data: bytes, content_type: str) -> str:
        key = normalize_key(key)
        self.client.put_object(
            self.bucket,
            key,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type or "application/octet-stream",
        )
        return self.url_for(key)

    def delete(self, key: str) -> None:
        self.client.remove_object(self.bucket, normalize_key(key))

    def url_for(self, key: str) -> str:
        return f"{self.public_root}/{normalize_key(key)}"

    def close(self) -> None:
        pass


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.uses_object_storage:
        logger.info("storing images in bucket %s at %s", settings.storage_bucket, settings.minio_endpoint)
        return MinioBlobStore(
            settings.minio_endpoint,
            settings.minio_access_key,
            settings.minio_secret_key,
            settings.storage_bucket,
        )
    return LocalBlobStore(settings.upload_dir, settings.image_base_url)


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store
