"""Media storage — push local files to S3-compatible object storage.

Learn: Uploads arrive as multipart files. They are first streamed to a
temporary file under settings.upload_dir, then handed to the storage
backend, which returns the public URL saved on the user row. The
temporary file is removed whether the upload succeeds or not.

boto3 is synchronous, so calls run in a worker thread via
asyncio.to_thread() to keep the event loop free.
"""

import asyncio
import mimetypes
import shutil
import uuid
from pathlib import Path
from typing import Optional, Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Request, UploadFile

from mediahub.config import Settings
from mediahub.errors import UploadFailure

logger = structlog.get_logger()


class MediaStorage(Protocol):
    async def upload(self, path: Path) -> str:
        """Upload the file at path and return its public URL."""
        ...

    async def delete(self, url: str) -> None:
        """Remove a previously uploaded object. Failures are logged, not raised."""
        ...


class S3MediaStorage:
    """Object storage backed by S3 (or MinIO/LocalStack via endpoint_url)."""

    def __init__(self, settings: Settings):
        self.bucket = settings.media_bucket
        self.region = settings.media_region
        self.endpoint_url = settings.media_endpoint_url or None
        self.public_base_url = settings.media_public_base_url.rstrip("/")
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3", region_name=self.region, endpoint_url=self.endpoint_url
            )
        return self._client

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _put(self, path: Path, key: str, content_type: str) -> None:
        self.client.upload_file(
            str(path), self.bucket, key, ExtraArgs={"ContentType": content_type}
        )

    def _remove(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)

    def key_for(self, url: str) -> str:
        return f"uploads/{url.rsplit('/', 1)[-1]}"

    async def upload(self, path: Path) -> str:
        path = Path(path)
        try:
            if not self.bucket:
                raise UploadFailure("Media storage is not configured")

            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            key = f"uploads/{uuid.uuid4().hex}{path.suffix.lower()}"
            try:
                await asyncio.to_thread(self._put, path, key, content_type)
            except (BotoCoreError, ClientError) as e:
                logger.error("media.upload_failed", key=key, error=str(e))
                raise UploadFailure() from e

            url = self.public_url(key)
            logger.info("media.uploaded", key=key, content_type=content_type)
            return url
        finally:
            path.unlink(missing_ok=True)

    async def delete(self, url: str) -> None:
        key = self.key_for(url)
        try:
            await asyncio.to_thread(self._remove, key)
        except (BotoCoreError, ClientError) as e:
            logger.warning("media.delete_failed", key=key, error=str(e))
            return
        logger.info("media.deleted", key=key)


# ─── Temporary files ────────────────────────────────────


def _copy_to_disk(upload: UploadFile, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as fh:
        shutil.copyfileobj(upload.file, fh)


async def save_upload(upload: UploadFile, upload_dir: str) -> Path:
    """Stream an uploaded file into upload_dir under a unique name."""
    filename = Path(upload.filename or "upload").name
    target = Path(upload_dir) / f"{uuid.uuid4().hex}-{filename}"
    await asyncio.to_thread(_copy_to_disk, upload, target)
    return target


async def store_upload(
    upload: Optional[UploadFile], storage: MediaStorage, settings: Settings
) -> Optional[str]:
    """Save, upload and clean up one file. None when no file was sent."""
    if upload is None or not upload.filename:
        return None
    path = await save_upload(upload, settings.upload_dir)
    return await storage.upload(path)


def get_media_storage(request: Request) -> MediaStorage:
    """FastAPI dependency: the storage backend built at startup."""
    return request.app.state.media_storage
