# app/services/media.py
"""
Media delegate: forwards locally staged files to S3-compatible object
storage and removes stored objects.

Contract:
- upload() always deletes the local file, success or failure, and never
  raises; a failed upload returns None.
- remove() is best-effort; failures are logged and reported as False.
"""
import asyncio
import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

import boto3
from boto3.exceptions import Boto3Error
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MediaAsset:
    url: str
    storage_id: str
    kind: str  # "image" or "video"
    original_name: str

    def as_media(self) -> dict:
        """Shape stored in Chirp.media."""
        return {
            "mediaName": self.original_name,
            "mediaType": self.kind,
            "mediaUrl": self.url,
            "storageId": self.storage_id,
        }


def get_s3_client():
    return boto3.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
        config=Config(signature_version="s3v4"),
    )


def media_kind(content_type: str | None) -> str:
    return "video" if (content_type or "").startswith("video/") else "image"


def public_url(storage_id: str) -> str:
    return f"{settings.media_public_base_url.rstrip('/')}/{storage_id}"


def _discard_local(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("[media] Could not remove temp file %s: %s", path, e)


async def upload(
    local_file_path: str | None,
    original_name: str | None = None,
    content_type: str | None = None,
) -> MediaAsset | None:
    """
    Upload a staged file under the media folder and return its asset
    descriptor, or None when the upload failed.
    """
    if not local_file_path:
        return None

    path = Path(local_file_path)
    if content_type is None:
        content_type, _ = mimetypes.guess_type(path.name)
    storage_id = f"{settings.media_folder}/{uuid.uuid4().hex}{path.suffix.lower()}"
    client = get_s3_client()

    def _upload() -> None:
        client.upload_file(
            str(path),
            settings.s3_bucket,
            storage_id,
            ExtraArgs={"ContentType": content_type or "application/octet-stream"},
        )

    try:
        await asyncio.to_thread(_upload)
    except (Boto3Error, BotoCoreError, ClientError, OSError) as e:
        # upload_file reports ClientError as S3UploadFailedError (a Boto3Error)
        logger.error("[media] Upload of %s failed: %s", original_name or path.name, e)
        return None
    finally:
        _discard_local(str(path))

    return MediaAsset(
        url=public_url(storage_id),
        storage_id=storage_id,
        kind=media_kind(content_type),
        original_name=original_name or path.name,
    )


async def remove(storage_id: str | None) -> bool:
    """Delete a stored object. Returns False (and logs) when the delete failed."""
    if not storage_id:
        return True
    client = get_s3_client()

    def _delete() -> None:
        client.delete_object(Bucket=settings.s3_bucket, Key=storage_id)

    try:
        await asyncio.to_thread(_delete)
    except (BotoCoreError, ClientError) as e:
        logger.warning("[media] Delete of storage_id=%s failed, object orphaned: %s", storage_id, e)
        return False
    return True


async def remove_many(storage_ids: list[str], owner: str = "") -> list[str]:
    """Best-effort delete of several objects; returns the storage ids that failed."""
    failed = []
    for storage_id in storage_ids:
        if not await remove(storage_id):
            failed.append(storage_id)
    if failed:
        logger.warning("[media] Orphaned objects for %s: %s", owner or "unknown owner", ", ".join(failed))
    return failed
