# app/services/uploads.py
"""
Local staging of multipart uploads.
Files are written to UPLOAD_TEMP_DIR under a random name before the media
delegate forwards them to object storage.
"""
import asyncio
import os
import secrets
import shutil
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile, status

from app.config import settings
from app.core.errors import ApiError

IMAGE_MIME_TYPES = ("image/jpeg", "image/png", "image/gif")
MEDIA_MIME_TYPES = IMAGE_MIME_TYPES + ("video/mp4", "video/quicktime")
MAX_CHIRP_MEDIA = 4


@dataclass
class StagedFile:
    path: str
    original_name: str
    content_type: str


def check_type(upload: UploadFile, allowed: tuple[str, ...]) -> None:
    if upload.content_type not in allowed:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Unsupported file type: {upload.content_type}")


def _copy_to(upload: UploadFile, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    upload.file.seek(0)
    with open(path, "wb") as out:
        shutil.copyfileobj(upload.file, out)


async def stage(upload: UploadFile) -> StagedFile:
    """Write an UploadFile to the temp dir, keeping only its extension."""
    suffix = Path(upload.filename or "").suffix.lower()
    path = Path(settings.upload_temp_dir) / f"{secrets.token_hex(12)}{suffix}"
    # Blocking disk copy, off the event loop
    await asyncio.to_thread(_copy_to, upload, path)
    return StagedFile(
        path=str(path),
        original_name=Path(upload.filename or path.name).stem,
        content_type=upload.content_type or "application/octet-stream",
    )


async def stage_all(uploads: list[UploadFile], allowed: tuple[str, ...], limit: int = MAX_CHIRP_MEDIA) -> list[StagedFile]:
    """Check count and types first, then stage; nothing is written if one is rejected."""
    if len(uploads) > limit:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"A chirp can have at most {limit} media files")
    for upload in uploads:
        check_type(upload, allowed)
    staged: list[StagedFile] = []
    try:
        for upload in uploads:
            staged.append(await stage(upload))
    except OSError:
        discard(staged)
        raise
    return staged


def discard(files: list[StagedFile]) -> None:
    """Remove staged files that are still on disk."""
    for f in files:
        try:
            os.remove(f.path)
        except FileNotFoundError:
            pass
