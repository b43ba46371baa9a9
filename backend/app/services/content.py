# app/services/content.py
"""
Content store: chirps, rechirps, likes and comments.

Toggles (like, rechirp) lean on the unique constraints of their tables:
an IntegrityError on insert means the row already exists, so the toggle
reports the "done" state instead of failing.
"""
import logging
import uuid

from fastapi import status
from tortoise.exceptions import IntegrityError

from app.core.errors import ApiError
from app.models.chirp import MAX_CHIRP_LENGTH, Chirp
from app.models.comment import Comment
from app.models.like import Like
from app.models.user import User
from app.services import media
from app.services.serializers import comment_to_dict, page_meta
from app.services.uploads import MAX_CHIRP_MEDIA, StagedFile, discard

logger = logging.getLogger(__name__)


def _clean_content(content: str | None, required: bool) -> str:
    content = (content or "").strip()
    if required and not content:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Chirp content is required")
    if len(content) > MAX_CHIRP_LENGTH:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Chirp cannot exceed {MAX_CHIRP_LENGTH} characters")
    return content


async def get_chirp(chirp_id: uuid.UUID | str) -> Chirp:
    chirp = await Chirp.get_or_none(id=chirp_id)
    if not chirp:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Chirp not found")
    return chirp


async def create_chirp(author: User, content: str | None, files: list[StagedFile]) -> Chirp:
    """
    Create an original chirp. Files are uploaded one at a time; the first
    failure aborts the request and removes whatever this request already
    put into storage.
    """
    uploaded: list[media.MediaAsset] = []
    try:
        content = _clean_content(content, required=True)
        if len(files) > MAX_CHIRP_MEDIA:
            raise ApiError(status.HTTP_400_BAD_REQUEST, f"A chirp can have at most {MAX_CHIRP_MEDIA} media files")

        for f in files:
            asset = await media.upload(f.path, f.original_name, f.content_type)
            if asset is None:
                await media.remove_many(
                    [a.storage_id for a in uploaded], owner=f"aborted chirp of user id={author.id}"
                )
                raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Cloud upload failed. Please try again.")
            uploaded.append(asset)
    finally:
        discard(files)

    return await Chirp.create(
        content=content,
        media=[a.as_media() for a in uploaded],
        author_id=author.id,
    )


async def toggle_like(user: User, chirp_id: uuid.UUID | str) -> dict:
    chirp = await get_chirp(chirp_id)
    removed = await Like.filter(chirp_id=chirp.id, user_id=user.id).delete()
    liked = not removed
    if liked:
        try:
            await Like.create(chirp_id=chirp.id, user_id=user.id)
        except IntegrityError:
            logger.debug("[content] Duplicate like on chirp id=%s ignored", chirp.id)
    return {
        "chirpId": str(chirp.id),
        "totalLikes": await Like.filter(chirp_id=chirp.id).count(),
        "likedByMe": liked,
    }


async def toggle_rechirp(user: User, chirp_id: uuid.UUID | str, content: str | None = None) -> tuple[bool, Chirp | None]:
    """
    Rechirp the ultimate original of `chirp_id`, or undo an existing
    rechirp of it. Returns (rechirped, rechirp).
    """
    target = await get_chirp(chirp_id)
    if target.is_rechirp:
        if target.original_id is None:
            raise ApiError(status.HTTP_404_NOT_FOUND, "Original chirp no longer exists")
        original_id = target.original_id
    else:
        original_id = target.id

    removed = await Chirp.filter(is_rechirp=True, author_id=user.id, original_id=original_id).delete()
    if removed:
        return False, None

    caption = _clean_content(content, required=False)
    try:
        rechirp = await Chirp.create(
            content=caption,
            is_rechirp=True,
            author_id=user.id,
            original_id=original_id,
        )
    except IntegrityError:
        rechirp = await Chirp.get_or_none(author_id=user.id, original_id=original_id)
        if rechirp is None:
            # The conflicting rechirp was already toggled off again
            logger.debug("[content] Rechirp of id=%s by user id=%s vanished after conflict", original_id, user.id)
            return False, None
    return True, rechirp


async def delete_chirp(requester: User, chirp_id: uuid.UUID | str) -> bool:
    """
    Delete a chirp owned by `requester`. Returns True if it was a rechirp.
    Media, comments and likes of an original are cleaned up best-effort.
    """
    chirp = await get_chirp(chirp_id)
    if str(chirp.author_id) != str(requester.id):
        raise ApiError(status.HTTP_403_FORBIDDEN, "You're not authorized to delete this chirp")

    if chirp.is_rechirp:
        await chirp.delete()
        return True

    storage_ids = [m["storageId"] for m in (chirp.media or []) if m.get("storageId")]
    await media.remove_many(storage_ids, owner=f"chirp id={chirp.id}")

    cid = chirp.id
    await chirp.delete()
    for label, model in (("comments", Comment), ("likes", Like)):
        try:
            await model.filter(chirp_id=cid).delete()
        except Exception:
            logger.warning("[content] Cleanup of %s failed for deleted chirp id=%s", label, cid, exc_info=True)
    return False


async def add_comment(author: User, chirp_id: uuid.UUID | str, content: str | None) -> Comment:
    content = (content or "").strip()
    if not content:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Comment content is required")
    if len(content) > MAX_CHIRP_LENGTH:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Comment cannot exceed {MAX_CHIRP_LENGTH} characters")
    chirp = await get_chirp(chirp_id)
    return await Comment.create(content=content, chirp_id=chirp.id, author_id=author.id)


async def list_comments(chirp_id: uuid.UUID | str, page: int, limit: int) -> dict:
    chirp = await get_chirp(chirp_id)
    query = Comment.filter(chirp_id=chirp.id)
    total = await query.count()
    rows = (
        await query.order_by("-created_at", "-id")
        .offset((page - 1) * limit)
        .limit(limit)
        .prefetch_related("author")
    )
    return {"items": [comment_to_dict(c, c.author) for c in rows], **page_meta(total, page, limit)}


async def delete_comment(requester: User, comment_id: uuid.UUID | str) -> None:
    removed = await Comment.filter(id=comment_id, author_id=requester.id).delete()
    if not removed:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Comment not found")
