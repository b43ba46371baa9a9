# app/api/v1/routers/chirps.py
import uuid

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from app.api.v1.deps import Pagination, get_current_user, get_pagination
from app.models.user import User
from app.schemas.chirp import CommentIn, RechirpIn
from app.services import content, uploads
from app.services.feed import FeedScope, get_feed
from app.services.serializers import chirp_to_dict, comment_to_dict

router = APIRouter(prefix="/chirps", tags=["chirps"])


# ===== Feeds =====
@router.get("")
async def global_feed(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
):
    """
    Every chirp, newest first, enriched with author, original (for
    rechirps), likesCount, likedByMe, commentsCount and latestComments.

    Returns:
        data: {items, total, page, limit, totalPages}
    """
    data = await get_feed(user, FeedScope.GLOBAL, pagination.page, pagination.limit)
    return {"success": True, "message": "All chirps fetched successfully", "data": data}


@router.get("/me")
async def my_feed(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
):
    data = await get_feed(user, FeedScope.OWN, pagination.page, pagination.limit)
    return {"success": True, "message": "Your chirps fetched successfully", "data": data}


# ===== Chirps =====
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_chirp(
    content_text: str | None = Form(None, alias="content"),
    media: list[UploadFile] | None = File(None),
    user: User = Depends(get_current_user),
):
    """
    Create a chirp (multipart): `content` plus up to 4 `media` files
    (jpeg/png/gif images, mp4/quicktime videos).

    Errors:
        400: content blank or too long, too many files, unsupported type
        500: a media upload failed (nothing is persisted)
    """
    files = [f for f in (media or []) if f.filename]
    staged = await uploads.stage_all(files, uploads.MEDIA_MIME_TYPES)
    chirp = await content.create_chirp(user, content_text, staged)
    return {"success": True, "message": "Chirp created successfully", "data": chirp_to_dict(chirp)}


@router.patch("/{chirp_id}/like")
async def toggle_like(chirp_id: uuid.UUID, user: User = Depends(get_current_user)):
    data = await content.toggle_like(user, chirp_id)
    return {
        "success": True,
        "message": "Chirp liked" if data["likedByMe"] else "Chirp unliked",
        "data": data,
    }


@router.post("/{chirp_id}/rechirp")
async def toggle_rechirp(
    chirp_id: uuid.UUID,
    response: Response,
    body: RechirpIn | None = None,
    user: User = Depends(get_current_user),
):
    """
    Rechirp a chirp (always the original, even when called on a rechirp),
    or undo the caller's existing rechirp of it.

    Returns 201 with the new rechirp, or 200 when it was removed.
    """
    rechirped, rechirp = await content.toggle_rechirp(user, chirp_id, body.content if body else None)
    if not rechirped:
        return {"success": True, "message": "Rechirp removed successfully", "data": {"rechirped": False}}
    response.status_code = status.HTTP_201_CREATED
    return {
        "success": True,
        "message": "Rechirped successfully",
        "data": {"rechirped": True, "chirp": chirp_to_dict(rechirp)},
    }


@router.delete("/{chirp_id}")
async def delete_chirp(chirp_id: uuid.UUID, user: User = Depends(get_current_user)):
    was_rechirp = await content.delete_chirp(user, chirp_id)
    message = "Rechirp deleted successfully" if was_rechirp else "Chirp deleted successfully"
    return {"success": True, "message": message}


# ===== Comments =====
@router.post("/{chirp_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(chirp_id: uuid.UUID, body: CommentIn, user: User = Depends(get_current_user)):
    comment = await content.add_comment(user, chirp_id, body.content)
    return {"success": True, "message": "Comment added successfully", "data": comment_to_dict(comment, user)}


@router.get("/{chirp_id}/comments")
async def list_comments(
    chirp_id: uuid.UUID,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
):
    data = await content.list_comments(chirp_id, pagination.page, pagination.limit)
    return {"success": True, "message": "Comments fetched successfully", "data": data}


@router.delete("/comments/{comment_id}")
async def delete_comment(comment_id: uuid.UUID, user: User = Depends(get_current_user)):
    await content.delete_comment(user, comment_id)
    return {"success": True, "message": "Comment deleted successfully"}
