# app/services/serializers.py
"""Dict shapes shared by the routers and the feed aggregator."""
import datetime as dt

from app.models.chirp import Chirp
from app.models.comment import Comment
from app.models.user import User


def iso(value: dt.datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.isoformat() + "Z"
    return value.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def user_snippet(u: User) -> dict:
    """Minimal public profile embedded in chirps, comments and follow lists."""
    return {"fullName": u.full_name, "username": u.username, "avatar": u.avatar}


def user_to_dict(u: User) -> dict:
    """Sanitized user: never includes the password hash or refresh token."""
    return {
        "id": str(u.id),
        "fullName": u.full_name,
        "username": u.username,
        "email": u.email,
        "bio": u.bio,
        "avatar": u.avatar,
        "role": u.role,
        "createdAt": iso(u.created_at),
        "updatedAt": iso(u.updated_at),
    }


def chirp_to_dict(c: Chirp) -> dict:
    return {
        "id": str(c.id),
        "content": c.content,
        "media": c.media or [],
        "author": str(c.author_id),
        "originalChirp": str(c.original_id) if c.original_id else None,
        "isRechirp": c.is_rechirp,
        "createdAt": iso(c.created_at),
    }


def comment_to_dict(c: Comment, author: User | None = None) -> dict:
    return {
        "id": str(c.id),
        "content": c.content,
        "chirp": str(c.chirp_id),
        "author": user_snippet(author) if author else str(c.author_id),
        "createdAt": iso(c.created_at),
    }


def page_meta(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }
