# app/services/feed.py
"""
Feed aggregator: the denormalized read model behind every chirp list.

A page is selected first (newest first, ties broken by id), and only then
enriched. Every enrichment is a bounded query over the ids of the page,
so the cost of a request depends on the page size and never on the size
of the whole collection:

    authors + originals   -> prefetch_related("author", "original__author")
    comment counts        -> grouped COUNT over comments.chirp_id IN page
    like counts           -> grouped COUNT over likes.chirp_id IN page
    liked by viewer       -> likes WHERE user = viewer AND chirp_id IN page
    latest comments       -> per chirp of the page, comments LIMIT 3

A rechirp whose original has been deleted is still listed with
`rechirp: None`. A chirp whose author cannot be resolved is dropped.
"""
import logging
from enum import Enum

from tortoise.functions import Count

from app.models.chirp import Chirp
from app.models.comment import Comment
from app.models.like import Like
from app.models.user import User
from app.services.serializers import comment_to_dict, iso, page_meta, user_snippet
from app.services.social_graph import get_user_by_username

logger = logging.getLogger(__name__)

LATEST_COMMENTS = 3


class FeedScope(str, Enum):
    GLOBAL = "global"
    OWN = "own"
    USER = "user"


async def _grouped_counts(model, chirp_ids: list) -> dict[str, int]:
    rows = (
        await model.filter(chirp_id__in=chirp_ids)
        .annotate(count=Count("id"))
        .group_by("chirp_id")
        .values("chirp_id", "count")
    )
    return {str(r["chirp_id"]): r["count"] for r in rows}


async def _latest_comments(chirp_ids: list) -> dict[str, list[dict]]:
    """Newest LATEST_COMMENTS comments per chirp, one LIMITed query each."""
    latest: dict[str, list[dict]] = {}
    for cid in chirp_ids:
        rows = (
            await Comment.filter(chirp_id=cid)
            .order_by("-created_at", "-id")
            .limit(LATEST_COMMENTS)
            .prefetch_related("author")
        )
        if rows:
            latest[str(cid)] = [comment_to_dict(c, c.author) for c in rows]
    return latest


def _original_view(chirp: Chirp) -> dict | None:
    if not chirp.is_rechirp or chirp.original_id is None:
        return None
    original = chirp.original
    if not isinstance(original, Chirp) or not isinstance(original.author, User):
        return None
    return {
        "id": str(original.id),
        "content": original.content,
        "media": original.media or [],
        "createdAt": iso(original.created_at),
        "author": user_snippet(original.author),
    }


async def enrich(chirps: list[Chirp], viewer: User) -> list[dict]:
    """Embed author, original, counts and viewer state into a page of chirps."""
    if not chirps:
        return []
    ids = [c.id for c in chirps]

    comments_count = await _grouped_counts(Comment, ids)
    likes_count = await _grouped_counts(Like, ids)
    liked = await Like.filter(user_id=viewer.id, chirp_id__in=ids).values_list("chirp_id", flat=True)
    liked_ids = {str(i) for i in liked}
    latest = await _latest_comments(ids)

    items = []
    for c in chirps:
        if not isinstance(c.author, User):
            logger.warning("[feed] Dropping chirp id=%s with unresolved author", c.id)
            continue
        key = str(c.id)
        items.append({
            "id": key,
            "content": c.content,
            "media": c.media or [],
            "isRechirp": c.is_rechirp,
            "createdAt": iso(c.created_at),
            "author": user_snippet(c.author),
            "rechirp": _original_view(c),
            "commentsCount": comments_count.get(key, 0),
            "likesCount": likes_count.get(key, 0),
            "likedByMe": key in liked_ids,
            "latestComments": latest.get(key, []),
        })
    return items


async def get_feed(
    viewer: User,
    scope: FeedScope,
    page: int = 1,
    limit: int = 10,
    username: str | None = None,
) -> dict:
    """
    Page of enriched chirps for `scope`:
    - GLOBAL: every chirp
    - OWN: chirps authored by the viewer
    - USER: chirps authored by `username` (404 if unknown)
    """
    query = Chirp.all()
    if scope is FeedScope.OWN:
        query = query.filter(author_id=viewer.id)
    elif scope is FeedScope.USER:
        author = await get_user_by_username(username)
        query = query.filter(author_id=author.id)

    total = await query.count()
    chirps = (
        await query.order_by("-created_at", "-id")
        .offset((page - 1) * limit)
        .limit(limit)
        .prefetch_related("author", "original__author")
    )
    return {"items": await enrich(list(chirps), viewer), **page_meta(total, page, limit)}
