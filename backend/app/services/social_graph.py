# app/services/social_graph.py
"""
Social graph: directed follow edges between users.
"""
import logging

from fastapi import status
from tortoise.exceptions import IntegrityError

from app.core.errors import ApiError
from app.models.chirp import Chirp
from app.models.follow import Follow
from app.models.user import User
from app.services.serializers import page_meta, user_snippet

logger = logging.getLogger(__name__)


async def get_user_by_username(username: str) -> User:
    user = await User.get_or_none(username=(username or "").strip().lower())
    if not user:
        raise ApiError(status.HTTP_404_NOT_FOUND, "User not found")
    return user


async def is_following(follower: User, followee: User) -> bool:
    return await Follow.filter(follower_id=follower.id, followee_id=followee.id).exists()


async def followers_count(user: User) -> int:
    return await Follow.filter(followee_id=user.id).count()


async def following_count(user: User) -> int:
    return await Follow.filter(follower_id=user.id).count()


async def toggle_follow(follower: User, target_username: str) -> bool:
    """
    Flip the follower -> target edge. Returns True when the follower now
    follows the target.
    """
    target = await get_user_by_username(target_username)
    if target.id == follower.id:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "You cannot follow yourself.")

    removed = await Follow.filter(follower_id=follower.id, followee_id=target.id).delete()
    if removed:
        return False
    try:
        await Follow.create(follower_id=follower.id, followee_id=target.id)
    except IntegrityError:
        # A concurrent request already inserted the edge
        logger.debug("[graph] Duplicate follow %s -> %s ignored", follower.id, target.id)
    return True


async def get_public_profile(viewer: User, username: str) -> dict:
    user = await get_user_by_username(username)
    return {
        **user_snippet(user),
        "bio": user.bio,
        "followersCount": await followers_count(user),
        "followingCount": await following_count(user),
        "chirpsCount": await Chirp.filter(author_id=user.id).count(),
        "isFollowing": await is_following(viewer, user),
    }


async def _list_edges(viewer: User, username: str, page: int, limit: int, direction: str) -> dict:
    subject = await get_user_by_username(username)
    if direction == "followers":
        edges = Follow.filter(followee_id=subject.id)
        related = "follower"
    else:
        edges = Follow.filter(follower_id=subject.id)
        related = "followee"

    total = await edges.count()
    rows = (
        await edges.order_by("-created_at", "-id")
        .offset((page - 1) * limit)
        .limit(limit)
        .prefetch_related(related)
    )
    people = [getattr(edge, related) for edge in rows]

    # One query for "does the viewer follow each listed user"
    followed_ids = set()
    if people:
        followed = await Follow.filter(
            follower_id=viewer.id, followee_id__in=[p.id for p in people]
        ).values_list("followee_id", flat=True)
        followed_ids = {str(i) for i in followed}

    items = [
        {**user_snippet(p), "bio": p.bio, "isFollowing": str(p.id) in followed_ids}
        for p in people
    ]
    return {
        "items": items,
        **page_meta(total, page, limit),
        "isFollowingUser": await is_following(viewer, subject),
        "isFollowedByUser": await is_following(subject, viewer),
    }


async def list_followers(viewer: User, username: str, page: int, limit: int) -> dict:
    return await _list_edges(viewer, username, page, limit, "followers")


async def list_following(viewer: User, username: str, page: int, limit: int) -> dict:
    return await _list_edges(viewer, username, page, limit, "following")
