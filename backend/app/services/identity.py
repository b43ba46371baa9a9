# app/services/identity.py
"""
Identity & session service.

Registers and authenticates users, issues and rotates the access/refresh
token pair, and resolves an access token to the current principal. The
principal is always passed in explicitly by the caller.
"""
import logging
from dataclasses import dataclass

import jwt
from fastapi import status
from tortoise.exceptions import IntegrityError
from tortoise.expressions import Q

from app.core.errors import ApiError
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    hash_refresh_token,
    verify_password,
)
from app.models.chirp import Chirp
from app.models.comment import Comment
from app.models.follow import Follow
from app.models.like import Like
from app.models.user import User
from app.services import media
from app.services.uploads import StagedFile, discard

logger = logging.getLogger(__name__)

MAX_BIO_LENGTH = 160


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def _clean_bio(bio: str | None) -> str:
    bio = (bio or "").strip()
    if len(bio) > MAX_BIO_LENGTH:
        raise ApiError(status.HTTP_400_BAD_REQUEST, f"Bio cannot exceed {MAX_BIO_LENGTH} characters")
    return bio


async def _upload_avatar(avatar: StagedFile) -> media.MediaAsset:
    asset = await media.upload(avatar.path, avatar.original_name, avatar.content_type)
    if asset is None:
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Cloud upload failed. Please try again.")
    return asset


def _apply_avatar(user: User, asset: media.MediaAsset) -> None:
    user.avatar_name = asset.original_name
    user.avatar_type = asset.kind
    user.avatar_url = asset.url
    user.avatar_storage_id = asset.storage_id


async def issue_tokens(user: User) -> TokenPair:
    """Create a fresh token pair and persist the refresh token digest (rotation)."""
    pair = TokenPair(
        access_token=create_access_token(str(user.id), user.role),
        refresh_token=create_refresh_token(str(user.id)),
    )
    user.refresh_token_hash = hash_refresh_token(pair.refresh_token)
    await user.save(update_fields=["refresh_token_hash"])
    return pair


async def register(
    full_name: str | None,
    username: str | None,
    email: str | None,
    password: str | None,
    avatar: StagedFile | None,
    bio: str | None = None,
) -> tuple[User, TokenPair]:
    try:
        if any(_blank(v) for v in (full_name, username, email, password)):
            raise ApiError(status.HTTP_400_BAD_REQUEST, "All fields are required")
        if avatar is None:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Avatar is required")

        username = username.strip().lower()
        email = email.strip().lower()
        bio = _clean_bio(bio)
        if await User.filter(Q(email=email) | Q(username=username)).exists():
            raise ApiError(status.HTTP_409_CONFLICT, "User already exists")

        asset = await _upload_avatar(avatar)
    finally:
        if avatar is not None:
            discard([avatar])

    user = User(
        full_name=full_name.strip(),
        username=username,
        email=email,
        bio=bio,
        password_hash=hash_password(password),
    )
    _apply_avatar(user, asset)
    try:
        await user.save()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same username/email
        await media.remove(asset.storage_id)
        raise ApiError(status.HTTP_409_CONFLICT, "User already exists")

    logger.info("[identity] Registered user id=%s username=%s", user.id, user.username)
    return user, await issue_tokens(user)


async def login(username: str | None, email: str | None, password: str | None) -> tuple[User, TokenPair]:
    if _blank(username) and _blank(email):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Username or Email is required")
    if not password:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Password is required")

    query = Q()
    if not _blank(username):
        query |= Q(username=username.strip().lower())
    if not _blank(email):
        query |= Q(email=email.strip().lower())
    user = await User.filter(query).first()
    if not user or not verify_password(password, user.password_hash):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid credentials")
    return user, await issue_tokens(user)


async def refresh(token: str | None) -> tuple[User, TokenPair]:
    """Rotate the token pair. The presented token must match the persisted one."""
    if not token:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Refresh token missing")
    try:
        payload = decode_refresh_token(token)
    except jwt.InvalidTokenError as e:
        logger.info("[identity] Rejected refresh token: %s", e)
        raise ApiError(status.HTTP_403_FORBIDDEN, "Invalid or expired refresh token")

    user = await User.get_or_none(id=payload.get("sub"))
    if not user:
        raise ApiError(status.HTTP_404_NOT_FOUND, "User does not exist")
    if user.refresh_token_hash != hash_refresh_token(token):
        # Reuse of a rotated token, or the session was logged out
        raise ApiError(status.HTTP_403_FORBIDDEN, "Invalid or expired refresh token")
    return user, await issue_tokens(user)


async def logout(principal: User) -> None:
    principal.refresh_token_hash = None
    await principal.save(update_fields=["refresh_token_hash"])


async def authenticate(token: str | None) -> User:
    """Resolve an access token to its user or raise."""
    if not token:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Unauthorized: Access token is required but missing.")
    try:
        payload = decode_access_token(token)
    except jwt.InvalidTokenError:
        raise ApiError(status.HTTP_403_FORBIDDEN, "Invalid or expired access token")

    user = await User.get_or_none(id=payload.get("sub"))
    if not user:
        raise ApiError(status.HTTP_404_NOT_FOUND, "User does not exist")
    return user


async def update_profile(
    principal: User,
    full_name: str | None = None,
    bio: str | None = None,
    avatar: StagedFile | None = None,
) -> User:
    try:
        if full_name is not None and _blank(full_name):
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Full name cannot be empty")
        if bio is not None:
            bio = _clean_bio(bio)
        asset = await _upload_avatar(avatar) if avatar is not None else None
    finally:
        if avatar is not None:
            discard([avatar])

    old_storage_id = principal.avatar_storage_id
    if full_name is not None:
        principal.full_name = full_name.strip()
    if bio is not None:
        principal.bio = bio
    if asset is not None:
        _apply_avatar(principal, asset)
    await principal.save()

    if asset is not None and old_storage_id and not await media.remove(old_storage_id):
        logger.warning("[identity] Old avatar of user id=%s left in storage: %s", principal.id, old_storage_id)
    return principal


async def change_password(principal: User, old_password: str | None, new_password: str | None) -> None:
    if not old_password or _blank(new_password):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Old and new password are required")
    if not verify_password(old_password, principal.password_hash):
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Invalid old password")
    principal.password_hash = hash_password(new_password)
    await principal.save(update_fields=["password_hash"])


async def delete_account(principal: User) -> None:
    """
    Hard-delete the principal together with their chirps, comments, likes
    and follow edges. Cleanup steps are best-effort; only failing to
    delete the user row itself fails the request.
    """
    user_id = principal.id
    chirps = await Chirp.filter(author_id=user_id).only("id", "media")
    storage_ids = [m["storageId"] for c in chirps for m in (c.media or []) if m.get("storageId")]
    if principal.avatar_storage_id:
        storage_ids.append(principal.avatar_storage_id)
    await media.remove_many(storage_ids, owner=f"deleted user id={user_id}")

    chirp_ids = [c.id for c in chirps]
    cleanups = (
        ("comments on own chirps", Comment.filter(chirp_id__in=chirp_ids)),
        ("likes on own chirps", Like.filter(chirp_id__in=chirp_ids)),
        ("own comments", Comment.filter(author_id=user_id)),
        ("own likes", Like.filter(user_id=user_id)),
        ("follow edges", Follow.filter(Q(follower_id=user_id) | Q(followee_id=user_id))),
        ("chirps", Chirp.filter(author_id=user_id)),
    )
    for label, query in cleanups:
        try:
            await query.delete()
        except Exception:
            logger.warning("[identity] Cleanup of %s failed for user id=%s", label, user_id, exc_info=True)

    await principal.delete()
    logger.info("[identity] Deleted user id=%s", user_id)
