# app/api/v1/routers/users.py
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from app.api.v1.deps import Pagination, clear_auth_cookies, get_current_user, get_pagination
from app.models.user import User
from app.schemas.auth import ChangePasswordIn
from app.services import identity, social_graph, uploads
from app.services.feed import FeedScope, get_feed
from app.services.serializers import user_to_dict

router = APIRouter(prefix="/users", tags=["users"])


# ===== Current user (declared before /{username} so "me" is not read as a username) =====
@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """Current user's sanitized record plus follower/following counts."""
    data = user_to_dict(user)
    data["followersCount"] = await social_graph.followers_count(user)
    data["followingCount"] = await social_graph.following_count(user)
    return {"success": True, "message": "Current user fetched successfully", "data": data}


@router.patch("/me")
async def update_me(
    full_name: str | None = Form(None, alias="fullName"),
    bio: str | None = Form(None),
    avatar: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
):
    """
    Update fullName, bio and/or avatar (multipart). Fields that are not sent
    stay unchanged. A new avatar replaces the old one in storage.
    """
    staged = None
    if avatar is not None and avatar.filename:
        uploads.check_type(avatar, uploads.IMAGE_MIME_TYPES)
        staged = await uploads.stage(avatar)
    user = await identity.update_profile(user, full_name=full_name, bio=bio, avatar=staged)
    return {"success": True, "message": "Profile updated successfully", "data": user_to_dict(user)}


@router.put("/me/change-password")
async def change_password(body: ChangePasswordIn, user: User = Depends(get_current_user)):
    await identity.change_password(user, body.oldPassword, body.newPassword)
    return {"success": True, "message": "Password changed successfully"}


@router.delete("/me")
async def delete_me(response: Response, user: User = Depends(get_current_user)):
    """
    Permanently delete the account with its chirps, comments, likes and
    follow edges, then clear the auth cookies.
    """
    await identity.delete_account(user)
    clear_auth_cookies(response)
    return {"success": True, "message": "Account deleted successfully"}


# ===== Other users =====
@router.get("/{username}")
async def get_public_profile(username: str, user: User = Depends(get_current_user)):
    data = await social_graph.get_public_profile(user, username)
    return {"success": True, "message": "User profile fetched successfully", "data": data}


@router.patch("/{username}/follow")
async def toggle_follow(username: str, user: User = Depends(get_current_user)):
    """
    Follow `username`, or unfollow if already following.

    Errors:
        400: trying to follow yourself
        404: user not found
    """
    following = await social_graph.toggle_follow(user, username)
    return {
        "success": True,
        "message": "User followed successfully." if following else "User unfollowed successfully.",
        "data": {"isFollowing": following},
    }


@router.get("/{username}/followers")
async def list_followers(
    username: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
):
    data = await social_graph.list_followers(user, username, pagination.page, pagination.limit)
    return {"success": True, "message": "Followers fetched successfully", "data": data}


@router.get("/{username}/following")
async def list_following(
    username: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
):
    data = await social_graph.list_following(user, username, pagination.page, pagination.limit)
    return {"success": True, "message": "Following fetched successfully", "data": data}


@router.get("/{username}/chirps")
async def list_user_chirps(
    username: str,
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_user),
):
    data = await get_feed(user, FeedScope.USER, pagination.page, pagination.limit, username=username)
    return {"success": True, "message": "User chirps fetched successfully", "data": data}
