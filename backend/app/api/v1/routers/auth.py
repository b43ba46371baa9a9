# app/api/v1/routers/auth.py
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from app.api.v1.deps import REFRESH_COOKIE, clear_auth_cookies, get_current_user, set_auth_cookies
from app.models.user import User
from app.schemas.auth import LoginRequest
from app.services import identity, uploads
from app.services.serializers import user_to_dict

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    response: Response,
    full_name: str | None = Form(None, alias="fullName"),
    username: str | None = Form(None),
    email: str | None = Form(None),
    password: str | None = Form(None),
    bio: str | None = Form(None),
    avatar: UploadFile | None = File(None),
):
    """
    Register a new account and log it in.

    Multipart form with fullName, username, email, password, optional bio
    and the `avatar` image file. The avatar goes to object storage before
    the user row is written.

    Returns (201):
        data.user: sanitized user
        data.accessToken: access token (also set as cookie, with refreshToken)

    Errors:
        400: a required field is blank, avatar missing or not an image
        409: username or email already taken
        500: avatar upload failed
    """
    staged = None
    if avatar is not None and avatar.filename:
        uploads.check_type(avatar, uploads.IMAGE_MIME_TYPES)
        staged = await uploads.stage(avatar)

    user, tokens = await identity.register(
        full_name=full_name,
        username=username,
        email=email,
        password=password,
        avatar=staged,
        bio=bio,
    )
    set_auth_cookies(response, tokens)
    return {
        "success": True,
        "message": "User registered and logged in successfully",
        "data": {"user": user_to_dict(user), "accessToken": tokens.access_token},
    }


@router.post("/login")
async def login(payload: LoginRequest, response: Response):
    """
    Authenticate with username or email plus password.

    Issues a new token pair: both tokens are set as HttpOnly cookies and
    the access token is also returned in the body. Logging in rotates the
    stored refresh token, so earlier refresh tokens stop working.

    Errors:
        400: neither username nor email, or password missing
        401: invalid credentials
    """
    user, tokens = await identity.login(payload.username, payload.email, payload.password)
    set_auth_cookies(response, tokens)
    return {
        "success": True,
        "message": "User logged in successfully",
        "data": {"user": user_to_dict(user), "accessToken": tokens.access_token},
    }


@router.post("/refresh-token")
async def refresh_token(request: Request, response: Response):
    """
    Rotate the token pair using the refreshToken cookie.

    Errors:
        401: cookie missing
        403: token invalid, expired, or not the one currently stored
        404: user no longer exists
    """
    _, tokens = await identity.refresh(request.cookies.get(REFRESH_COOKIE))
    set_auth_cookies(response, tokens)
    return {
        "success": True,
        "message": "Access token refreshed",
        "data": {"accessToken": tokens.access_token},
    }


@router.post("/logout")
async def logout(response: Response, user: User = Depends(get_current_user)):
    """Forget the stored refresh token and clear both cookies."""
    await identity.logout(user)
    clear_auth_cookies(response)
    return {"success": True, "message": "User logged out successfully"}
