# app/api/v1/deps.py
from dataclasses import dataclass

from fastapi import Header, Query, Request, Response

from app.config import settings
from app.core.security import ACCESS_TOKEN_TTL, REFRESH_TOKEN_TTL
from app.models.user import User
from app.services import identity
from app.services.identity import TokenPair

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> User:
    """
    FastAPI dependency resolving the request's principal.

    The access token is read from either:
    1. Authorization header (Bearer token)
    2. HttpOnly cookie (accessToken) - what browsers send

    Raises (through identity.authenticate):
        ApiError (401): No token presented
        ApiError (403): Token invalid or expired
        ApiError (404): Token subject no longer exists

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            ...
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie: accessToken
    if not token:
        token = request.cookies.get(ACCESS_COOKIE)
    return await identity.authenticate(token)


@dataclass
class Pagination:
    page: int
    limit: int


def get_pagination(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> Pagination:
    return Pagination(page=page, limit=limit)


def _cookie_options() -> dict:
    return {"httponly": True, "secure": settings.cookie_secure, "samesite": "strict"}


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        tokens.access_token,
        max_age=int(ACCESS_TOKEN_TTL.total_seconds()),
        **_cookie_options(),
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens.refresh_token,
        max_age=int(REFRESH_TOKEN_TTL.total_seconds()),
        **_cookie_options(),
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, **_cookie_options())
    response.delete_cookie(REFRESH_COOKIE, **_cookie_options())
