# app/core/security.py
"""
Security module for authentication and session credentials.
Handles password hashing and the signed access/refresh token pair.
"""
import datetime as dt
import hashlib
import uuid

import jwt  # PyJWT
from passlib.context import CryptContext

from app.config import settings

# Password hashing context
# Argon2 is a modern, secure password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# JWT configuration
ACCESS_TOKEN_SECRET = settings.access_token_secret
REFRESH_TOKEN_SECRET = settings.refresh_token_secret
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_DAYS = settings.refresh_token_expire_days
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

ACCESS_TOKEN_TTL = dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
REFRESH_TOKEN_TTL = dt.timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)


def _encode(payload: dict, secret: str, ttl: dt.timedelta) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload = {**payload, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, secret, algorithm=JWT_ALG)


def create_access_token(user_id: str, role: str) -> str:
    """
    Create a short-lived JWT access token.

    Token payload includes:
        - sub: Subject (user ID)
        - role: User role
        - type: "access"
        - iat / exp: Issued-at and expiration timestamps
    """
    return _encode(
        {"sub": user_id, "role": role, "type": "access"},
        ACCESS_TOKEN_SECRET,
        ACCESS_TOKEN_TTL,
    )


def create_refresh_token(user_id: str) -> str:
    """
    Create a long-lived JWT refresh token.

    A random jti makes every issued refresh token distinct, so rotation
    always invalidates the previous value even within the same second.
    """
    return _encode(
        {"sub": user_id, "type": "refresh", "jti": uuid.uuid4().hex},
        REFRESH_TOKEN_SECRET,
        REFRESH_TOKEN_TTL,
    )


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid, malformed or not an access token
    """
    payload = jwt.decode(token, ACCESS_TOKEN_SECRET, algorithms=[JWT_ALG])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("not an access token")
    return payload


def decode_refresh_token(token: str) -> dict:
    """
    Decode and validate a JWT refresh token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid, malformed or not a refresh token
    """
    payload = jwt.decode(token, REFRESH_TOKEN_SECRET, algorithms=[JWT_ALG])
    if payload.get("type") != "refresh":
        raise jwt.InvalidTokenError("not a refresh token")
    return payload


def hash_refresh_token(token: str) -> str:
    """SHA256 of a refresh token; only the digest is persisted on the user."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
