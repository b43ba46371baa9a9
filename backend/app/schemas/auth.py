# app/schemas/auth.py
"""
Pydantic schemas for authentication and account endpoints.
Fields are optional so that missing values reach the service layer and
come back as a 400 with a readable message.
"""
from pydantic import BaseModel


class LoginRequest(BaseModel):
    """
    Request model for user login endpoint.
    Either username or email identifies the account.
    """
    username: str | None = None
    email: str | None = None
    password: str | None = None


class ChangePasswordIn(BaseModel):
    """Request model for PUT /users/me/change-password."""
    oldPassword: str | None = None
    newPassword: str | None = None
