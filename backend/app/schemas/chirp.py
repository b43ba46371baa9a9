# app/schemas/chirp.py
"""
Pydantic schemas for chirp, rechirp and comment endpoints.
"""
from pydantic import BaseModel


class RechirpIn(BaseModel):
    """Optional caption attached to a rechirp."""
    content: str | None = None


class CommentIn(BaseModel):
    content: str | None = None
