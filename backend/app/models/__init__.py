# app/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: User account, profile and session model
- Follow: Directed follow edge between two users
- Chirp: Post or rechirp
- Like: Like edge between a user and a chirp
- Comment: Comment on a chirp
"""
from .user import User
from .follow import Follow
from .chirp import Chirp
from .like import Like
from .comment import Comment
