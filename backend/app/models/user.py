# app/models/user.py
"""
Database model for users.
Holds identity, profile, avatar reference, role and the digest of the
current refresh token.
"""
import uuid
from tortoise import fields, models


class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Chirps (via related_name="chirps")
    - Has many Comments and Likes
    - Follow edges in both directions (via Follow.follower / Follow.followee)

    Security:
    - Password is stored as an argon2 hash and never serialized
    - Only the sha256 digest of the refresh token is stored
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=64, unique=True, index=True)  # Stored trimmed + lowercased
    email = fields.CharField(max_length=256, unique=True, index=True)    # Stored trimmed + lowercased
    full_name = fields.CharField(max_length=128)
    bio = fields.CharField(max_length=160, default="")
    password_hash = fields.CharField(max_length=255)

    # Avatar reference in object storage
    avatar_name = fields.CharField(max_length=256, null=True)
    avatar_type = fields.CharField(max_length=16, null=True)
    avatar_url = fields.CharField(max_length=1024, null=True)
    avatar_storage_id = fields.CharField(max_length=512, null=True)

    role = fields.CharField(max_length=16, default="user")  # "user" or "admin"
    refresh_token_hash = fields.CharField(max_length=64, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "users"

    @property
    def avatar(self) -> dict | None:
        if not self.avatar_url:
            return None
        return {
            "avatarName": self.avatar_name,
            "avatarType": self.avatar_type,
            "avatarUrl": self.avatar_url,
            "storageId": self.avatar_storage_id,
        }
