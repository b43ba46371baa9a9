# app/models/chirp.py
"""
Database model for chirps.
A chirp is either an original post or a rechirp (reshare) that references
an original. Rechirps always reference the ultimate original, never another
rechirp.
"""
import uuid
from tortoise import fields, models

MAX_CHIRP_LENGTH = 280


class Chirp(models.Model):
    """
    Chirp database model.

    Relationships:
    - Belongs to an author User (cascade on user delete)
    - original: the rechirped Chirp, null for originals; set to null when the original is deleted
    - Has many Likes and Comments

    The (author, original) pair is unique, so a user holds at most one
    rechirp per original. Originals carry original=NULL, which never collides.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    content = fields.CharField(max_length=MAX_CHIRP_LENGTH, default="")
    # Ordered list of {"mediaName", "mediaType", "mediaUrl", "storageId"}
    media = fields.JSONField(default=list)
    author = fields.ForeignKeyField("models.User", related_name="chirps", on_delete=fields.CASCADE)
    original = fields.ForeignKeyField(
        "models.Chirp",
        related_name="rechirps",
        null=True,
        on_delete=fields.SET_NULL,
    )
    is_rechirp = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)

    class Meta:
        table = "chirps"
        unique_together = (("author", "original"),)
