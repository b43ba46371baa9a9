# app/models/like.py
import uuid
from tortoise import fields, models


class Like(models.Model):
    """Presence of a row means `user` likes `chirp`."""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    chirp = fields.ForeignKeyField("models.Chirp", related_name="likes", on_delete=fields.CASCADE)
    user = fields.ForeignKeyField("models.User", related_name="likes", on_delete=fields.CASCADE)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "likes"
        unique_together = (("chirp", "user"),)
