# app/models/comment.py
import uuid
from tortoise import fields, models


class Comment(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    content = fields.CharField(max_length=280)
    author = fields.ForeignKeyField("models.User", related_name="comments", on_delete=fields.CASCADE)
    chirp = fields.ForeignKeyField("models.Chirp", related_name="comments", on_delete=fields.CASCADE)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)

    class Meta:
        table = "comments"
