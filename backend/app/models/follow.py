# app/models/follow.py
import uuid
from tortoise import fields, models


class Follow(models.Model):
    """Directed edge: follower follows followee. One row per ordered pair."""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    follower = fields.ForeignKeyField("models.User", related_name="following_edges", on_delete=fields.CASCADE)
    followee = fields.ForeignKeyField("models.User", related_name="follower_edges", on_delete=fields.CASCADE)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "follows"
        unique_together = (("follower", "followee"),)
