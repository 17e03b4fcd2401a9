# common/models.py
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ActionLog(models.Model):
    """
    Append-only trail of admin actions (who did what to which entity).
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="action_logs"
    )
    action_type = models.CharField(max_length=50)
    entity_type = models.CharField(max_length=50)
    entity_id = models.IntegerField(null=True, blank=True)
    description = models.TextField(blank=True, default="")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.CharField(max_length=45, blank=True, default="")
    user_agent = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user"], name="actionlog_user_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="actionlog_entity_idx"),
            models.Index(fields=["-created_at"], name="actionlog_created_idx"),
        ]

    def __str__(self):
        return f"{self.action_type} {self.entity_type}#{self.entity_id} @ {self.created_at}"

    @classmethod
    def record(cls, *, action_type, entity_type, entity_id=None, user=None, description="",
               changes=None, ip_address="", user_agent=""):
        return cls.objects.create(
            user=user,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description or "",
            changes=changes or {},
            ip_address=ip_address or "",
            user_agent=user_agent or "",
        )
