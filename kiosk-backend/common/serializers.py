# common/serializers.py
from rest_framework import serializers

from .models import ActionLog
from .permissions import user_role


class ActionLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True, default=None)
    full_name = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()

    class Meta:
        model = ActionLog
        fields = (
            "id", "user", "username", "full_name", "role",
            "action_type", "entity_type", "entity_id", "description",
            "changes", "ip_address", "user_agent", "created_at",
        )
        read_only_fields = fields

    def get_full_name(self, obj):
        if obj.user is None:
            return None
        profile = getattr(obj.user, "staff_profile", None)
        return (profile.full_name if profile else "") or obj.user.get_full_name()

    def get_role(self, obj):
        return user_role(obj.user)
