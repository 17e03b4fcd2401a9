from django.contrib import admin
from .models import ActionLog


@admin.register(ActionLog)
class ActionLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "user", "action_type", "entity_type", "entity_id", "description")
    list_filter = ("action_type", "entity_type", "created_at")
    search_fields = ("description", "user__username", "entity_type")
    date_hierarchy = "created_at"
    readonly_fields = (
        "user", "action_type", "entity_type", "entity_id", "description",
        "changes", "ip_address", "user_agent", "created_at",
    )

    def has_add_permission(self, request):
        # Log rows are only created programmatically
        return False

    def has_change_permission(self, request, obj=None):
        return False
