from django.contrib import admin
from .models import InventorySession, InventoryLineItem


class InventoryLineItemInline(admin.TabularInline):
    model = InventoryLineItem
    extra = 0
    fields = ("product", "system_quantity", "actual_quantity", "difference", "notes")
    readonly_fields = ("product", "system_quantity", "actual_quantity", "difference", "notes")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(InventorySession)
class InventorySessionAdmin(admin.ModelAdmin):
    list_display = ("id", "kiosk", "status", "created_by", "created_at", "completed_at")
    list_filter = ("status", "kiosk", "created_at")
    search_fields = ("notes", "kiosk__name")
    date_hierarchy = "created_at"
    readonly_fields = ("kiosk", "created_by", "status", "created_at", "completed_at")
    inlines = [InventoryLineItemInline]

    def has_add_permission(self, request):
        # created through the API only
        return False
