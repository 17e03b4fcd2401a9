# kiosks/admin.py
from django.contrib import admin
from .models import Kiosk, StaffMember


class StaffMemberInline(admin.TabularInline):
    model = StaffMember
    extra = 0
    fields = ("user", "full_name", "role")
    show_change_link = True


@admin.register(Kiosk)
class KioskAdmin(admin.ModelAdmin):
    list_display = ("name", "address", "is_active", "updated_at")
    list_display_links = ("name",)
    list_filter = ("is_active",)
    search_fields = ("name", "address")
    ordering = ("name",)
    inlines = [StaffMemberInline]


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "role", "kiosk")
    list_filter = ("role", "kiosk")
    search_fields = ("full_name", "user__username")
    list_select_related = ("user", "kiosk")
