from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "brand", "type", "kiosk", "price", "quantity", "status", "updated_at")
    list_filter = ("kiosk", "status", "type")
    search_fields = ("name", "brand", "type")
    readonly_fields = ("status", "created_at", "updated_at")
    list_select_related = ("kiosk",)
