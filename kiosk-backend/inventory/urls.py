# inventory/urls.py
from django.urls import path

from .api import (
    InventorySessionListCreateView, InventorySessionDetailView,
    InventoryItemUpdateView, InventoryCompleteView, InventoryCancelView,
)

app_name = "inventory"

# mounted under /api/v1/inventory/ ; the bare collection URL lives in core/urls.py
urlpatterns = [
    path("", InventorySessionListCreateView.as_view(), name="session_list_create"),
    path("<int:pk>", InventorySessionDetailView.as_view(), name="session_detail"),
    path("<int:pk>/items/<int:item_id>", InventoryItemUpdateView.as_view(), name="session_item"),
    path("<int:pk>/complete", InventoryCompleteView.as_view(), name="session_complete"),
    path("<int:pk>/cancel", InventoryCancelView.as_view(), name="session_cancel"),
]
