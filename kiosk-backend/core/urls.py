# kiosk-backend/core/urls.py
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenRefreshView, TokenVerifyView

from common.api import ActionLogListView, ActionLogStatsView
from common.auth_views import StaffTokenObtainPairView
from inventory.api import InventorySessionListCreateView
from .api import router, HealthView, ApiInfoView


urlpatterns = [
    path("", ApiInfoView.as_view(), name="api-info"),
    path("admin/", admin.site.urls),
    path("api/v1/health", HealthView.as_view(), name="health"),

    # Auth
    path("api/v1/auth/token/", StaffTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/v1/auth/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/v1/auth/verify/", TokenVerifyView.as_view(), name="token_verify"),

    # API & docs
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/v1/docs/", SpectacularSwaggerView.as_view(url_name="schema")),
    path("api/v1/", include(router.urls)),

    # Inventory
    path("api/v1/inventory", InventorySessionListCreateView.as_view(), name="inventory-sessions"),
    path("api/v1/inventory/", include("inventory.urls", namespace="inventory")),

    # Action log
    path("api/v1/action-logs", ActionLogListView.as_view(), name="action-logs"),
    path("api/v1/action-logs/stats", ActionLogStatsView.as_view(), name="action-log-stats"),
]
