# core/api.py
from django.conf import settings
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.routers import DefaultRouter
from rest_framework.views import APIView

from catalog.views import ProductViewSet
from kiosks.views import KioskViewSet

router = DefaultRouter(trailing_slash=False)
router.register(r"kiosks", KioskViewSet, basename="kiosk")
router.register(r"products", ProductViewSet, basename="product")


class HealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response({"status": "ok"})


class ApiInfoView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        return Response({
            "message": settings.SPECTACULAR_SETTINGS["TITLE"],
            "version": settings.SPECTACULAR_SETTINGS["VERSION"],
            "status": "running",
            "endpoints": {
                "health": "/api/v1/health",
                "auth": "/api/v1/auth/token/",
                "kiosks": "/api/v1/kiosks",
                "products": "/api/v1/products",
                "inventory": "/api/v1/inventory",
                "action_logs": "/api/v1/action-logs",
                "docs": "/api/v1/docs/",
            },
        })
