# kiosks/views.py
from rest_framework import viewsets, permissions
from rest_framework.decorators import action
from rest_framework.response import Response

from catalog.serializers import ProductSerializer
from .models import Kiosk
from .serializers import KioskSerializer


class KioskViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/v1/kiosks
    GET /api/v1/kiosks/<id>
    GET /api/v1/kiosks/<id>/products
    """
    queryset = Kiosk.objects.filter(is_active=True).order_by("name", "id")
    serializer_class = KioskSerializer
    permission_classes = [permissions.IsAuthenticated]

    @action(detail=True, methods=["get"])
    def products(self, request, pk=None):
        kiosk = self.get_object()
        qs = kiosk.products.order_by("name", "id")
        return Response(ProductSerializer(qs, many=True).data)
