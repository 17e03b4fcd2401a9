# catalog/views.py
from django.db.models import Q
from django.http import Http404
from rest_framework import viewsets, permissions
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from common.audit import log_action
from common.permissions import IsAdminRoleOrReadOnly
from .models import Product
from .serializers import ProductSerializer


class ProductViewSet(viewsets.ModelViewSet):
    """
    GET    /api/v1/products?kiosk_id=&status=&q=
    GET    /api/v1/products/<id>
    POST   /api/v1/products            (admin)
    PUT    /api/v1/products/<id>       (admin, partial)
    DELETE /api/v1/products/<id>       (admin)
    """
    serializer_class = ProductSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRoleOrReadOnly]

    def get_queryset(self):
        qs = Product.objects.select_related("kiosk").order_by("name", "id")
        params = self.request.query_params

        kiosk_id = params.get("kiosk_id")
        if kiosk_id:
            try:
                qs = qs.filter(kiosk_id=int(kiosk_id))
            except (TypeError, ValueError):
                return qs.none()

        status_f = (params.get("status") or "").strip()
        if status_f:
            qs = qs.filter(status=status_f)

        q = (params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(brand__icontains=q))
        return qs

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise NotFound("Товар не знайдено")

    def update(self, request, *args, **kwargs):
        # fields left out of the body keep their values
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)

    def perform_create(self, serializer):
        product = serializer.save()
        log_action(
            self.request, "PRODUCT_CREATE", "product", product.id,
            description=f"Товар {product.name} створено",
            changes={"kiosk_id": product.kiosk_id, "quantity": product.quantity},
        )

    def perform_update(self, serializer):
        before = serializer.instance.quantity
        product = serializer.save()
        log_action(
            self.request, "PRODUCT_UPDATE", "product", product.id,
            description=f"Товар {product.name} оновлено",
            changes={"quantity": {"from": before, "to": product.quantity}},
        )

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        product_id, name = product.id, product.name
        product.delete()
        log_action(request, "PRODUCT_DELETE", "product", product_id, description=f"Товар {name} видалено")
        return Response({"message": "Товар видалено"}, status=200)
