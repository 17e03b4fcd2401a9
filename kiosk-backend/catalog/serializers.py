# kiosk-backend/catalog/serializers.py
from decimal import Decimal

from rest_framework import serializers
from .models import MAX_QUANTITY, Product

MSG_REQUIRED = "Назва, ціна та ларьок обов'язкові"
_REQUIRED = {"required": MSG_REQUIRED, "null": MSG_REQUIRED, "blank": MSG_REQUIRED}


class ProductSerializer(serializers.ModelSerializer):
    kiosk_name = serializers.CharField(source="kiosk.name", read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            "id", "kiosk", "kiosk_name", "name", "brand", "type",
            "price", "quantity", "status", "updated_at",
        ]
        read_only_fields = ["id", "kiosk_name", "status", "updated_at"]
        extra_kwargs = {
            "kiosk": {
                "required": True,
                "allow_null": False,
                "error_messages": {**_REQUIRED, "does_not_exist": "Ларьок не знайдено"},
            },
            "name": {"error_messages": _REQUIRED},
            "price": {"min_value": Decimal("0"), "error_messages": _REQUIRED},
            "quantity": {
                "min_value": 0,
                "max_value": MAX_QUANTITY,
                "error_messages": {
                    "min_value": "Кількість не може бути від'ємною",
                    "max_value": "Невірна кількість",
                    "invalid": "Невірна кількість",
                },
            },
        }

    # quantity goes through set_quantity so status follows it
    def create(self, validated_data):
        quantity = validated_data.pop("quantity", 0)
        product = Product(**validated_data)
        product.set_quantity(quantity)
        product.save()
        return product

    def update(self, instance, validated_data):
        quantity = validated_data.pop("quantity", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if quantity is not None:
            instance.set_quantity(quantity)
        instance.save()
        return instance
