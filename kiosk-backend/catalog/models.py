# kiosk-backend/catalog/models.py

from django.db import models
from django.db.models import Q
from common.models import TimeStampedModel

# upper bound of a 32-bit IntegerField column
MAX_QUANTITY = 2147483647


class ProductStatus(models.TextChoices):
    AVAILABLE = "available", "Available"
    OUT_OF_STOCK = "out_of_stock", "Out of stock"


def stock_status_for(quantity) -> str:
    """
    Availability follows on-hand quantity: nothing left means out of stock.
    """
    return ProductStatus.OUT_OF_STOCK if int(quantity or 0) == 0 else ProductStatus.AVAILABLE


class Product(TimeStampedModel):
    kiosk = models.ForeignKey("kiosks.Kiosk", on_delete=models.CASCADE, null=True, blank=True, related_name="products")
    name = models.CharField(max_length=255)
    brand = models.CharField(max_length=255, blank=True, default="")
    type = models.CharField(max_length=100, blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.IntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=ProductStatus.choices, default=ProductStatus.AVAILABLE, db_index=True
    )

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name="product_quantity_non_negative"),
        ]
        indexes = [
            models.Index(fields=["kiosk", "name"], name="product_kiosk_name_idx"),
        ]
        ordering = ["name"]
        verbose_name = "Product"
        verbose_name_plural = "Products"

    def __str__(self):
        return f"{self.brand} {self.name}".strip() if self.brand else self.name

    def set_quantity(self, quantity: int) -> None:
        self.quantity = int(quantity)
        self.status = stock_status_for(self.quantity)

    def save(self, *args, **kwargs):
        # status always follows quantity
        self.status = stock_status_for(self.quantity)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "quantity" in update_fields and "status" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["status"]
        return super().save(*args, **kwargs)
