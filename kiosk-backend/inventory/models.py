# kiosk-backend/inventory/models.py
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone

DEFAULT_EDIT_WINDOW_HOURS = 2


def edit_window_hours() -> int:
    return int(getattr(settings, "INVENTORY_EDIT_WINDOW_HOURS", DEFAULT_EDIT_WINDOW_HOURS))


class SessionStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class InventorySession(models.Model):
    """
    One stock count of a kiosk. Line items snapshot on-hand quantities at
    creation; completing the session writes the counted quantities back to
    the products, cancelling a completed session restores the snapshot.
    """
    kiosk = models.ForeignKey("kiosks.Kiosk", on_delete=models.CASCADE, related_name="inventory_sessions")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="inventory_sessions_created",
    )
    status = models.CharField(max_length=20, choices=SessionStatus.choices, default=SessionStatus.DRAFT, db_index=True)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)
    # set on every completion; kept after a completed session is cancelled
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "inventory_session"
        ordering = ["-created_at", "-id"]
        indexes = [models.Index(fields=["kiosk", "status"], name="inv_session_kiosk_status_idx")]

    def __str__(self):
        return f"Inventory #{self.id} ({self.status})"

    @property
    def is_draft(self) -> bool:
        return self.status == SessionStatus.DRAFT

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def is_cancelled(self) -> bool:
        return self.status == SessionStatus.CANCELLED

    def hours_since_completion(self, now=None):
        if not self.completed_at:
            return None
        now = now or timezone.now()
        return (now - self.completed_at).total_seconds() / 3600

    def editable_until(self):
        if not self.completed_at:
            return None
        return self.completed_at + timedelta(hours=edit_window_hours())

    def is_editable_at(self, now=None) -> bool:
        """Drafts always; completed sessions only inside the edit window."""
        if self.is_draft:
            return True
        if not (self.is_completed and self.completed_at):
            return False
        return self.hours_since_completion(now) <= edit_window_hours()


class InventoryLineItem(models.Model):
    session = models.ForeignKey(InventorySession, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.CASCADE, related_name="inventory_items")
    # snapshot of product.quantity when the session was created
    system_quantity = models.IntegerField()
    actual_quantity = models.IntegerField(null=True, blank=True)
    difference = models.IntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "inventory_line_item"
        constraints = [
            models.UniqueConstraint(fields=["session", "product"], name="uniq_inventory_item_per_product"),
        ]

    def __str__(self):
        return f"Item s{self.session_id} p{self.product_id} {self.system_quantity}->{self.actual_quantity}"

    def set_actual(self, actual_quantity):
        self.actual_quantity = actual_quantity
        self.difference = None if actual_quantity is None else actual_quantity - self.system_quantity
