# kiosks/models.py
from django.conf import settings
from django.db import models
from common.models import TimeStampedModel
from common.roles import StaffRole


class Kiosk(TimeStampedModel):
    name = models.CharField(max_length=255)
    address = models.TextField()
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self):
        return self.name


class StaffMember(TimeStampedModel):
    """
    Role and home kiosk of a login. Sellers are bound to one kiosk;
    admins usually are not.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="staff_profile")
    full_name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(max_length=20, choices=StaffRole.choices, default=StaffRole.SELLER, db_index=True)
    kiosk = models.ForeignKey(Kiosk, on_delete=models.SET_NULL, null=True, blank=True, related_name="staff")

    class Meta:
        ordering = ["full_name", "id"]

    def __str__(self):
        return f"{self.full_name or self.user} ({self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == StaffRole.ADMIN
