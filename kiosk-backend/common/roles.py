from django.db import models

class StaffRole(models.TextChoices):
    ADMIN      = "admin",      "Admin"
    SELLER     = "seller",     "Seller"
    MANAGER    = "manager",    "Manager"
    ACCOUNTANT = "accountant", "Accountant"
