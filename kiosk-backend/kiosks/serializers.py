# kiosks/serializers.py
from rest_framework import serializers
from .models import Kiosk


class KioskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Kiosk
        fields = ("id", "name", "address", "is_active", "created_at")

