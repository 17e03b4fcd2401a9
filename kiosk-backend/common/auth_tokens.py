from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework import exceptions

from kiosks.models import StaffMember


class StaffTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Accepts username and password.
    Embeds the staff role and kiosk in the resulting tokens.
    """

    def validate(self, attrs):
        # Let SimpleJWT authenticate the user (sets self.user)
        data = super().validate(attrs)

        member = StaffMember.objects.filter(user=self.user).select_related("kiosk").first()
        if not member and not self.user.is_superuser:
            raise exceptions.AuthenticationFailed("User has no staff profile")

        role = member.role if member else "admin"
        kiosk_id = member.kiosk_id if member else None

        # Build fresh tokens WITH custom claims (ignore the ones created by super())
        refresh = self.get_token(self.user)
        refresh["role"] = role
        refresh["kiosk_id"] = kiosk_id

        data["refresh"] = str(refresh)
        data["access"] = str(refresh.access_token)
        data["user"] = {
            "id": self.user.id,
            "username": self.user.get_username(),
            "full_name": member.full_name if member else self.user.get_full_name(),
            "role": role,
            "kiosk_id": kiosk_id,
        }
        return data
