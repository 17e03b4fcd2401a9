# common/permissions.py
from rest_framework import permissions
from common.roles import StaffRole


def user_role(user):
    if not (user and user.is_authenticated):
        return None
    profile = getattr(user, "staff_profile", None)
    return getattr(profile, "role", None)


class IsAdminRole(permissions.BasePermission):
    """
    Allows access only to superusers and staff members with the ADMIN role.
    """
    message = "Доступ заборонено. Потрібні права адміністратора"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        if user.is_superuser:
            return True
        return user_role(user) == StaffRole.ADMIN


class IsAdminRoleOrReadOnly(IsAdminRole):
    """
    Any authenticated user may read; writes need the ADMIN role.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            user = getattr(request, "user", None)
            return bool(user and user.is_authenticated)
        return super().has_permission(request, view)
