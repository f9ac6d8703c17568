"""
Platform-level permissions (back office).
"""
from rest_framework.permissions import BasePermission


class IsPlatformAdmin(BasePermission):
    """Platform administrator (or superuser)."""

    message = 'Platform administrator access required.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin)


class IsPlatformStaff(BasePermission):
    """Platform administrator or support: read-only for support."""

    message = 'Platform staff access required.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in ('GET', 'HEAD', 'OPTIONS'):
            return user.is_platform_staff
        return user.is_platform_admin
