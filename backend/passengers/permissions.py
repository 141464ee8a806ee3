# passengers/permissions.py
from rest_framework.permissions import BasePermission


class HasRole(BasePermission):
    """Grant access to authenticated users whose role matches `role`."""
    role = None

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "role", None) == self.role


class IsPassenger(HasRole):
    message = "Only passengers can access this endpoint"
    role = "user"


class IsDriver(HasRole):
    message = "Only drivers allowed"
    role = "driver"
