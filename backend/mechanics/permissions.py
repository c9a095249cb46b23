from rest_framework.permissions import BasePermission

from accounts.models import Role


class IsMechanic(BasePermission):
    """
    Allows access only to users with role == MECHANIC that have a profile.
    """
    message = "Only mechanics allowed"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "role", None) == Role.MECHANIC and hasattr(user, "mechanic_profile")
