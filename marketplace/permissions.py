from rest_framework import permissions

from utils.rbac import is_admin


class IsMarketplaceAdmin(permissions.BasePermission):
    """
    Allows access only to admins (role ``admin`` or superuser).
    """

    message = "Admin access required"

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and is_admin(request.user))


class IsStaffOrMarketplaceAdmin(permissions.BasePermission):
    """
    Staff accounts used by internal callbacks, or marketplace admins.
    """

    message = "Staff access required"

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return bool(user.is_staff or is_admin(user))
