from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Admins are users with the admin role or Django staff accounts."""

    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsSelfOrAdmin(BasePermission):
    message = "You can only access your own account."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        return request.user.is_admin or obj.pk == request.user.pk
