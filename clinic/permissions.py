"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission


def _user_type(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "user_type", None)


class IsAdminRole(BasePermission):
    """Allow access only to platform administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _user_type(request) == "admin"


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _user_type(request) == "patient"


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _user_type(request) == "doctor"


class IsDoctorOrAdmin(BasePermission):
    """doctor or admin."""
    def has_permission(self, request, view) -> bool:
        return _user_type(request) in {"doctor", "admin"}
