"""
Authz permissions for the private API.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices


def _user_roles(request):
    if not request.user or not request.user.is_authenticated:
        return None
    return request.user.role_names


class IsClinicalStaff(permissions.BasePermission):
    """
    Any staff role (admin, clinician, front desk).

    Used for triage screens: listing care requests, assigning clinicians,
    reading episodes and the lifecycle ledger.
    """

    def has_permission(self, request, view):
        roles = _user_roles(request)
        return bool(roles and roles & {
            RoleChoices.ADMIN,
            RoleChoices.CLINICIAN,
            RoleChoices.FRONT_DESK,
        })


class CanOpenEpisodes(permissions.BasePermission):
    """
    Admin or clinician.

    Opening an episode (approval, conversion, continuation) and discharge
    letters are clinical decisions; front desk cannot make them.
    """

    def has_permission(self, request, view):
        roles = _user_roles(request)
        return bool(roles and roles & {RoleChoices.ADMIN, RoleChoices.CLINICIAN})


class ClinicianPermission(permissions.BasePermission):
    """
    Clinician directory.

    - Staff: read-only (needed to pick an assignee)
    - Admin: write
    """

    def has_permission(self, request, view):
        roles = _user_roles(request)
        if not roles:
            return False
        if request.method in permissions.SAFE_METHODS:
            return bool(roles & {RoleChoices.ADMIN, RoleChoices.CLINICIAN, RoleChoices.FRONT_DESK})
        return RoleChoices.ADMIN in roles


class IsAdminRole(permissions.BasePermission):
    """Admin only. Operational screens such as the notification failure log."""

    def has_permission(self, request, view):
        roles = _user_roles(request)
        return bool(roles and RoleChoices.ADMIN in roles)
