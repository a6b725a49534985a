"""Role-based DRF permissions."""
from __future__ import annotations

from rest_framework.permissions import BasePermission

from .models import Profile


class _HasRole(BasePermission):
    role: str = ""

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        profile = getattr(user, "profile", None)
        return bool(profile and profile.role == self.role)


class IsStudent(_HasRole):
    """Ensure the authenticated user is a student."""

    role = Profile.Roles.STUDENT


class IsWarden(_HasRole):
    """Ensure the authenticated user is a warden."""

    role = Profile.Roles.WARDEN


class IsHostelAdmin(_HasRole):
    """Ensure the authenticated user is a hostel administrator."""

    role = Profile.Roles.ADMIN
