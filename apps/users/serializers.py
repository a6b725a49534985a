"""Serializers for the users app."""
from __future__ import annotations

from typing import Any, Dict

from django.contrib.auth.models import User
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.tokens import RefreshToken

from .roles import resolve_default_home_path
from .services import normalize_email


def _build_user_payload(user: User) -> Dict[str, Any]:
    profile = getattr(user, "profile", None)
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": getattr(profile, "role", ""),
        "block_id": getattr(profile, "block_id", None),
        "default_home_path": resolve_default_home_path(profile),
    }


def issue_tokens(user: User) -> Dict[str, Any]:
    """Return a fresh JWT pair plus the user payload for ``user``."""

    refresh = RefreshToken.for_user(user)
    return {
        "access": str(refresh.access_token),
        "refresh": str(refresh),
        "user": _build_user_payload(user),
    }


class LoginSerializer(serializers.Serializer):
    """Serializer handling email/password login."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        email = normalize_email(attrs.get("email", ""))
        password = attrs.get("password", "")

        try:
            user = User.objects.select_related("profile").get(email__iexact=email)
        except User.DoesNotExist as exc:
            raise AuthenticationFailed(_("Invalid credentials.")) from exc

        if not user.is_active or not user.check_password(password):
            raise AuthenticationFailed(_("Invalid credentials."))

        if getattr(user, "profile", None) is None:
            raise AuthenticationFailed(
                _("This account has no hostel role assigned."),
                code="missing_role",
            )

        return issue_tokens(user)


class MeSerializer(serializers.ModelSerializer):
    """Serializer returning the authenticated user's identity and role."""

    role = serializers.CharField(source="profile.role", read_only=True, default="")
    block_id = serializers.IntegerField(source="profile.block_id", read_only=True, default=None)
    default_home_path = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = (
            "id",
            "username",
            "email",
            "role",
            "block_id",
            "default_home_path",
        )
        read_only_fields = fields

    def get_default_home_path(self, obj: User) -> str:
        return resolve_default_home_path(getattr(obj, "profile", None))
