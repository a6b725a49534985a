"""User app models."""
from __future__ import annotations

from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Profile(models.Model):
    """Role and scope attached to an authenticated identity.

    The role is stored explicitly when the account is created, so nothing
    downstream has to guess it from the shape of the email address.
    """

    class Roles(models.TextChoices):
        STUDENT = "STUDENT", "Student"
        WARDEN = "WARDEN", "Warden"
        ADMIN = "ADMIN", "Admin"

    user = models.OneToOneField(User, related_name="profile", on_delete=models.CASCADE)
    role = models.CharField(max_length=10, choices=Roles.choices, default=Roles.STUDENT)
    # Hostel block a warden manages; unused for the other roles.
    block_id = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["user_id"]
        indexes = [models.Index(fields=["role", "block_id"], name="users_profile_role_block_idx")]

    def __str__(self) -> str:  # pragma: no cover - human readable representation
        return f"Profile({self.user.username}, {self.role})"

    def clean(self) -> None:
        if self.block_id is not None:
            if self.role != self.Roles.WARDEN:
                raise ValidationError({"block_id": _("Only wardens are scoped to a block.")})
            if self.block_id > settings.HOSTEL_BLOCK_COUNT:
                raise ValidationError(
                    {"block_id": _("Valid hostel blocks are 1-%(n)d.") % {"n": settings.HOSTEL_BLOCK_COUNT}}
                )
