"""Creation of authenticated identities."""
from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from ..models import Profile

logger = logging.getLogger(__name__)


class AccountCreationFailure(Exception):
    """Raised when an identity cannot be registered."""

    def __init__(self, message: str, *, code: str = "invalid") -> None:
        super().__init__(message)
        self.code = code


def normalize_email(email: str) -> str:
    """Return a trimmed, lowercased email."""

    return email.strip().lower()


def _unique_username(email: str) -> str:
    username_base = email.split("@")[0]
    username_candidate = username_base
    suffix = 1
    while User.objects.filter(username__iexact=username_candidate).exists():
        suffix += 1
        username_candidate = f"{username_base}{suffix}"
    return username_candidate


def create_identity(
    *,
    email: str,
    password: str,
    role: str = Profile.Roles.STUDENT,
    block_id: int | None = None,
) -> User:
    """Register a user with ``email``/``password`` and attach its role profile."""

    email = normalize_email(email)
    if User.objects.filter(email__iexact=email).exists():
        raise AccountCreationFailure("A user with this email already exists.", code="duplicate_email")

    if role != Profile.Roles.WARDEN and block_id is not None:
        raise AccountCreationFailure("Only wardens are scoped to a block.", code="invalid_scope")
    if block_id is not None and not 1 <= block_id <= settings.HOSTEL_BLOCK_COUNT:
        raise AccountCreationFailure(
            f"Valid hostel blocks are 1-{settings.HOSTEL_BLOCK_COUNT}.", code="invalid_scope"
        )

    username = _unique_username(email)
    try:
        validate_password(password, user=User(username=username, email=email))
    except ValidationError as exc:
        raise AccountCreationFailure(" ".join(exc.messages), code="invalid_password") from exc

    try:
        with transaction.atomic():
            user = User.objects.create_user(username=username, email=email, password=password)
            Profile.objects.create(user=user, role=role, block_id=block_id)
    except IntegrityError as exc:
        raise AccountCreationFailure("The account could not be stored.", code="integrity_error") from exc

    logger.info("Created %s identity %s (user id %s)", role, email, user.pk)
    return user


def delete_identity(user: User) -> None:
    """Remove an identity and, through the cascade, its profile."""

    logger.info("Deleting identity %s (user id %s)", user.email, user.pk)
    user.delete()
