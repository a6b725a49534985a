"""Role resolution helpers."""
from __future__ import annotations

import re

from .models import Profile

_WARDEN_BLOCK_PATTERN = re.compile(r"warden(\d+)")


def derive_role_from_email(email: str) -> tuple[str, int | None]:
    """Guess ``(role, block_id)`` from an email's local part.

    Accounts created before roles were stored were told apart only by their
    address: ``admin`` anywhere in the local part means an administrator,
    ``ward`` means a warden whose block is the number following ``warden``
    (``warden3@...`` manages block 3), anything else is a student. Only the
    ``sync_roles`` command relies on this; new accounts get an explicit role.
    """

    local_part = email.split("@", 1)[0].lower()
    if "admin" in local_part:
        return Profile.Roles.ADMIN, None
    if "ward" in local_part:
        match = _WARDEN_BLOCK_PATTERN.search(local_part)
        return Profile.Roles.WARDEN, int(match.group(1)) if match else None
    return Profile.Roles.STUDENT, None


def resolve_default_home_path(profile: Profile | None) -> str:
    """Return the dashboard path the front-end should open for ``profile``."""

    if not profile:
        return "/"

    if profile.role == Profile.Roles.ADMIN:
        return "/admin"

    if profile.role == Profile.Roles.WARDEN:
        return "/warden"

    return "/student"
