"""Service helpers for the users app."""
from __future__ import annotations

from .accounts import AccountCreationFailure, create_identity, delete_identity, normalize_email

__all__ = [
    "AccountCreationFailure",
    "create_identity",
    "delete_identity",
    "normalize_email",
]
