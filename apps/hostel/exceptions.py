"""Errors raised by hostel operations."""
from __future__ import annotations

from rest_framework import status

from apps.core.exceptions import HostelError


class EnrollmentError(HostelError):
    """Base class for failures that abort an enrollment."""

    default_code = "enrollment_failed"


class NoRoomAvailable(EnrollmentError):
    default_code = "no_room_available"
    status_code = status.HTTP_409_CONFLICT


class IdentityCreationFailed(EnrollmentError):
    default_code = "identity_creation_failed"
    status_code = status.HTTP_400_BAD_REQUEST


class StudentRecordFailed(EnrollmentError):
    default_code = "student_record_failed"
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentRecordFailed(EnrollmentError):
    default_code = "payment_record_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class BacklinkUpdateFailed(HostelError):
    """Linking a student to its payment failed; logged, never surfaced."""

    default_code = "backlink_update_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidTransition(HostelError):
    default_code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class ConstraintViolation(HostelError):
    default_code = "constraint_violation"
    status_code = status.HTTP_409_CONFLICT


class NetworkOrTimeout(HostelError):
    default_code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ImportRejected(HostelError):
    """A room file failed validation; ``errors`` lists each bad row."""

    default_code = "import_rejected"
    status_code = status.HTTP_400_BAD_REQUEST
