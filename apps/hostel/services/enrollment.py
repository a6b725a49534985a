"""Enrollment of a new resident: room, identity, student, payment.

The steps run in a fixed order and each one fails with its own error so the
caller can tell the applicant exactly what went wrong:

1. reserve a slot in a room of the chosen capacity (``NoRoomAvailable``)
2. register the login identity (``IdentityCreationFailed``)
3. create the student record (``StudentRecordFailed``)
4. record the simulated fee payment (``PaymentRecordFailed``)
5. point the student's ``fee`` at the payment (best effort)

Steps 1-4 share one database transaction. A failure in any of them rolls
back everything done before it, the room slot included, so other users never
see a half-enrolled student. Step 5 runs in a savepoint; if it fails the
enrollment still succeeds with ``fee`` left empty, and
:func:`repair_fee_links` fills it in later.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.contrib.auth.models import User
from django.db import DatabaseError, OperationalError, transaction

from apps.core.exceptions import HostelError
from apps.users.models import Profile
from apps.users.services import AccountCreationFailure, create_identity, normalize_email

from ..exceptions import (
    BacklinkUpdateFailed,
    IdentityCreationFailed,
    NetworkOrTimeout,
    PaymentRecordFailed,
    StudentRecordFailed,
)
from ..models import Payment, Room, Student
from .allotment import reserve_room

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Applicant:
    """Details a prospective student supplies on the sign-up form."""

    name: str
    usn: str
    email: str
    password: str


@dataclass(slots=True)
class EnrollmentResult:
    """Records created by a successful enrollment."""

    student: Student
    payment: Payment
    room: Room

    @property
    def fee_linked(self) -> bool:
        return self.student.fee_id == self.payment.pk


def _register_identity(applicant: Applicant) -> User:
    try:
        return create_identity(
            email=applicant.email,
            password=applicant.password,
            role=Profile.Roles.STUDENT,
        )
    except AccountCreationFailure as exc:
        raise IdentityCreationFailed(f"Could not create user account: {exc}") from exc


def _create_student(user: User, applicant: Applicant, room: Room) -> Student:
    usn = applicant.usn.strip().upper()
    if Student.objects.filter(usn__iexact=usn).exists():
        raise StudentRecordFailed(f"A student with USN {usn} is already registered.")
    try:
        with transaction.atomic():
            return Student.objects.create(
                user=user,
                name=applicant.name.strip(),
                usn=usn,
                email=normalize_email(applicant.email),
                room=room,
                arrived=False,
            )
    except DatabaseError as exc:
        raise StudentRecordFailed(f"Failed to create student profile: {exc}") from exc


def _record_payment(student: Student) -> Payment:
    try:
        with transaction.atomic():
            return Payment.objects.create(
                student=student,
                amount_paid=settings.HOSTEL_FEE_AMOUNT,
                status=Payment.Status.SUCCESSFUL,
            )
    except DatabaseError as exc:
        raise PaymentRecordFailed("Student profile created, but failed to create fee record.") from exc


def link_fee(student: Student, payment: Payment) -> bool:
    """Point ``student.fee`` at ``payment``; return whether it stuck."""

    try:
        with transaction.atomic():
            updated = Student.objects.filter(pk=student.pk).update(fee=payment)
            if updated != 1:
                raise BacklinkUpdateFailed(f"Student {student.pk} vanished before its fee could be linked.")
    except (DatabaseError, BacklinkUpdateFailed) as exc:
        logger.warning(
            "Could not link payment %s to student %s, fee stays empty: %s",
            payment.pk,
            student.pk,
            exc,
        )
        return False
    student.fee = payment
    return True


def enroll(capacity_choice, applicant: Applicant) -> EnrollmentResult:
    """Enroll ``applicant`` into a room of ``capacity_choice`` seats."""

    step = "room reservation"
    try:
        with transaction.atomic():
            room = reserve_room(capacity_choice)
            step = "identity creation"
            user = _register_identity(applicant)
            step = "student record"
            student = _create_student(user, applicant, room)
            step = "payment record"
            payment = _record_payment(student)
            link_fee(student, payment)
    except HostelError as exc:
        logger.warning("Enrollment of %s aborted at %s: %s", applicant.email, step, exc)
        raise
    except OperationalError as exc:
        logger.error("Enrollment of %s aborted at %s: %s", applicant.email, step, exc)
        raise NetworkOrTimeout("The room store did not respond in time. Please try again.") from exc

    logger.info(
        "Enrolled %s (%s) into room %s, block %s, payment %s",
        student.name,
        student.usn,
        room.pk,
        room.hostel_id,
        payment.pk,
    )
    return EnrollmentResult(student=student, payment=payment, room=room)


def repair_fee_links() -> int:
    """Link every student with an empty ``fee`` to their latest payment."""

    repaired = 0
    for student in Student.objects.filter(fee__isnull=True).order_by("pk"):
        payment = (
            student.payments.filter(status=Payment.Status.SUCCESSFUL)
            .order_by("-created_at", "-id")
            .first()
        )
        if payment is not None and link_fee(student, payment):
            repaired += 1
    if repaired:
        logger.info("Repaired fee links for %s students", repaired)
    return repaired
