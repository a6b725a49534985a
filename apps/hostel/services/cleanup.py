"""Deletion procedures that keep occupancy and references consistent."""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404

from apps.users.services import delete_identity

from ..exceptions import ConstraintViolation
from ..models import Room, Student
from .allotment import release_room

logger = logging.getLogger(__name__)

ROOM_DELETE_POLICIES = ("reject", "cascade")


def _lock_room(room_id) -> Room | None:
    return Room.objects.select_for_update().filter(pk=room_id).first()


def _lock_student(student_id) -> Student:
    return get_object_or_404(Student.objects.select_for_update(), pk=student_id)


def delete_student_and_cleanup(student_id) -> str:
    """Delete a student, their complaints, payments and login, and free their slot.

    Rows are locked room first, then student, the same order
    :func:`delete_room_and_cascade` takes them in.
    """

    with transaction.atomic():
        room_id = get_object_or_404(Student.objects.values_list("room_id", flat=True), pk=student_id)
        if room_id is not None:
            _lock_room(room_id)
        student = _lock_student(student_id)
        name, room_id, user = student.name, student.room_id, student.user

        complaints_deleted, _ = student.complaints.all().delete()
        Student.objects.filter(pk=student.pk).update(fee=None)
        payments_deleted, _ = student.payments.all().delete()
        student.delete()
        delete_identity(user)
        if room_id is not None:
            release_room(room_id)

    logger.info(
        "Deleted student %s (%s): %s complaints, %s payments, room %s freed",
        student_id,
        name,
        complaints_deleted,
        payments_deleted,
        room_id,
    )
    freed = f" One slot in room {room_id} was freed." if room_id is not None else ""
    return (
        f"Student {name} deleted along with {complaints_deleted} complaint(s) "
        f"and {payments_deleted} payment(s).{freed}"
    )


def _room_delete_policy(policy: str | None) -> str:
    policy = policy or settings.HOSTEL_ROOM_DELETE_POLICY
    if policy not in ROOM_DELETE_POLICIES:
        raise ImproperlyConfigured(
            f"HOSTEL_ROOM_DELETE_POLICY must be one of {', '.join(ROOM_DELETE_POLICIES)}, got {policy!r}."
        )
    return policy


def delete_room_and_cascade(room_id, *, policy: str | None = None) -> str:
    """Delete a room.

    An occupied room is refused under the ``reject`` policy. Under
    ``cascade`` every occupant is removed first through
    :func:`delete_student_and_cleanup`.
    """

    policy = _room_delete_policy(policy)
    with transaction.atomic():
        room = get_object_or_404(Room.objects.select_for_update(), pk=room_id)
        occupant_ids = list(room.occupants.order_by("pk").values_list("pk", flat=True))
        if occupant_ids and policy == "reject":
            raise ConstraintViolation(
                f"Room {room.pk} still has {len(occupant_ids)} occupant(s). Remove them before deleting the room.",
                code="room_occupied",
            )
        for student_id in occupant_ids:
            delete_student_and_cleanup(student_id)

        room.refresh_from_db(fields=["current_occupancy"])
        if room.current_occupancy:
            logger.warning(
                "Room %s reports occupancy %s with no occupants left", room.pk, room.current_occupancy
            )
        try:
            room.delete()
        except ProtectedError as exc:
            raise ConstraintViolation(f"Room {room.pk} is still referenced.", code="room_occupied") from exc

    logger.info("Deleted room %s (policy %s, %s occupants removed)", room_id, policy, len(occupant_ids))
    if occupant_ids:
        return f"Room {room_id} and its {len(occupant_ids)} occupant(s) deleted."
    return f"Room {room_id} deleted."
