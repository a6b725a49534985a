"""Check-in of residents."""
from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidTransition
from ..models import Student

logger = logging.getLogger(__name__)


def mark_arrived(student_id: int) -> Student:
    """Record the physical check-in of a student. Happens exactly once."""

    with transaction.atomic():
        student = Student.objects.select_for_update().get(pk=student_id)
        if student.arrived:
            raise InvalidTransition(f"{student.name} has already been marked as arrived.")
        student.arrived = True
        student.arrival_timestamp = timezone.now()
        student.save(update_fields=["arrived", "arrival_timestamp"])

    logger.info("Student %s (%s) arrived at room %s", student.pk, student.usn, student.room_id)
    return student
