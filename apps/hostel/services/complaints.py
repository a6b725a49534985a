"""Complaint lodging and status transitions.

``Pending`` complaints may be forwarded to the administration by a warden,
and ``Pending`` or ``Forwarded to Admin`` complaints may be resolved.
``Resolved`` is terminal.
"""
from __future__ import annotations

import logging

from django.db import transaction
from rest_framework.exceptions import PermissionDenied

from ..exceptions import ConstraintViolation, InvalidTransition
from ..models import Complaint, Student

logger = logging.getLogger(__name__)

Status = Complaint.Status

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Status.PENDING: frozenset({Status.FORWARDED_TO_ADMIN, Status.RESOLVED}),
    Status.FORWARDED_TO_ADMIN: frozenset({Status.RESOLVED}),
    Status.RESOLVED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def lodge_complaint(student: Student, *, category: str, description: str) -> Complaint:
    """Record a new ``Pending`` complaint for an arrived student."""

    if not student.arrived:
        raise PermissionDenied("Complaints can be lodged once your arrival has been confirmed.")
    description = (description or "").strip()
    if not description:
        raise ConstraintViolation("Please provide a description for your complaint.", code="missing_description")
    if category not in Complaint.Category.values:
        raise ConstraintViolation(f"Unknown complaint category {category!r}.", code="invalid_category")

    complaint = Complaint.objects.create(
        student=student,
        category=category,
        description=description,
        status=Status.PENDING,
    )
    logger.info("Student %s lodged %s complaint %s", student.pk, category, complaint.pk)
    return complaint


def transition_complaint(complaint_id: int, target: str) -> Complaint:
    """Move a complaint to ``target`` or raise :class:`InvalidTransition`."""

    with transaction.atomic():
        complaint = Complaint.objects.select_for_update().get(pk=complaint_id)
        if not can_transition(complaint.status, target):
            raise InvalidTransition(
                f"Complaint {complaint.pk} cannot move from {complaint.status} to {target}."
            )
        previous = complaint.status
        complaint.status = target
        complaint.save(update_fields=["status", "updated_at"])

    logger.info("Complaint %s moved from %s to %s", complaint.pk, previous, target)
    return complaint


def forward_complaint(complaint_id: int) -> Complaint:
    return transition_complaint(complaint_id, Status.FORWARDED_TO_ADMIN)


def resolve_complaint(complaint_id: int) -> Complaint:
    return transition_complaint(complaint_id, Status.RESOLVED)
