"""Service helpers for the hostel app."""
from __future__ import annotations

from .allotment import capacity_availability, release_room, reserve_room, validate_capacity
from .cleanup import delete_room_and_cascade, delete_student_and_cleanup
from .complaints import forward_complaint, lodge_complaint, resolve_complaint, transition_complaint
from .enrollment import Applicant, EnrollmentResult, enroll, repair_fee_links
from .reports import build_student_report
from .residents import mark_arrived
from .room_import import import_rooms
from .rooms import insert_room

__all__ = [
    "Applicant",
    "EnrollmentResult",
    "build_student_report",
    "capacity_availability",
    "delete_room_and_cascade",
    "delete_student_and_cleanup",
    "enroll",
    "forward_complaint",
    "import_rooms",
    "insert_room",
    "lodge_complaint",
    "mark_arrived",
    "release_room",
    "repair_fee_links",
    "reserve_room",
    "resolve_complaint",
    "transition_complaint",
    "validate_capacity",
]
