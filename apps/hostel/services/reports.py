"""Data behind the printable student report."""
from __future__ import annotations

from typing import Any, Dict

from django.conf import settings

from ..models import Student


def build_student_report(student: Student) -> Dict[str, Any]:
    """Collect a student's profile, lodging and complaint history.

    Complaints are listed newest first.
    """

    room = student.room
    complaints = student.complaints.order_by("-created_at", "-id")
    return {
        "hostel_name": settings.HOSTEL_NAME,
        "student": {
            "id": student.pk,
            "name": student.name,
            "usn": student.usn,
            "email": student.email,
        },
        "room": {
            "room_no": room.pk if room else None,
            "hostel_id": room.hostel_id if room else None,
            "capacity": room.capacity if room else None,
        },
        "arrival": {
            "arrived": student.arrived,
            "arrival_timestamp": student.arrival_timestamp,
        },
        "fee": {
            "payment_id": student.fee_id,
            "receipt_number": student.fee.receipt_number if student.fee_id else None,
        },
        "complaints": [
            {
                "id": complaint.pk,
                "category": complaint.category,
                "description": complaint.description,
                "status": complaint.status,
                "created_at": complaint.created_at,
            }
            for complaint in complaints
        ],
    }
