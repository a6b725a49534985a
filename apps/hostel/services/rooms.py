"""Creation and validation of rooms."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import ConstraintViolation
from ..models import Room
from .allotment import validate_capacity

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RoomDraft:
    """Validated values for a room that is about to be created."""

    id: int
    hostel_id: int
    capacity: int
    current_occupancy: int = 0
    created_at: datetime | None = None

    def to_model(self) -> Room:
        return Room(
            id=self.id,
            hostel_id=self.hostel_id,
            capacity=self.capacity,
            current_occupancy=self.current_occupancy,
            created_at=self.created_at or timezone.now(),
        )


def _as_int(value, field: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ConstraintViolation(f"{field} must be a whole number.", code="invalid_room") from exc


def build_room_draft(room_id, hostel_id, capacity, current_occupancy=0, created_at=None) -> RoomDraft:
    """Check the ranges a room must respect and return its :class:`RoomDraft`."""

    room_id = _as_int(room_id, "id")
    hostel_id = _as_int(hostel_id, "hostel_id")
    occupancy = _as_int(current_occupancy, "current_occupancy")

    if room_id < 1:
        raise ConstraintViolation("Room id must be positive.", code="invalid_room")
    if not 1 <= hostel_id <= settings.HOSTEL_BLOCK_COUNT:
        raise ConstraintViolation(
            f"Valid hostel IDs are 1-{settings.HOSTEL_BLOCK_COUNT} only.", code="invalid_room"
        )
    capacity = validate_capacity(capacity)
    if not 0 <= occupancy <= capacity:
        raise ConstraintViolation(
            f"Occupancy of room {room_id} must be between 0 and its capacity {capacity}.",
            code="invalid_room",
        )
    return RoomDraft(
        id=room_id,
        hostel_id=hostel_id,
        capacity=capacity,
        current_occupancy=occupancy,
        created_at=created_at,
    )


def insert_room(room_id, hostel_id, capacity) -> Room:
    """Create an empty room after validating its id, block and capacity."""

    draft = build_room_draft(room_id, hostel_id, capacity)
    if Room.objects.filter(pk=draft.id).exists():
        raise ConstraintViolation(f"Room {draft.id} already exists.", code="duplicate_room")
    try:
        with transaction.atomic():
            room = draft.to_model()
            room.save(force_insert=True)
    except IntegrityError as exc:
        raise ConstraintViolation(f"Room {draft.id} could not be stored: {exc}", code="duplicate_room") from exc

    logger.info("Added room %s in block %s with capacity %s", room.pk, room.hostel_id, room.capacity)
    return room
