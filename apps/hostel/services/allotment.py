"""Room reservation for incoming students.

A room of capacity ``C`` can take another student while
``current_occupancy < capacity``. Among such rooms the one with the lowest
number is chosen so allotment is deterministic.

Claiming a slot is race-free on every backend. The candidate row is locked
with ``SELECT ... FOR UPDATE`` where the database supports it, and the
increment itself is a conditional ``UPDATE`` that only succeeds while the
room still has a free slot. A caller that loses the race on a room simply
moves on to the next candidate.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.db import OperationalError, connection, transaction
from django.db.models import Count, F, Q, Sum

from ..exceptions import ConstraintViolation, NetworkOrTimeout, NoRoomAvailable
from ..models import Room

logger = logging.getLogger(__name__)

RESERVATION_ATTEMPTS = 5


def validate_capacity(capacity) -> int:
    """Return ``capacity`` as an int or raise :class:`ConstraintViolation`."""

    try:
        value = int(capacity)
    except (TypeError, ValueError) as exc:
        raise ConstraintViolation("Room capacity must be a whole number.", code="invalid_capacity") from exc
    if not 1 <= value <= settings.HOSTEL_MAX_ROOM_CAPACITY:
        raise ConstraintViolation(
            f"Room capacity must be between 1 and {settings.HOSTEL_MAX_ROOM_CAPACITY}.",
            code="invalid_capacity",
        )
    return value


def _apply_lock_timeout() -> None:
    # Bounds how long a reservation waits on a row another session holds.
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute(
            "SELECT set_config('lock_timeout', %s, true)",
            [f"{settings.HOSTEL_LOCK_TIMEOUT_MS}ms"],
        )


def _next_candidate(capacity: int) -> Room | None:
    return (
        Room.objects.select_for_update()
        .filter(capacity=capacity)
        .with_free_slot()
        .order_by("id")
        .first()
    )


def _claim_slot(room_id: int) -> bool:
    """Increment occupancy of ``room_id`` if it still has a free slot."""

    claimed = Room.objects.filter(pk=room_id, current_occupancy__lt=F("capacity")).update(
        current_occupancy=F("current_occupancy") + 1
    )
    return claimed == 1


def reserve_room(capacity) -> Room:
    """Reserve one slot in a room of ``capacity`` and return the room.

    Call this inside the transaction that creates the resident so that a
    later failure rolls the increment back.
    """

    capacity = validate_capacity(capacity)
    try:
        with transaction.atomic():
            _apply_lock_timeout()
            for _ in range(RESERVATION_ATTEMPTS):
                room = _next_candidate(capacity)
                if room is None:
                    break
                if _claim_slot(room.pk):
                    room.refresh_from_db(fields=["current_occupancy"])
                    logger.info(
                        "Reserved slot in room %s (block %s), occupancy now %s/%s",
                        room.pk,
                        room.hostel_id,
                        room.current_occupancy,
                        room.capacity,
                    )
                    return room
                logger.debug("Room %s filled up concurrently, trying the next one", room.pk)
    except OperationalError as exc:
        logger.error("Room reservation for capacity %s failed: %s", capacity, exc)
        raise NetworkOrTimeout("The room store did not respond in time. Please try again.") from exc

    logger.info("No room with capacity %s has a free slot", capacity)
    raise NoRoomAvailable(f"Sorry, no rooms with capacity {capacity} are available.")


def release_room(room_id: int) -> bool:
    """Give back one slot of ``room_id``. Occupancy never drops below zero."""

    released = Room.objects.filter(pk=room_id, current_occupancy__gt=0).update(
        current_occupancy=F("current_occupancy") - 1
    )
    if released:
        logger.info("Released one slot in room %s", room_id)
    else:
        logger.warning("Room %s had no occupied slot to release", room_id)
    return bool(released)


def capacity_availability() -> list[dict[str, int]]:
    """Summarise rooms and free slots for every capacity class."""

    rows = {
        row["capacity"]: row
        for row in Room.objects.values("capacity").annotate(
            rooms=Count("id"),
            available_rooms=Count("id", filter=Q(current_occupancy__lt=F("capacity"))),
            free_slots=Sum(F("capacity") - F("current_occupancy")),
        )
    }
    summary = []
    for capacity in range(1, settings.HOSTEL_MAX_ROOM_CAPACITY + 1):
        row = rows.get(capacity, {})
        summary.append(
            {
                "capacity": capacity,
                "rooms": row.get("rooms", 0),
                "available_rooms": row.get("available_rooms", 0),
                "free_slots": row.get("free_slots") or 0,
            }
        )
    return summary
