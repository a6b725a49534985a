"""Hostel app models."""
from __future__ import annotations

from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class RoomQuerySet(models.QuerySet):
    def with_free_slot(self):
        return self.filter(current_occupancy__lt=F("capacity"))

    def in_block(self, hostel_id: int):
        return self.filter(hostel_id=hostel_id)


class Room(models.Model):
    """A room in one of the hostel blocks.

    Room numbers are assigned by the administration (``101``, ``214`` ...)
    and used as the primary key. ``current_occupancy`` only changes through
    :mod:`apps.hostel.services.allotment` and the cleanup procedures.
    """

    id = models.PositiveIntegerField(primary_key=True)
    hostel_id = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    capacity = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    current_occupancy = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)

    objects = RoomQuerySet.as_manager()

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["capacity", "current_occupancy"], name="hostel_room_capacity_idx"),
            models.Index(fields=["hostel_id"], name="hostel_room_block_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(current_occupancy__lte=F("capacity")),
                name="room_occupancy_within_capacity",
            ),
            models.CheckConstraint(
                condition=Q(current_occupancy__gte=0),
                name="room_occupancy_not_negative",
            ),
            models.CheckConstraint(
                condition=Q(capacity__gte=1),
                name="room_capacity_positive",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - human readable representation
        return f"Room({self.id}, block={self.hostel_id}, {self.current_occupancy}/{self.capacity})"

    @property
    def available_slots(self) -> int:
        return max(self.capacity - self.current_occupancy, 0)

    @property
    def is_full(self) -> bool:
        return self.current_occupancy >= self.capacity


class Student(models.Model):
    """A resident, keyed by the id of the identity created at enrollment."""

    user = models.OneToOneField(
        User,
        primary_key=True,
        related_name="student",
        on_delete=models.CASCADE,
        db_column="id",
    )
    name = models.CharField(max_length=200)
    usn = models.CharField(max_length=20, unique=True)
    email = models.EmailField(unique=True)
    room = models.ForeignKey(
        Room,
        related_name="occupants",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        db_column="room_no",
    )
    fee = models.OneToOneField(
        "Payment",
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        db_column="fee_id",
    )
    arrived = models.BooleanField(default=False)
    arrival_timestamp = models.DateTimeField(null=True, blank=True)
    avatar_url = models.URLField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["user_id"]
        indexes = [models.Index(fields=["room", "arrived"], name="hostel_student_room_idx")]

    def __str__(self) -> str:  # pragma: no cover
        return f"Student({self.name}, {self.usn})"

    @property
    def hostel_id(self) -> int | None:
        return self.room.hostel_id if self.room_id else None


class Payment(models.Model):
    """A fee payment recorded once per successful enrollment."""

    class Status(models.TextChoices):
        SUCCESSFUL = "successful", "Successful"

    student = models.ForeignKey(
        Student,
        related_name="payments",
        on_delete=models.CASCADE,
        db_column="student_id",
    )
    amount_paid = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SUCCESSFUL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Payment({self.id}, student={self.student_id}, {self.amount_paid})"

    @property
    def receipt_number(self) -> str:
        return f"PAY-{self.id:06d}"


class Complaint(models.Model):
    """A maintenance complaint lodged by an arrived student."""

    class Category(models.TextChoices):
        ELECTRICAL = "Electrical", "Electrical"
        PLUMBING = "Plumbing", "Plumbing"
        FURNITURE = "Furniture", "Furniture"
        WIFI = "Wi-Fi", "Wi-Fi"
        OTHER = "Other", "Other"

    class Status(models.TextChoices):
        PENDING = "Pending", "Pending"
        FORWARDED_TO_ADMIN = "Forwarded to Admin", "Forwarded to Admin"
        RESOLVED = "Resolved", "Resolved"

    student = models.ForeignKey(
        Student,
        related_name="complaints",
        on_delete=models.CASCADE,
        db_column="student_id",
    )
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.ELECTRICAL)
    description = models.TextField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [models.Index(fields=["student", "status"], name="hostel_complaint_status_idx")]

    def __str__(self) -> str:  # pragma: no cover
        return f"Complaint({self.id}, {self.category}, {self.status})"
