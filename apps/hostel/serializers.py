"""Serializers for the hostel app."""
from __future__ import annotations

from typing import Any, Dict

from django.conf import settings
from rest_framework import serializers

from apps.users.serializers import issue_tokens

from .exceptions import ConstraintViolation
from .models import Complaint, Payment, Room, Student
from .services.allotment import validate_capacity
from .services.enrollment import Applicant, EnrollmentResult


class RoomSerializer(serializers.ModelSerializer):
    available_slots = serializers.IntegerField(read_only=True)
    is_full = serializers.BooleanField(read_only=True)

    class Meta:
        model = Room
        fields = ("id", "hostel_id", "capacity", "current_occupancy", "available_slots", "is_full", "created_at")
        read_only_fields = fields


class RoomCreateSerializer(serializers.Serializer):
    """Input for adding a single empty room."""

    id = serializers.IntegerField(min_value=1)
    hostel_id = serializers.IntegerField(min_value=1)
    capacity = serializers.IntegerField(min_value=1)


class RoomImportSerializer(serializers.Serializer):
    file = serializers.FileField()


class StudentSerializer(serializers.ModelSerializer):
    """Student row with foreign keys exposed as plain ids."""

    id = serializers.IntegerField(source="pk", read_only=True)
    room_no = serializers.IntegerField(source="room_id", read_only=True)
    fee_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Student
        fields = (
            "id",
            "name",
            "usn",
            "email",
            "room_no",
            "fee_id",
            "arrived",
            "arrival_timestamp",
            "avatar_url",
            "created_at",
        )
        read_only_fields = fields


class StudentProfileSerializer(StudentSerializer):
    """A student's own record, including the block of their room."""

    hostel_id = serializers.IntegerField(read_only=True)
    room_capacity = serializers.IntegerField(source="room.capacity", read_only=True, default=None)

    class Meta(StudentSerializer.Meta):
        fields = StudentSerializer.Meta.fields + ("hostel_id", "room_capacity")
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    student = serializers.IntegerField(source="student_id", read_only=True)
    receipt_number = serializers.CharField(read_only=True)

    class Meta:
        model = Payment
        fields = ("id", "student", "amount_paid", "status", "receipt_number", "created_at")
        read_only_fields = fields


class ComplaintSerializer(serializers.ModelSerializer):
    student = serializers.IntegerField(source="student_id", read_only=True)

    class Meta:
        model = Complaint
        fields = ("id", "student", "category", "description", "status", "created_at", "updated_at")
        read_only_fields = ("id", "student", "status", "created_at", "updated_at")


class WardenComplaintSerializer(ComplaintSerializer):
    """Complaint as a warden sees it, with who lodged it and where."""

    student_name = serializers.CharField(source="student.name", read_only=True)
    room_no = serializers.IntegerField(source="student.room_id", read_only=True)

    class Meta(ComplaintSerializer.Meta):
        fields = ComplaintSerializer.Meta.fields + ("student_name", "room_no")


class ComplaintCreateSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=Complaint.Category.choices, default=Complaint.Category.ELECTRICAL)
    description = serializers.CharField(max_length=2000, trim_whitespace=True)


class EnrollmentSerializer(serializers.Serializer):
    """Sign-up form of a new resident."""

    name = serializers.CharField(max_length=200)
    usn = serializers.CharField(max_length=20)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    chosen_capacity = serializers.IntegerField()

    def validate_chosen_capacity(self, value: int) -> int:
        try:
            return validate_capacity(value)
        except ConstraintViolation as exc:
            raise serializers.ValidationError(exc.message, code=exc.code) from exc

    def to_applicant(self) -> Applicant:
        data = self.validated_data
        return Applicant(
            name=data["name"],
            usn=data["usn"],
            email=data["email"],
            password=data["password"],
        )


def build_receipt(result: EnrollmentResult) -> Dict[str, Any]:
    """Confirmation shown after enrollment, with tokens to sign straight in."""

    payload = {
        "receipt_number": result.payment.receipt_number,
        "hostel_name": settings.HOSTEL_NAME,
        "student": StudentSerializer(result.student).data,
        "payment": PaymentSerializer(result.payment).data,
        "room": RoomSerializer(result.room).data,
        "hostel_id": result.room.hostel_id,
        "fee_linked": result.fee_linked,
    }
    tokens = issue_tokens(result.student.user)
    payload["access"] = tokens["access"]
    payload["refresh"] = tokens["refresh"]
    return payload


class OverviewSerializer(serializers.Serializer):
    students = serializers.IntegerField()
    arrived_students = serializers.IntegerField()
    rooms = serializers.IntegerField()
    payments = serializers.IntegerField()
    complaints = serializers.DictField(child=serializers.IntegerField())
    total_capacity = serializers.IntegerField()
    total_occupancy = serializers.IntegerField()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data["free_slots"] = max(data["total_capacity"] - data["total_occupancy"], 0)
        return data
