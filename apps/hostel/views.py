"""Views for the hostel app."""
from __future__ import annotations

from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.users.permissions import IsHostelAdmin, IsStudent, IsWarden

from .models import Complaint, Payment, Room, Student
from .serializers import (
    ComplaintCreateSerializer,
    ComplaintSerializer,
    EnrollmentSerializer,
    OverviewSerializer,
    PaymentSerializer,
    RoomCreateSerializer,
    RoomImportSerializer,
    RoomSerializer,
    StudentProfileSerializer,
    StudentSerializer,
    WardenComplaintSerializer,
    build_receipt,
)
from .services.allotment import capacity_availability
from .services.cleanup import delete_room_and_cascade, delete_student_and_cleanup
from .services.complaints import forward_complaint, lodge_complaint, resolve_complaint
from .services.enrollment import enroll
from .services.reports import build_student_report
from .services.residents import mark_arrived
from .services.room_import import import_rooms
from .services.rooms import insert_room


def _truthy(value: str | None) -> bool | None:
    if value is None:
        return None
    value = value.lower()
    if value in {"true", "1", "yes"}:
        return True
    if value in {"false", "0", "no"}:
        return False
    return None


def _int_param(request, name: str) -> int | None:
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError({name: ["A whole number is required."]}) from exc


class EnrollmentView(APIView):
    """Enroll a new resident and return the payment receipt."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = EnrollmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = enroll(serializer.validated_data["chosen_capacity"], serializer.to_applicant())
        return Response(build_receipt(result), status=status.HTTP_201_CREATED)


class AvailabilityView(APIView):
    """Free slots per room capacity, shown on the sign-up form."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response(capacity_availability())


# Student dashboard


class StudentProfileView(APIView):
    permission_classes = [IsAuthenticated, IsStudent]

    def get(self, request, *args, **kwargs):
        student = get_object_or_404(Student.objects.select_related("room"), pk=request.user.pk)
        return Response(StudentProfileSerializer(student).data)


class StudentComplaintViewSet(mixins.ListModelMixin, mixins.CreateModelMixin, viewsets.GenericViewSet):
    """A student's own complaints, newest first."""

    serializer_class = ComplaintSerializer
    permission_classes = [IsAuthenticated, IsStudent]

    def get_student(self) -> Student:
        return get_object_or_404(Student, pk=self.request.user.pk)

    def get_queryset(self):
        return Complaint.objects.filter(student_id=self.request.user.pk).order_by("-created_at", "-id")

    def create(self, request, *args, **kwargs):
        serializer = ComplaintCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = lodge_complaint(self.get_student(), **serializer.validated_data)
        return Response(ComplaintSerializer(complaint).data, status=status.HTTP_201_CREATED)


# Warden dashboard


class WardenScopedMixin:
    """Restrict querysets to the block the warden looks after."""

    def get_block_id(self) -> int | None:
        return self.request.user.profile.block_id


class WardenStudentViewSet(WardenScopedMixin, mixins.ListModelMixin, viewsets.GenericViewSet):
    """Residents of the warden's block, ordered by room."""

    serializer_class = StudentSerializer
    permission_classes = [IsAuthenticated, IsWarden]

    def get_queryset(self):
        block_id = self.get_block_id()
        if block_id is None:
            return Student.objects.none()
        queryset = Student.objects.filter(room__hostel_id=block_id).order_by("room_id", "name")
        arrived = _truthy(self.request.query_params.get("arrived"))
        if arrived is not None:
            queryset = queryset.filter(arrived=arrived)
        return queryset

    @action(detail=True, methods=["post"], url_path="mark-arrived", url_name="mark-arrived")
    def confirm_arrival(self, request, pk=None):
        """Confirm the student has physically checked in."""
        student = self.get_object()
        student = mark_arrived(student.pk)
        return Response(self.get_serializer(student).data)


class WardenComplaintViewSet(WardenScopedMixin, mixins.ListModelMixin, viewsets.GenericViewSet):
    """Complaints from the warden's block, oldest first."""

    serializer_class = WardenComplaintSerializer
    permission_classes = [IsAuthenticated, IsWarden]

    def get_queryset(self):
        block_id = self.get_block_id()
        if block_id is None:
            return Complaint.objects.none()
        queryset = (
            Complaint.objects.filter(student__room__hostel_id=block_id)
            .select_related("student")
            .order_by("created_at", "id")
        )
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @action(detail=True, methods=["post"])
    def forward(self, request, pk=None):
        """Escalate a pending complaint to the administration."""
        complaint = forward_complaint(self.get_object().pk)
        return Response(self.get_serializer(complaint).data)

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        complaint = resolve_complaint(self.get_object().pk)
        return Response(self.get_serializer(complaint).data)


# Admin dashboard


class AdminStudentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = StudentSerializer
    permission_classes = [IsAuthenticated, IsHostelAdmin]

    def get_queryset(self):
        queryset = Student.objects.all()
        room_no = _int_param(self.request, "room_no")
        if room_no is not None:
            queryset = queryset.filter(room_id=room_no)
        return queryset

    def destroy(self, request, *args, **kwargs):
        student = self.get_object()
        message = delete_student_and_cleanup(student.pk)
        return Response({"detail": message}, status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"])
    def report(self, request, pk=None):
        """Data for the printable student report."""
        return Response(build_student_report(self.get_object()))


class AdminRoomViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = RoomSerializer
    permission_classes = [IsAuthenticated, IsHostelAdmin]

    def get_queryset(self):
        queryset = Room.objects.all()
        hostel_id = _int_param(self.request, "hostel_id")
        capacity = _int_param(self.request, "capacity")
        available = _truthy(self.request.query_params.get("available"))
        if hostel_id is not None:
            queryset = queryset.in_block(hostel_id)
        if capacity is not None:
            queryset = queryset.filter(capacity=capacity)
        if available is True:
            queryset = queryset.with_free_slot()
        elif available is False:
            queryset = queryset.exclude(pk__in=Room.objects.with_free_slot().values("pk"))
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = RoomCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        room = insert_room(
            serializer.validated_data["id"],
            serializer.validated_data["hostel_id"],
            serializer.validated_data["capacity"],
        )
        return Response(RoomSerializer(room).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        room = self.get_object()
        message = delete_room_and_cascade(room.pk)
        return Response({"detail": message}, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="import", parser_classes=[MultiPartParser, FormParser])
    def import_file(self, request):
        """Create rooms in bulk from an uploaded CSV file."""
        serializer = RoomImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rooms = import_rooms(serializer.validated_data["file"])
        return Response(
            {"created": len(rooms), "rooms": RoomSerializer(rooms, many=True).data},
            status=status.HTTP_201_CREATED,
        )


class AdminComplaintViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = WardenComplaintSerializer
    permission_classes = [IsAuthenticated, IsHostelAdmin]

    def get_queryset(self):
        queryset = Complaint.objects.select_related("student").order_by("-created_at", "-id")
        student_id = _int_param(self.request, "student")
        status_filter = self.request.query_params.get("status")
        if student_id is not None:
            queryset = queryset.filter(student_id=student_id)
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        complaint = resolve_complaint(self.get_object().pk)
        return Response(self.get_serializer(complaint).data)


class AdminPaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated, IsHostelAdmin]

    def get_queryset(self):
        queryset = Payment.objects.all()
        student_id = _int_param(self.request, "student")
        if student_id is not None:
            queryset = queryset.filter(student_id=student_id)
        return queryset


class AdminOverviewView(APIView):
    """Row counts per table and occupancy totals."""

    permission_classes = [IsAuthenticated, IsHostelAdmin]

    def get(self, request, *args, **kwargs):
        totals = Room.objects.aggregate(
            total_capacity=Sum("capacity"),
            total_occupancy=Sum("current_occupancy"),
        )
        complaints = {value: 0 for value in Complaint.Status.values}
        for row in Complaint.objects.values("status").annotate(count=Count("id")):
            complaints[row["status"]] = row["count"]
        data = {
            "students": Student.objects.count(),
            "arrived_students": Student.objects.filter(arrived=True).count(),
            "rooms": Room.objects.count(),
            "payments": Payment.objects.count(),
            "complaints": complaints,
            "total_capacity": totals["total_capacity"] or 0,
            "total_occupancy": totals["total_occupancy"] or 0,
        }
        return Response(OverviewSerializer(data).data)
