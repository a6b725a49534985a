"""Hostel app URL configuration."""
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AdminComplaintViewSet,
    AdminOverviewView,
    AdminPaymentViewSet,
    AdminRoomViewSet,
    AdminStudentViewSet,
    AvailabilityView,
    EnrollmentView,
    StudentComplaintViewSet,
    StudentProfileView,
    WardenComplaintViewSet,
    WardenStudentViewSet,
)

app_name = "hostel"

router = DefaultRouter()
router.register(r"student/complaints", StudentComplaintViewSet, basename="student-complaints")
router.register(r"warden/students", WardenStudentViewSet, basename="warden-students")
router.register(r"warden/complaints", WardenComplaintViewSet, basename="warden-complaints")
router.register(r"admin/students", AdminStudentViewSet, basename="admin-students")
router.register(r"admin/rooms", AdminRoomViewSet, basename="admin-rooms")
router.register(r"admin/complaints", AdminComplaintViewSet, basename="admin-complaints")
router.register(r"admin/payments", AdminPaymentViewSet, basename="admin-payments")


urlpatterns = [
    path("enrollment/", EnrollmentView.as_view(), name="enrollment"),
    path("enrollment/availability/", AvailabilityView.as_view(), name="availability"),
    path("student/profile/", StudentProfileView.as_view(), name="student-profile"),
    path("admin/overview/", AdminOverviewView.as_view(), name="admin-overview"),
    path("", include(router.urls)),
]
