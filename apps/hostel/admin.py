"""Admin configuration for the hostel app."""
from __future__ import annotations

from django.contrib import admin

from .models import Complaint, Payment, Room, Student


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ("id", "hostel_id", "capacity", "current_occupancy", "created_at")
    list_filter = ("hostel_id", "capacity")
    readonly_fields = ("current_occupancy",)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("user", "name", "usn", "email", "room", "arrived", "created_at")
    search_fields = ("name", "usn", "email")
    list_filter = ("arrived", "room__hostel_id")
    raw_id_fields = ("user", "room", "fee")
    readonly_fields = ("room", "fee")


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "amount_paid", "status", "created_at")
    search_fields = ("student__name", "student__usn")
    list_filter = ("status",)


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "category", "status", "created_at", "updated_at")
    search_fields = ("student__name", "description")
    list_filter = ("category", "status")
