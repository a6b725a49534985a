"""Create rooms, students, payments and complaints."""
from __future__ import annotations

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Room",
            fields=[
                ("id", models.PositiveIntegerField(primary_key=True, serialize=False)),
                (
                    "hostel_id",
                    models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                (
                    "capacity",
                    models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("current_occupancy", models.PositiveSmallIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["capacity", "current_occupancy"], name="hostel_room_capacity_idx"),
                    models.Index(fields=["hostel_id"], name="hostel_room_block_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("current_occupancy__lte", models.F("capacity"))),
                        name="room_occupancy_within_capacity",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("current_occupancy__gte", 0)),
                        name="room_occupancy_not_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("capacity__gte", 1)),
                        name="room_capacity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Student",
            fields=[
                (
                    "user",
                    models.OneToOneField(
                        db_column="id",
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="student",
                        serialize=False,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("usn", models.CharField(max_length=20, unique=True)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("arrived", models.BooleanField(default=False)),
                ("arrival_timestamp", models.DateTimeField(blank=True, null=True)),
                ("avatar_url", models.URLField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "room",
                    models.ForeignKey(
                        blank=True,
                        db_column="room_no",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="occupants",
                        to="hostel.room",
                    ),
                ),
            ],
            options={
                "ordering": ["user_id"],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount_paid", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("successful", "Successful")],
                        default="successful",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "student",
                    models.ForeignKey(
                        db_column="student_id",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payments",
                        to="hostel.student",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
        migrations.AddField(
            model_name="student",
            name="fee",
            field=models.OneToOneField(
                blank=True,
                db_column="fee_id",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="hostel.payment",
            ),
        ),
        migrations.AddIndex(
            model_name="student",
            index=models.Index(fields=["room", "arrived"], name="hostel_student_room_idx"),
        ),
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("Electrical", "Electrical"),
                            ("Plumbing", "Plumbing"),
                            ("Furniture", "Furniture"),
                            ("Wi-Fi", "Wi-Fi"),
                            ("Other", "Other"),
                        ],
                        default="Electrical",
                        max_length=20,
                    ),
                ),
                ("description", models.TextField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Pending", "Pending"),
                            ("Forwarded to Admin", "Forwarded to Admin"),
                            ("Resolved", "Resolved"),
                        ],
                        default="Pending",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "student",
                    models.ForeignKey(
                        db_column="student_id",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="complaints",
                        to="hostel.student",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["student", "status"], name="hostel_complaint_status_idx")],
            },
        ),
    ]
