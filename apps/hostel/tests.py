"""Tests for the hostel app."""
from __future__ import annotations

import io
import os
import tempfile
import threading
import time
from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import CommandError, call_command
from django.db import DatabaseError, IntegrityError, OperationalError, connection, transaction
from django.db.models import F
from django.http import Http404
from django.test import TestCase, TransactionTestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.test import APITestCase

from apps.users.models import Profile
from apps.users.services import create_identity

from .exceptions import (
    ConstraintViolation,
    IdentityCreationFailed,
    ImportRejected,
    InvalidTransition,
    NetworkOrTimeout,
    NoRoomAvailable,
    PaymentRecordFailed,
    StudentRecordFailed,
)
from .models import Complaint, Payment, Room, Student
from .services import allotment, cleanup, room_import
from .services.cleanup import delete_room_and_cascade, delete_student_and_cleanup
from .services.complaints import (
    can_transition,
    forward_complaint,
    lodge_complaint,
    resolve_complaint,
)
from .services.enrollment import Applicant, enroll, repair_fee_links
from .services.reports import build_student_report
from .services.residents import mark_arrived
from .services.room_import import import_rooms
from .services.rooms import insert_room

PASSWORD = "Corridor-Key-913"


def make_room(room_id: int, *, hostel_id: int = 1, capacity: int = 2, occupancy: int = 0) -> Room:
    return Room.objects.create(
        id=room_id,
        hostel_id=hostel_id,
        capacity=capacity,
        current_occupancy=occupancy,
    )


def applicant(index: int = 1, **overrides) -> Applicant:
    data = {
        "name": f"Resident {index}",
        "usn": f"1jb21cs{index:03d}",
        "email": f"resident{index}@sjbit.edu.in",
        "password": PASSWORD,
    }
    data.update(overrides)
    return Applicant(**data)


def enroll_resident(capacity: int, index: int = 1, *, arrived: bool = False) -> Student:
    student = enroll(capacity, applicant(index)).student
    if arrived:
        student = mark_arrived(student.pk)
    return student


def occupancy(room_id: int) -> int:
    return Room.objects.get(pk=room_id).current_occupancy


class RoomAllotmentTests(TestCase):
    """Room selection, slot claiming and release."""

    def test_reserve_picks_lowest_numbered_room_with_free_slot(self) -> None:
        make_room(103)
        make_room(101, occupancy=2)
        make_room(102, occupancy=1)

        room = allotment.reserve_room(2)

        self.assertEqual(room.pk, 102)
        self.assertEqual(occupancy(102), 2)
        self.assertEqual(occupancy(103), 0)

    def test_reserve_only_considers_requested_capacity(self) -> None:
        make_room(101, capacity=3)
        make_room(102, capacity=1)

        room = allotment.reserve_room(1)

        self.assertEqual(room.pk, 102)
        self.assertEqual(occupancy(101), 0)

    def test_reserve_fails_when_every_room_is_full(self) -> None:
        make_room(101, capacity=3, occupancy=3)

        with self.assertRaises(NoRoomAvailable) as ctx:
            allotment.reserve_room(3)

        self.assertEqual(str(ctx.exception), "Sorry, no rooms with capacity 3 are available.")
        self.assertEqual(ctx.exception.code, "no_room_available")
        self.assertEqual(occupancy(101), 3)

    def test_reserve_rejects_capacity_outside_range(self) -> None:
        for value in (0, 4, "two", None):
            with self.subTest(value=value):
                with self.assertRaises(ConstraintViolation) as ctx:
                    allotment.reserve_room(value)
                self.assertEqual(ctx.exception.code, "invalid_capacity")

    def test_reserve_moves_on_when_room_fills_concurrently(self) -> None:
        make_room(101)
        make_room(102)
        real_claim = allotment._claim_slot

        def rival_takes_room_first(room_id):
            if room_id == 101:
                Room.objects.filter(pk=101).update(current_occupancy=F("capacity"))
            return real_claim(room_id)

        with mock.patch.object(allotment, "_claim_slot", side_effect=rival_takes_room_first):
            room = allotment.reserve_room(2)

        self.assertEqual(room.pk, 102)
        self.assertEqual(occupancy(101), 2)
        self.assertEqual(occupancy(102), 1)

    def test_losing_race_for_last_slot_never_overfills(self) -> None:
        make_room(101, capacity=1)
        real_claim = allotment._claim_slot

        def rival_takes_room_first(room_id):
            Room.objects.filter(pk=room_id).update(current_occupancy=1)
            return real_claim(room_id)

        with mock.patch.object(allotment, "_claim_slot", side_effect=rival_takes_room_first):
            with self.assertRaises(NoRoomAvailable):
                allotment.reserve_room(1)

        self.assertEqual(occupancy(101), 1)

    def test_store_errors_surface_as_network_or_timeout(self) -> None:
        make_room(101)

        with mock.patch.object(allotment, "_next_candidate", side_effect=OperationalError("lock timeout")):
            with self.assertRaises(NetworkOrTimeout) as ctx:
                allotment.reserve_room(2)

        self.assertEqual(ctx.exception.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_release_never_drops_below_zero(self) -> None:
        make_room(101, occupancy=1)

        self.assertTrue(allotment.release_room(101))
        self.assertFalse(allotment.release_room(101))
        self.assertEqual(occupancy(101), 0)

    def test_database_rejects_occupancy_above_capacity(self) -> None:
        make_room(101, capacity=1)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Room.objects.filter(pk=101).update(current_occupancy=2)

    def test_capacity_availability_covers_every_capacity(self) -> None:
        make_room(101, capacity=2, occupancy=1)
        make_room(102, capacity=2, occupancy=2)
        make_room(201, capacity=3)

        summary = {row["capacity"]: row for row in allotment.capacity_availability()}

        self.assertEqual(sorted(summary), [1, 2, 3])
        self.assertEqual(summary[1], {"capacity": 1, "rooms": 0, "available_rooms": 0, "free_slots": 0})
        self.assertEqual(summary[2]["rooms"], 2)
        self.assertEqual(summary[2]["available_rooms"], 1)
        self.assertEqual(summary[2]["free_slots"], 1)
        self.assertEqual(summary[3]["free_slots"], 3)


class EnrollmentTests(TestCase):
    """The enrollment workflow and what each failing step leaves behind."""

    def setUp(self) -> None:
        super().setUp()
        make_room(101, capacity=2)

    def test_enrollment_creates_identity_student_and_payment(self) -> None:
        result = enroll(2, applicant(1))

        student = Student.objects.get(pk=result.student.pk)
        self.assertEqual(student.room_id, 101)
        self.assertEqual(student.usn, "1JB21CS001")
        self.assertEqual(student.email, "resident1@sjbit.edu.in")
        self.assertFalse(student.arrived)
        self.assertIsNone(student.arrival_timestamp)
        self.assertEqual(student.fee_id, result.payment.pk)
        self.assertTrue(result.fee_linked)
        self.assertEqual(result.payment.amount_paid, Decimal("1.00"))
        self.assertEqual(result.payment.status, Payment.Status.SUCCESSFUL)
        self.assertEqual(student.user.profile.role, Profile.Roles.STUDENT)
        self.assertTrue(student.user.check_password(PASSWORD))
        self.assertEqual(occupancy(101), 1)

    def test_occupancy_matches_resident_count(self) -> None:
        enroll(2, applicant(1))
        enroll(2, applicant(2))

        self.assertEqual(occupancy(101), Student.objects.filter(room_id=101).count())
        with self.assertRaises(NoRoomAvailable):
            enroll(2, applicant(3))
        self.assertFalse(User.objects.filter(email="resident3@sjbit.edu.in").exists())

    def test_no_room_available_creates_nothing(self) -> None:
        with self.assertRaises(NoRoomAvailable):
            enroll(3, applicant(1))

        self.assertFalse(User.objects.exists())
        self.assertFalse(Student.objects.exists())

    def test_identity_failure_restores_room_occupancy(self) -> None:
        create_identity(email="resident1@sjbit.edu.in", password=PASSWORD)

        with self.assertRaises(IdentityCreationFailed) as ctx:
            enroll(2, applicant(1))

        self.assertTrue(str(ctx.exception).startswith("Could not create user account:"))
        self.assertEqual(occupancy(101), 0)
        self.assertFalse(Student.objects.exists())

    def test_busy_store_after_reservation_is_network_or_timeout(self) -> None:
        with mock.patch(
            "apps.hostel.services.enrollment._register_identity",
            side_effect=OperationalError("database table is locked"),
        ):
            with self.assertRaises(NetworkOrTimeout):
                enroll(2, applicant(1))

        self.assertEqual(occupancy(101), 0)
        self.assertFalse(Student.objects.exists())

    def test_weak_password_fails_identity_step(self) -> None:
        with self.assertRaises(IdentityCreationFailed):
            enroll(2, applicant(1, password="12345"))

        self.assertEqual(occupancy(101), 0)

    def test_duplicate_usn_rolls_back_identity_and_slot(self) -> None:
        enroll(2, applicant(1))

        with self.assertRaises(StudentRecordFailed) as ctx:
            enroll(2, applicant(2, usn="1JB21CS001"))

        self.assertIn("1JB21CS001", str(ctx.exception))
        self.assertFalse(User.objects.filter(email="resident2@sjbit.edu.in").exists())
        self.assertEqual(occupancy(101), 1)

    def test_payment_failure_rolls_back_everything(self) -> None:
        with mock.patch.object(Payment.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertRaises(PaymentRecordFailed) as ctx:
                enroll(2, applicant(1))

        self.assertEqual(ctx.exception.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(User.objects.exists())
        self.assertFalse(Student.objects.exists())
        self.assertEqual(occupancy(101), 0)

    def test_backlink_failure_keeps_enrollment_and_is_repairable(self) -> None:
        real_filter = Student.objects.filter

        def flaky_filter(*args, **kwargs):
            if "pk" in kwargs:
                raise DatabaseError("connection dropped")
            return real_filter(*args, **kwargs)

        with mock.patch.object(Student.objects, "filter", side_effect=flaky_filter):
            result = enroll(2, applicant(1))

        self.assertFalse(result.fee_linked)
        student = Student.objects.get(pk=result.student.pk)
        self.assertIsNone(student.fee_id)
        self.assertEqual(Payment.objects.filter(student=student).count(), 1)
        self.assertEqual(occupancy(101), 1)

        self.assertEqual(repair_fee_links(), 1)
        student.refresh_from_db()
        self.assertEqual(student.fee_id, result.payment.pk)
        self.assertEqual(repair_fee_links(), 0)

    def test_repair_fee_links_command(self) -> None:
        result = enroll(2, applicant(1))
        Student.objects.filter(pk=result.student.pk).update(fee=None)

        out = io.StringIO()
        call_command("repair_fee_links", stdout=out)

        self.assertIn("Linked 1 students", out.getvalue())
        self.assertEqual(Student.objects.get(pk=result.student.pk).fee_id, result.payment.pk)


@override_settings(PASSWORD_HASHERS=["django.contrib.auth.hashers.MD5PasswordHasher"])
class ConcurrentAllotmentTests(TransactionTestCase):
    """Many callers racing for the last free slot, each on its own connection."""

    callers = 8

    def setUp(self) -> None:
        super().setUp()
        make_room(101, capacity=1)

    def _race(self, attempt) -> list[str]:
        barrier = threading.Barrier(self.callers)
        outcomes: list[str] = []

        def caller(index: int) -> None:
            try:
                barrier.wait()
                outcome = "store_unavailable"
                # Clients retry while the store is busy, as the API asks them to.
                for _ in range(200):
                    try:
                        attempt(index)
                    except NetworkOrTimeout:
                        time.sleep(0.01)
                        continue
                    except NoRoomAvailable as exc:
                        outcome = exc.code
                    else:
                        outcome = "ok"
                    break
                outcomes.append(outcome)
            except Exception as exc:
                outcomes.append(type(exc).__name__)
            finally:
                connection.close()

        threads = [threading.Thread(target=caller, args=(index,)) for index in range(self.callers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes

    def test_only_one_caller_gets_the_last_slot(self) -> None:
        outcomes = self._race(lambda index: allotment.reserve_room(1))

        self.assertEqual(len(outcomes), self.callers)
        self.assertEqual(outcomes.count("ok"), 1)
        self.assertLessEqual(set(outcomes), {"ok", "no_room_available", "store_unavailable"})
        self.assertEqual(occupancy(101), 1)

    def test_only_one_applicant_is_enrolled_into_the_last_slot(self) -> None:
        outcomes = self._race(lambda index: enroll(1, applicant(index + 1)))

        self.assertEqual(outcomes.count("ok"), 1)
        self.assertLessEqual(set(outcomes), {"ok", "no_room_available", "store_unavailable"})
        self.assertEqual(occupancy(101), 1)
        self.assertEqual(Student.objects.count(), 1)
        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(User.objects.count(), 1)


class ResidentArrivalTests(TestCase):
    def test_mark_arrived_records_timestamp_once(self) -> None:
        make_room(101)
        student = enroll_resident(2)

        arrived = mark_arrived(student.pk)

        self.assertTrue(arrived.arrived)
        self.assertIsNotNone(arrived.arrival_timestamp)
        with self.assertRaises(InvalidTransition):
            mark_arrived(student.pk)


class ComplaintLifecycleTests(TestCase):
    """Lodging complaints and moving them through their statuses."""

    def setUp(self) -> None:
        super().setUp()
        make_room(101)
        self.student = enroll_resident(2, arrived=True)

    def _lodge(self, description: str = "Ceiling fan is not working") -> Complaint:
        return lodge_complaint(self.student, category=Complaint.Category.ELECTRICAL, description=description)

    def test_lodged_complaint_starts_pending(self) -> None:
        complaint = self._lodge()

        self.assertEqual(complaint.status, Complaint.Status.PENDING)
        self.assertEqual(complaint.student_id, self.student.pk)

    def test_only_arrived_students_may_lodge(self) -> None:
        newcomer = enroll_resident(2, index=2)

        with self.assertRaises(PermissionDenied):
            lodge_complaint(newcomer, category=Complaint.Category.PLUMBING, description="Leaking tap")

    def test_blank_description_is_rejected(self) -> None:
        with self.assertRaises(ConstraintViolation) as ctx:
            self._lodge(description="   ")

        self.assertEqual(ctx.exception.code, "missing_description")

    def test_unknown_category_is_rejected(self) -> None:
        with self.assertRaises(ConstraintViolation) as ctx:
            lodge_complaint(self.student, category="Laundry", description="Machine broken")

        self.assertEqual(ctx.exception.code, "invalid_category")

    def test_forward_then_resolve(self) -> None:
        complaint = self._lodge()

        self.assertEqual(forward_complaint(complaint.pk).status, Complaint.Status.FORWARDED_TO_ADMIN)
        self.assertEqual(resolve_complaint(complaint.pk).status, Complaint.Status.RESOLVED)

    def test_pending_complaint_can_be_resolved_directly(self) -> None:
        complaint = self._lodge()

        self.assertEqual(resolve_complaint(complaint.pk).status, Complaint.Status.RESOLVED)

    def test_resolved_is_terminal(self) -> None:
        complaint = self._lodge()
        resolve_complaint(complaint.pk)

        with self.assertRaises(InvalidTransition):
            forward_complaint(complaint.pk)
        with self.assertRaises(InvalidTransition):
            resolve_complaint(complaint.pk)
        complaint.refresh_from_db()
        self.assertEqual(complaint.status, Complaint.Status.RESOLVED)

    def test_forwarded_complaint_cannot_be_forwarded_again(self) -> None:
        complaint = self._lodge()
        forward_complaint(complaint.pk)

        with self.assertRaises(InvalidTransition):
            forward_complaint(complaint.pk)

    def test_transition_table(self) -> None:
        Status = Complaint.Status
        self.assertTrue(can_transition(Status.PENDING, Status.FORWARDED_TO_ADMIN))
        self.assertTrue(can_transition(Status.PENDING, Status.RESOLVED))
        self.assertTrue(can_transition(Status.FORWARDED_TO_ADMIN, Status.RESOLVED))
        self.assertFalse(can_transition(Status.FORWARDED_TO_ADMIN, Status.PENDING))
        self.assertFalse(can_transition(Status.RESOLVED, Status.PENDING))
        self.assertFalse(can_transition(Status.RESOLVED, Status.FORWARDED_TO_ADMIN))


class CleanupTests(TestCase):
    """Deleting students and rooms without leaving dangling rows."""

    def setUp(self) -> None:
        super().setUp()
        make_room(101)
        self.student = enroll_resident(2, arrived=True)
        lodge_complaint(self.student, category=Complaint.Category.WIFI, description="No signal")

    def test_delete_student_removes_dependents_and_frees_slot(self) -> None:
        user_id = self.student.user_id

        message = delete_student_and_cleanup(self.student.pk)

        self.assertIn("Resident 1", message)
        self.assertFalse(Student.objects.filter(pk=self.student.pk).exists())
        self.assertFalse(Complaint.objects.exists())
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(User.objects.filter(pk=user_id).exists())
        self.assertFalse(Profile.objects.filter(user_id=user_id).exists())
        self.assertEqual(occupancy(101), 0)

    def test_delete_student_locks_room_before_student(self) -> None:
        locks = mock.Mock()
        with mock.patch.object(cleanup, "_lock_room", wraps=cleanup._lock_room) as lock_room, mock.patch.object(
            cleanup, "_lock_student", wraps=cleanup._lock_student
        ) as lock_student:
            locks.attach_mock(lock_room, "room")
            locks.attach_mock(lock_student, "student")

            delete_room_and_cascade(101, policy="cascade")

        self.assertEqual(locks.mock_calls, [mock.call.room(101), mock.call.student(self.student.pk)])
        self.assertFalse(Room.objects.filter(pk=101).exists())

    def test_delete_unknown_student_is_not_found(self) -> None:
        with self.assertRaises(Http404):
            delete_student_and_cleanup(self.student.pk + 100)

        self.assertEqual(occupancy(101), 1)

    def test_delete_student_keeps_occupancy_non_negative(self) -> None:
        Room.objects.filter(pk=101).update(current_occupancy=0)

        delete_student_and_cleanup(self.student.pk)

        self.assertEqual(occupancy(101), 0)

    def test_delete_occupied_room_is_rejected_by_default(self) -> None:
        with self.assertRaises(ConstraintViolation) as ctx:
            delete_room_and_cascade(101)

        self.assertEqual(ctx.exception.code, "room_occupied")
        self.assertTrue(Room.objects.filter(pk=101).exists())
        self.assertTrue(Student.objects.filter(pk=self.student.pk).exists())

    def test_cascade_policy_removes_occupants_first(self) -> None:
        message = delete_room_and_cascade(101, policy="cascade")

        self.assertIn("1 occupant", message)
        self.assertFalse(Room.objects.filter(pk=101).exists())
        self.assertFalse(Student.objects.exists())
        self.assertFalse(Payment.objects.exists())

    def test_empty_room_is_deleted(self) -> None:
        make_room(102)

        self.assertEqual(delete_room_and_cascade(102), "Room 102 deleted.")
        self.assertFalse(Room.objects.filter(pk=102).exists())

    def test_insert_room_validates_ranges_and_duplicates(self) -> None:
        room = insert_room(305, 3, 3)
        self.assertEqual((room.pk, room.hostel_id, room.capacity, room.current_occupancy), (305, 3, 3, 0))

        for args in ((305, 3, 3), (306, 9, 2), (307, 1, 4), (0, 1, 1)):
            with self.subTest(args=args):
                with self.assertRaises(ConstraintViolation):
                    insert_room(*args)


class RoomImportTests(TestCase):
    """All-or-nothing CSV import of rooms."""

    def _csv(self, text: str) -> io.StringIO:
        return io.StringIO(text)

    def test_valid_file_is_imported(self) -> None:
        rooms = import_rooms(
            self._csv(
                "id,hostel_id,capacity,current_occupancy,created_at\n"
                "101,1,2,0,2024-06-01T09:00:00\n"
                "102,1,3,,\n"
            )
        )

        self.assertEqual(len(rooms), 2)
        self.assertEqual(Room.objects.get(pk=102).capacity, 3)
        self.assertEqual(Room.objects.get(pk=101).created_at.year, 2024)

    def test_any_invalid_row_rejects_the_whole_file(self) -> None:
        make_room(150)

        with self.assertRaises(ImportRejected) as ctx:
            import_rooms(
                self._csv(
                    "id,hostel_id,capacity\n"
                    "101,1,2\n"
                    "102,1,5\n"
                    "101,2,1\n"
                    "150,1,1\n"
                    "103,x,1\n"
                )
            )

        rows = [error["row"] for error in ctx.exception.errors]
        self.assertEqual(rows, [3, 4, 5, 6])
        self.assertEqual(Room.objects.count(), 1)

    def test_occupancy_above_capacity_is_rejected(self) -> None:
        with self.assertRaises(ImportRejected) as ctx:
            import_rooms(self._csv("id,hostel_id,capacity,current_occupancy\n101,1,1,2\n"))

        self.assertEqual(ctx.exception.errors[0]["row"], 2)

    def test_errors_name_file_lines_across_blank_lines(self) -> None:
        with self.assertRaises(ImportRejected) as ctx:
            import_rooms(self._csv("id,hostel_id,capacity\n101,1,2\n\n102,9,2\n"))

        self.assertEqual(ctx.exception.errors, [{"row": 4, "error": "Valid hostel IDs are 1-5 only."}])
        self.assertFalse(Room.objects.exists())

    def test_blank_lines_are_skipped(self) -> None:
        rooms = import_rooms(self._csv("id,hostel_id,capacity\n\n101,1,2\n \n102,1,3\n\n"))

        self.assertEqual([room.pk for room in rooms], [101, 102])

    @override_settings(HOSTEL_CSV_MAX_ROWS=2)
    def test_oversized_file_is_rejected_without_reading_it_all(self) -> None:
        text = "id,hostel_id,capacity\n" + "".join(f"{100 + n},1,2\n" for n in range(1, 6))

        with mock.patch.object(room_import.pd, "read_csv", wraps=room_import.pd.read_csv) as read_csv:
            with self.assertRaises(ImportRejected) as ctx:
                import_rooms(self._csv(text))

        self.assertIn("At most 2 rooms", str(ctx.exception))
        self.assertEqual(read_csv.call_args.kwargs["nrows"], 3)
        self.assertFalse(Room.objects.exists())

    @override_settings(HOSTEL_CSV_MAX_ROWS=2)
    def test_file_at_the_row_limit_is_imported(self) -> None:
        rooms = import_rooms(self._csv("id,hostel_id,capacity\n101,1,2\n102,1,2\n"))

        self.assertEqual(len(rooms), 2)

    def test_unknown_and_missing_columns_are_rejected(self) -> None:
        with self.assertRaises(ImportRejected) as ctx:
            import_rooms(self._csv("id,hostel_id,capacity,floor\n101,1,2,1\n"))
        self.assertIn("floor", str(ctx.exception))

        with self.assertRaises(ImportRejected) as ctx:
            import_rooms(self._csv("id,capacity\n101,2\n"))
        self.assertIn("hostel_id", str(ctx.exception))

    def test_empty_file_is_rejected(self) -> None:
        with self.assertRaises(ImportRejected):
            import_rooms(self._csv(""))
        with self.assertRaises(ImportRejected):
            import_rooms(self._csv("id,hostel_id,capacity\n"))

    def test_import_rooms_command(self) -> None:
        handle = tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False)
        self.addCleanup(os.unlink, handle.name)
        with handle:
            handle.write("id,hostel_id,capacity\n401,4,1\n402,4,2\n")

        out = io.StringIO()
        call_command("import_rooms", handle.name, stdout=out)

        self.assertIn("Imported 2 rooms", out.getvalue())
        self.assertEqual(Room.objects.in_block(4).count(), 2)

    def test_import_rooms_command_reports_bad_rows(self) -> None:
        handle = tempfile.NamedTemporaryFile("w", suffix=".csv", delete=False)
        self.addCleanup(os.unlink, handle.name)
        with handle:
            handle.write("id,hostel_id,capacity\n401,4,7\n")

        err = io.StringIO()
        with self.assertRaises(CommandError):
            call_command("import_rooms", handle.name, stderr=err)
        self.assertIn("line 2", err.getvalue())


class StudentReportTests(TestCase):
    def test_report_lists_complaints_newest_first(self) -> None:
        make_room(101, hostel_id=2)
        student = enroll_resident(2, arrived=True)
        first = lodge_complaint(student, category=Complaint.Category.PLUMBING, description="Leaking tap")
        second = lodge_complaint(student, category=Complaint.Category.OTHER, description="Door lock jammed")

        report = build_student_report(Student.objects.get(pk=student.pk))

        self.assertEqual(report["student"]["usn"], "1JB21CS001")
        self.assertEqual(report["room"], {"room_no": 101, "hostel_id": 2, "capacity": 2})
        self.assertTrue(report["arrival"]["arrived"])
        self.assertIsNotNone(report["arrival"]["arrival_timestamp"])
        self.assertEqual([c["id"] for c in report["complaints"]], [second.pk, first.pk])
        self.assertTrue(report["fee"]["receipt_number"].startswith("PAY-"))


class EnrollmentApiTests(APITestCase):
    """Public enrollment endpoints."""

    def setUp(self) -> None:
        super().setUp()
        make_room(101, hostel_id=1, capacity=2)

    def _payload(self, **overrides):
        data = {
            "name": "Asha Rao",
            "usn": "1jb21cs042",
            "email": "asha.rao@sjbit.edu.in",
            "password": PASSWORD,
            "chosen_capacity": 2,
        }
        data.update(overrides)
        return data

    def test_enrollment_returns_receipt_and_tokens(self) -> None:
        response = self.client.post(reverse("hostel:enrollment"), self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payment = Payment.objects.get()
        self.assertEqual(response.data["receipt_number"], f"PAY-{payment.pk:06d}")
        self.assertEqual(response.data["room"]["id"], 101)
        self.assertEqual(response.data["hostel_id"], 1)
        self.assertEqual(response.data["student"]["usn"], "1JB21CS042")
        self.assertEqual(response.data["student"]["fee_id"], payment.pk)
        self.assertEqual(Decimal(response.data["payment"]["amount_paid"]), Decimal("1.00"))
        self.assertNotIn("password", response.data["student"])

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        profile = self.client.get(reverse("hostel:student-profile"))
        self.assertEqual(profile.status_code, status.HTTP_200_OK)
        self.assertEqual(profile.data["room_no"], 101)
        self.assertEqual(profile.data["hostel_id"], 1)

    def test_full_capacity_returns_conflict(self) -> None:
        response = self.client.post(
            reverse("hostel:enrollment"), self._payload(chosen_capacity=3), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "no_room_available")
        self.assertEqual(response.data["detail"], "Sorry, no rooms with capacity 3 are available.")

    def test_invalid_capacity_is_a_validation_error(self) -> None:
        response = self.client.post(
            reverse("hostel:enrollment"), self._payload(chosen_capacity=7), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("chosen_capacity", response.data)

    def test_duplicate_email_reports_identity_failure(self) -> None:
        self.client.post(reverse("hostel:enrollment"), self._payload(), format="json")

        response = self.client.post(
            reverse("hostel:enrollment"), self._payload(usn="1jb21cs043"), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "identity_creation_failed")
        self.assertEqual(occupancy(101), 1)

    def test_availability_is_public(self) -> None:
        response = self.client.get(reverse("hostel:availability"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        by_capacity = {row["capacity"]: row for row in response.data}
        self.assertEqual(by_capacity[2]["free_slots"], 2)


class DashboardApiTests(APITestCase):
    """Student, warden and admin dashboards."""

    def setUp(self) -> None:
        super().setUp()
        make_room(101, hostel_id=1, capacity=2)
        make_room(201, hostel_id=2, capacity=1)
        self.block_one = enroll_resident(2, index=1)
        self.block_two = enroll_resident(1, index=2, arrived=True)
        self.warden = create_identity(
            email="warden1@sjbit.edu.in", password=PASSWORD, role=Profile.Roles.WARDEN, block_id=1
        )
        self.admin = create_identity(email="admin@sjbit.edu.in", password=PASSWORD, role=Profile.Roles.ADMIN)

    def _login_as(self, user) -> None:
        self.client.force_authenticate(user=user)

    # Student

    def test_student_sees_own_profile(self) -> None:
        self._login_as(self.block_one.user)

        response = self.client.get(reverse("hostel:student-profile"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["usn"], "1JB21CS001")
        self.assertEqual(response.data["room_capacity"], 2)
        self.assertFalse(response.data["arrived"])

    def test_student_cannot_lodge_before_arrival(self) -> None:
        self._login_as(self.block_one.user)

        response = self.client.post(
            reverse("hostel:student-complaints-list"),
            {"category": "Plumbing", "description": "Leaking tap"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Complaint.objects.exists())

    def test_student_lodges_and_lists_complaints_newest_first(self) -> None:
        self._login_as(self.block_two.user)
        url = reverse("hostel:student-complaints-list")

        first = self.client.post(url, {"category": "Wi-Fi", "description": "No signal"}, format="json")
        second = self.client.post(url, {"category": "Furniture", "description": "Broken chair"}, format="json")
        listing = self.client.get(url)

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data["status"], Complaint.Status.PENDING)
        self.assertEqual([row["id"] for row in listing.data], [second.data["id"], first.data["id"]])

    def test_student_cannot_open_staff_dashboards(self) -> None:
        self._login_as(self.block_one.user)

        self.assertEqual(
            self.client.get(reverse("hostel:warden-students-list")).status_code, status.HTTP_403_FORBIDDEN
        )
        self.assertEqual(
            self.client.get(reverse("hostel:admin-rooms-list")).status_code, status.HTTP_403_FORBIDDEN
        )

    def test_anonymous_requests_are_unauthorized(self) -> None:
        response = self.client.get(reverse("hostel:student-profile"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    # Warden

    def test_warden_lists_only_block_residents(self) -> None:
        self._login_as(self.warden)

        response = self.client.get(reverse("hostel:warden-students-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data], [self.block_one.pk])

    def test_warden_marks_arrival_once(self) -> None:
        self._login_as(self.warden)
        url = reverse("hostel:warden-students-mark-arrived", args=[self.block_one.pk])

        response = self.client.post(url)
        repeat = self.client.post(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["arrived"])
        self.assertEqual(repeat.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(repeat.data["code"], "invalid_transition")

    def test_warden_cannot_touch_other_blocks(self) -> None:
        self._login_as(self.warden)

        response = self.client.post(reverse("hostel:warden-students-mark-arrived", args=[self.block_two.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_warden_forwards_then_admin_resolves(self) -> None:
        mark_arrived(self.block_one.pk)
        complaint = lodge_complaint(
            Student.objects.get(pk=self.block_one.pk),
            category=Complaint.Category.ELECTRICAL,
            description="Socket sparks",
        )
        lodge_complaint(self.block_two, category=Complaint.Category.OTHER, description="Noise")

        self._login_as(self.warden)
        listing = self.client.get(reverse("hostel:warden-complaints-list"))
        self.assertEqual([row["id"] for row in listing.data], [complaint.pk])
        self.assertEqual(listing.data[0]["student_name"], "Resident 1")
        self.assertEqual(listing.data[0]["room_no"], 101)

        forwarded = self.client.post(reverse("hostel:warden-complaints-forward", args=[complaint.pk]))
        self.assertEqual(forwarded.data["status"], Complaint.Status.FORWARDED_TO_ADMIN)

        self._login_as(self.admin)
        filtered = self.client.get(
            reverse("hostel:admin-complaints-list"), {"status": Complaint.Status.FORWARDED_TO_ADMIN}
        )
        self.assertEqual([row["id"] for row in filtered.data], [complaint.pk])
        resolved = self.client.post(reverse("hostel:admin-complaints-resolve", args=[complaint.pk]))
        self.assertEqual(resolved.data["status"], Complaint.Status.RESOLVED)

        again = self.client.post(reverse("hostel:admin-complaints-resolve", args=[complaint.pk]))
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)

    def test_warden_without_block_sees_empty_lists(self) -> None:
        drifter = create_identity(email="ward.office@sjbit.edu.in", password=PASSWORD, role=Profile.Roles.WARDEN)
        self._login_as(drifter)

        self.assertEqual(self.client.get(reverse("hostel:warden-students-list")).data, [])
        self.assertEqual(self.client.get(reverse("hostel:warden-complaints-list")).data, [])

    # Admin

    def test_admin_filters_students_by_room(self) -> None:
        self._login_as(self.admin)

        response = self.client.get(reverse("hostel:admin-students-list"), {"room_no": 201})

        self.assertEqual([row["id"] for row in response.data], [self.block_two.pk])

    def test_admin_deletes_student_and_frees_slot(self) -> None:
        self._login_as(self.admin)

        response = self.client.delete(reverse("hostel:admin-students-detail", args=[self.block_two.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("Resident 2", response.data["detail"])
        self.assertEqual(occupancy(201), 0)
        self.assertFalse(Payment.objects.filter(student_id=self.block_two.pk).exists())

    def test_admin_report(self) -> None:
        self._login_as(self.admin)

        response = self.client.get(reverse("hostel:admin-students-report", args=[self.block_two.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["room"]["hostel_id"], 2)
        self.assertEqual(response.data["complaints"], [])

    def test_admin_room_filters(self) -> None:
        make_room(102, hostel_id=1, capacity=3)
        self._login_as(self.admin)
        url = reverse("hostel:admin-rooms-list")

        full = self.client.get(url, {"available": "false"})
        block_one = self.client.get(url, {"hostel_id": 1})
        triples = self.client.get(url, {"capacity": 3, "available": "true"})

        self.assertEqual([row["id"] for row in full.data], [201])
        self.assertEqual([row["id"] for row in block_one.data], [101, 102])
        self.assertEqual([row["id"] for row in triples.data], [102])

    def test_admin_filters_reject_non_numeric_ids(self) -> None:
        self._login_as(self.admin)
        cases = [
            ("hostel:admin-rooms-list", "hostel_id", "abc"),
            ("hostel:admin-rooms-list", "capacity", "two"),
            ("hostel:admin-students-list", "room_no", "1O1"),
            ("hostel:admin-complaints-list", "student", "x"),
            ("hostel:admin-payments-list", "student", "x"),
        ]
        for name, param, value in cases:
            with self.subTest(param=param, url=name):
                response = self.client.get(reverse(name), {param: value})

                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn(param, response.data)

    def test_admin_inserts_room(self) -> None:
        self._login_as(self.admin)
        url = reverse("hostel:admin-rooms-list")

        created = self.client.post(url, {"id": 310, "hostel_id": 3, "capacity": 2}, format="json")
        duplicate = self.client.post(url, {"id": 310, "hostel_id": 3, "capacity": 2}, format="json")

        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["current_occupancy"], 0)
        self.assertEqual(duplicate.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(duplicate.data["code"], "duplicate_room")

    def test_admin_room_delete_follows_policy(self) -> None:
        self._login_as(self.admin)
        url = reverse("hostel:admin-rooms-detail", args=[201])

        rejected = self.client.delete(url)
        self.assertEqual(rejected.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(rejected.data["code"], "room_occupied")

        with override_settings(HOSTEL_ROOM_DELETE_POLICY="cascade"):
            deleted = self.client.delete(url)
        self.assertEqual(deleted.status_code, status.HTTP_200_OK)
        self.assertFalse(Room.objects.filter(pk=201).exists())
        self.assertFalse(Student.objects.filter(pk=self.block_two.pk).exists())

    def test_admin_imports_rooms_from_upload(self) -> None:
        self._login_as(self.admin)
        url = reverse("hostel:admin-rooms-import-file")
        good = SimpleUploadedFile("rooms.csv", b"id,hostel_id,capacity\n501,5,3\n502,5,1\n", content_type="text/csv")
        bad = SimpleUploadedFile("rooms.csv", b"id,hostel_id,capacity\n503,6,3\n", content_type="text/csv")

        created = self.client.post(url, {"file": good}, format="multipart")
        rejected = self.client.post(url, {"file": bad}, format="multipart")

        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["created"], 2)
        self.assertEqual(rejected.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(rejected.data["code"], "import_rejected")
        self.assertEqual(rejected.data["errors"][0]["row"], 2)
        self.assertFalse(Room.objects.filter(pk=503).exists())

    def test_admin_payments_filter_by_student(self) -> None:
        self._login_as(self.admin)

        response = self.client.get(reverse("hostel:admin-payments-list"), {"student": self.block_one.pk})

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["student"], self.block_one.pk)

    def test_admin_overview(self) -> None:
        self._login_as(self.admin)

        response = self.client.get(reverse("hostel:admin-overview"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["students"], 2)
        self.assertEqual(response.data["arrived_students"], 1)
        self.assertEqual(response.data["rooms"], 2)
        self.assertEqual(response.data["payments"], 2)
        self.assertEqual(response.data["total_capacity"], 3)
        self.assertEqual(response.data["total_occupancy"], 2)
        self.assertEqual(response.data["free_slots"], 1)
        self.assertEqual(response.data["complaints"][Complaint.Status.PENDING], 0)
