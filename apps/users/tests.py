"""Tests for the users app."""
from __future__ import annotations

import io

from django.contrib.auth.models import User
from django.core.management import CommandError, call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .models import Profile
from .roles import derive_role_from_email, resolve_default_home_path
from .services import AccountCreationFailure, create_identity

PASSWORD = "Lantern-Ridge-482"


class AuthFlowTests(APITestCase):
    """Verify login, token refresh and the identity endpoint."""

    def setUp(self) -> None:
        super().setUp()
        self.warden = create_identity(
            email="Warden2@SJBIT.edu.in",
            password=PASSWORD,
            role=Profile.Roles.WARDEN,
            block_id=2,
        )

    def _login(self, email: str = "warden2@sjbit.edu.in", password: str = PASSWORD):
        return self.client.post(
            reverse("users:login"),
            {"email": email, "password": password},
            format="json",
        )

    def test_login_returns_tokens_and_role(self) -> None:
        response = self._login()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["user"]["role"], Profile.Roles.WARDEN)
        self.assertEqual(response.data["user"]["block_id"], 2)
        self.assertEqual(response.data["user"]["default_home_path"], "/warden")

    def test_login_is_case_insensitive_on_email(self) -> None:
        response = self._login(email="WARDEN2@sjbit.edu.in")

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_rejects_wrong_password(self) -> None:
        response = self._login(password="not-the-password")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_rejects_unknown_email(self) -> None:
        response = self._login(email="nobody@sjbit.edu.in")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_requires_a_role_profile(self) -> None:
        User.objects.create_user(username="legacy", email="legacy@sjbit.edu.in", password=PASSWORD)

        response = self._login(email="legacy@sjbit.edu.in")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["detail"].code, "missing_role")

    def test_me_returns_authenticated_identity(self) -> None:
        access = self._login().data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

        response = self.client.get(reverse("users:me"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["email"], "warden2@sjbit.edu.in")
        self.assertEqual(response.data["role"], Profile.Roles.WARDEN)
        self.assertEqual(response.data["default_home_path"], "/warden")

    def test_me_requires_authentication(self) -> None:
        response = self.client.get(reverse("users:me"))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_issues_new_access_token(self) -> None:
        refresh = self._login().data["refresh"]

        response = self.client.post(reverse("users:token-refresh"), {"refresh": refresh}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)


class IdentityServiceTests(TestCase):
    def test_create_identity_normalizes_email_and_attaches_profile(self) -> None:
        user = create_identity(email="  Asha.Rao@SJBIT.edu.in ", password=PASSWORD)

        self.assertEqual(user.email, "asha.rao@sjbit.edu.in")
        self.assertEqual(user.username, "asha.rao")
        self.assertEqual(user.profile.role, Profile.Roles.STUDENT)
        self.assertIsNone(user.profile.block_id)

    def test_usernames_stay_unique(self) -> None:
        create_identity(email="asha@sjbit.edu.in", password=PASSWORD)

        user = create_identity(email="asha@gmail.com", password=PASSWORD)

        self.assertEqual(user.username, "asha2")

    def test_duplicate_email_is_rejected(self) -> None:
        create_identity(email="asha@sjbit.edu.in", password=PASSWORD)

        with self.assertRaises(AccountCreationFailure) as ctx:
            create_identity(email="ASHA@sjbit.edu.in", password=PASSWORD)

        self.assertEqual(ctx.exception.code, "duplicate_email")

    def test_weak_password_is_rejected(self) -> None:
        with self.assertRaises(AccountCreationFailure) as ctx:
            create_identity(email="asha@sjbit.edu.in", password="password")

        self.assertEqual(ctx.exception.code, "invalid_password")
        self.assertFalse(User.objects.exists())

    def test_only_wardens_have_a_block(self) -> None:
        with self.assertRaises(AccountCreationFailure) as ctx:
            create_identity(email="asha@sjbit.edu.in", password=PASSWORD, block_id=1)
        self.assertEqual(ctx.exception.code, "invalid_scope")

        with self.assertRaises(AccountCreationFailure):
            create_identity(
                email="warden9@sjbit.edu.in",
                password=PASSWORD,
                role=Profile.Roles.WARDEN,
                block_id=9,
            )


class RoleResolutionTests(TestCase):
    def test_derive_role_from_email(self) -> None:
        cases = {
            "admin@sjbit.edu.in": (Profile.Roles.ADMIN, None),
            "hostel.admin2@sjbit.edu.in": (Profile.Roles.ADMIN, None),
            "warden3@sjbit.edu.in": (Profile.Roles.WARDEN, 3),
            "ward.office@sjbit.edu.in": (Profile.Roles.WARDEN, None),
            "asha.rao@sjbit.edu.in": (Profile.Roles.STUDENT, None),
        }
        for email, expected in cases.items():
            with self.subTest(email=email):
                self.assertEqual(derive_role_from_email(email), expected)

    def test_default_home_path(self) -> None:
        admin = create_identity(email="root@sjbit.edu.in", password=PASSWORD, role=Profile.Roles.ADMIN)
        student = create_identity(email="asha@sjbit.edu.in", password=PASSWORD)

        self.assertEqual(resolve_default_home_path(admin.profile), "/admin")
        self.assertEqual(resolve_default_home_path(student.profile), "/student")
        self.assertEqual(resolve_default_home_path(None), "/")


class ManagementCommandTests(TestCase):
    def test_create_staff_creates_scoped_warden(self) -> None:
        out = io.StringIO()

        call_command("create_staff", "block4@sjbit.edu.in", PASSWORD, "--block", "4", stdout=out)

        profile = User.objects.get(email="block4@sjbit.edu.in").profile
        self.assertEqual(profile.role, Profile.Roles.WARDEN)
        self.assertEqual(profile.block_id, 4)
        self.assertIn("block 4", out.getvalue())

    def test_create_staff_requires_block_for_wardens(self) -> None:
        with self.assertRaises(CommandError):
            call_command("create_staff", "block4@sjbit.edu.in", PASSWORD, stdout=io.StringIO())

    def test_create_staff_admin(self) -> None:
        call_command("create_staff", "office@sjbit.edu.in", PASSWORD, "--role", "ADMIN", stdout=io.StringIO())

        self.assertEqual(User.objects.get(email="office@sjbit.edu.in").profile.role, Profile.Roles.ADMIN)

    def test_sync_roles_backfills_missing_profiles(self) -> None:
        User.objects.create_user(username="warden5", email="warden5@sjbit.edu.in", password=PASSWORD)
        User.objects.create_user(username="asha", email="asha@sjbit.edu.in", password=PASSWORD)
        existing = create_identity(email="admin@sjbit.edu.in", password=PASSWORD, role=Profile.Roles.ADMIN)

        call_command("sync_roles", "--dry-run", stdout=io.StringIO())
        self.assertEqual(Profile.objects.count(), 1)

        out = io.StringIO()
        call_command("sync_roles", stdout=out)

        warden = Profile.objects.get(user__email="warden5@sjbit.edu.in")
        self.assertEqual((warden.role, warden.block_id), (Profile.Roles.WARDEN, 5))
        self.assertEqual(Profile.objects.get(user__email="asha@sjbit.edu.in").role, Profile.Roles.STUDENT)
        self.assertEqual(Profile.objects.get(user=existing).role, Profile.Roles.ADMIN)
        self.assertIn("Created 2 profiles", out.getvalue())
