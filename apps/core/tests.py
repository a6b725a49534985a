"""Tests for the core app."""
from __future__ import annotations

import unittest

from django.conf import settings
from django.test import SimpleTestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .exceptions import HostelError


def _test_ids(suite) -> list[str]:
    ids = []
    for test in suite:
        if isinstance(test, unittest.TestSuite):
            ids.extend(_test_ids(test))
        else:
            ids.append(test.id())
    return ids


class HealthTests(APITestCase):
    @override_settings(HOSTEL_NAME="Test Hostel")
    def test_health_reports_database(self) -> None:
        response = self.client.get(reverse("core:health"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["ok"])
        self.assertEqual(response.data["hostel"], "Test Hostel")


class HostelErrorTests(APITestCase):
    def test_code_defaults_to_class_code(self) -> None:
        error = HostelError("Something broke")

        self.assertEqual(error.code, "hostel_error")
        self.assertEqual(error.errors, [])
        self.assertEqual(str(error), "Something broke")

    def test_explicit_code_wins(self) -> None:
        error = HostelError("Bad row", code="bad_row", errors=[{"row": 2}])

        self.assertEqual(error.code, "bad_row")
        self.assertEqual(error.errors, [{"row": 2}])


class TestDiscoveryTests(SimpleTestCase):
    def test_plain_test_command_finds_every_app(self) -> None:
        suite = unittest.defaultTestLoader.discover(
            str(settings.BASE_DIR), pattern="test*.py", top_level_dir=str(settings.BASE_DIR)
        )
        modules = {test_id.rsplit(".", 2)[0] for test_id in _test_ids(suite)}

        for app in ("core", "users", "hostel"):
            with self.subTest(app=app):
                self.assertIn(f"apps.{app}.tests", modules)
