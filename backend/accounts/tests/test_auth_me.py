"""
Integration tests: the current profile endpoint.

Endpoint under test:  GET /api/accounts/me/   (accounts:me)
Access:               authenticated only (JWT Bearer)
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Department, DepartmentType
from core.constants import RoleCode
from core.permissions_constants import CaseFileActions, NewsActions

User = get_user_model()

_PASSWORD = "Str0ng!Pass77"


class TestMeEndpoint(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.department = Department.objects.create(
            name="Appeals Court North", code="APP-N", department_type=DepartmentType.APPEALS_COURT,
        )
        cls.president = User.objects.create_user(
            username="me_appeals_president",
            password=_PASSWORD,
            email="me_president@courts.test",
            phone_number="09130000077",
            national_id="7700000077",
            first_name="Me",
            last_name="Tester",
            role=RoleCode.APPEALS_PRESIDENT,
            department=cls.department,
        )
        cls.superuser = User.objects.create_superuser(
            username="me_root",
            password=_PASSWORD,
            email="me_root@courts.test",
            phone_number="09130000078",
            national_id="7700000078",
            first_name="Root",
            last_name="Admin",
        )

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("accounts:me")

    def _login(self, username: str) -> None:
        resp = self.client.post(
            reverse("accounts:login"),
            {"identifier": username, "password": _PASSWORD},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    def test_requires_authentication(self):
        resp = self.client.get(self.url)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_has_role_department_and_actions(self):
        self._login("me_appeals_president")
        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["role"], RoleCode.APPEALS_PRESIDENT)
        self.assertEqual(resp.data["role_display"], "Appeals Court President")
        self.assertEqual(resp.data["department"]["code"], "APP-N")
        self.assertIn(CaseFileActions.APPROVE_APPEALS, resp.data["allowed_actions"])
        self.assertIn(NewsActions.COURT_SUBMISSION, resp.data["allowed_actions"])
        self.assertNotIn(CaseFileActions.APPROVE_FINAL, resp.data["allowed_actions"])
        self.assertNotIn("password", resp.data)

    def test_superuser_gets_admin_actions(self):
        self._login("me_root")
        resp = self.client.get(self.url)

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertIn(CaseFileActions.DELETE_ANY, resp.data["allowed_actions"])
        self.assertIn(NewsActions.EDIT_ANY, resp.data["allowed_actions"])
