"""
Tests for approver resolution: which user each workflow step is routed to.
"""

from __future__ import annotations

import pytest
from django.contrib.auth import get_user_model
from django.test import TestCase

from accounts.directory import ApproverResolver, UserDirectory
from accounts.models import Department, DepartmentType
from core.constants import RoleCode
from core.domain.exceptions import NotFound

User = get_user_model()


class TestApproverResolver(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.civil = Department.objects.create(name="Civil Court", code="CIV", department_type=DepartmentType.COURT)
        cls.labour = Department.objects.create(name="Labour Court", code="LAB", department_type=DepartmentType.COURT)

        def make(username, role, department=None, n=0, **extra):
            return User.objects.create_user(
                username=username,
                password="D1rectory!Pass",
                email=f"{username}@courts.test",
                national_id=f"78000000{n:02d}",
                phone_number=f"091800000{n:02d}",
                role=role,
                department=department,
                **extra,
            )

        cls.civil_president = make("dir_civil_president", RoleCode.APPEALS_PRESIDENT, cls.civil, 1)
        cls.retired_secretary = make("dir_old_secretary", RoleCode.SECRETARY_GENERAL, None, 2, is_active=False)
        cls.secretary = make("dir_secretary", RoleCode.SECRETARY_GENERAL, None, 3)
        cls.director = make("dir_press_director", RoleCode.PRESS_DIRECTOR, None, 4)

    def setUp(self):
        self.resolver = ApproverResolver()

    def test_appeals_president_is_department_scoped(self):
        self.assertEqual(self.resolver.appeals_president_for(self.civil.pk), self.civil_president)
        with self.assertRaises(NotFound):
            self.resolver.appeals_president_for(self.labour.pk)
        with self.assertRaises(NotFound):
            self.resolver.appeals_president_for(None)

    def test_inactive_users_are_skipped(self):
        self.assertEqual(self.resolver.secretary_general(), self.secretary)

    def test_missing_singleton_role_is_not_found(self):
        self.assertEqual(self.resolver.press_director(), self.director)
        with self.assertRaises(NotFound):
            self.resolver.council_president()

    def test_user_lookup(self):
        self.assertEqual(self.resolver.user(self.secretary.pk), self.secretary)
        with self.assertRaises(NotFound):
            self.resolver.user(self.retired_secretary.pk)

    def test_directory_returns_none_instead_of_raising(self):
        directory = UserDirectory()
        self.assertIsNone(directory.find_by_role(RoleCode.COUNCIL_PRESIDENT))
        self.assertIsNone(directory.find_by_role_and_department(RoleCode.APPEALS_PRESIDENT, self.labour.pk))


@pytest.mark.django_db
def test_lowest_pk_wins_for_a_shared_department_role(create_department, create_user):
    department = create_department(code="FAM-1")
    first = create_user(role=RoleCode.APPEALS_PRESIDENT, department=department)
    create_user(role=RoleCode.APPEALS_PRESIDENT, department=department)

    assert ApproverResolver().appeals_president_for(department.pk) == first
