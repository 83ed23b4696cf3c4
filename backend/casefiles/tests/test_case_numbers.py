"""
Tests for case-number allocation.

Numbers come from a per-year counter row; the unique constraint on
``case_number`` plus the creation retry loop covers rows that were
written outside the counter.
"""

from __future__ import annotations

from django.test import TestCase, override_settings
from django.utils import timezone

from accounts.models import Department, DepartmentType, User
from casefiles.models import (
    ApprovalLevel,
    CaseFile,
    CaseFileStatus,
    CaseNumberSequence,
    format_case_number,
)
from casefiles.services import CaseFileCreationService, CaseNumberService
from core.constants import RoleCode
from core.domain.exceptions import Conflict


class TestCaseNumbers(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.department = Department.objects.create(
            name="Civil Court 2", code="CIV-2", department_type=DepartmentType.COURT,
        )
        cls.judge = User.objects.create_user(
            username="numbers_judge",
            password="Judic1al!Pass",
            email="numbers_judge@courts.test",
            national_id="7200000001",
            phone_number="09160000001",
            role=RoleCode.JUDGE,
            department=cls.department,
        )
        cls.year = timezone.now().year

    def _legacy_file(self, case_number: str) -> CaseFile:
        return CaseFile.objects.create(
            case_number=case_number,
            title="Legacy record",
            department=self.department,
            status=CaseFileStatus.DRAFT,
            current_level=ApprovalLevel.JUDGE,
            created_by=self.judge,
            assigned_to=self.judge,
        )

    def test_format_pads_to_five_digits(self):
        self.assertEqual(format_case_number(2024, 1), "2024-00001")
        self.assertEqual(format_case_number(2024, 12345), "2024-12345")

    def test_numbers_increase_per_year(self):
        first = CaseFileCreationService.create_case_file({"title": "First claim"}, self.judge)
        second = CaseFileCreationService.create_case_file({"title": "Second claim"}, self.judge)

        self.assertEqual(first.case_number, f"{self.year}-00001")
        self.assertEqual(second.case_number, f"{self.year}-00002")
        self.assertEqual(CaseNumberSequence.objects.get(year=self.year).last_value, 2)

    def test_each_year_has_its_own_counter(self):
        self.assertEqual(CaseNumberService.next_case_number(2020), "2020-00001")
        self.assertEqual(CaseNumberService.next_case_number(2021), "2021-00001")
        self.assertEqual(CaseNumberService.next_case_number(2020), "2020-00002")

    def test_new_counter_is_seeded_from_existing_rows(self):
        self._legacy_file("2019-00001")
        self._legacy_file("2019-00002")
        self.assertEqual(CaseNumberService.next_case_number(2019), "2019-00003")

    def test_collision_is_retried_with_the_next_number(self):
        CaseNumberSequence.objects.create(year=self.year, last_value=1)
        self._legacy_file(f"{self.year}-00002")

        case_file = CaseFileCreationService.create_case_file({"title": "Retry claim"}, self.judge)
        self.assertEqual(case_file.case_number, f"{self.year}-00003")

    @override_settings(CASE_NUMBER_MAX_RETRIES=1)
    def test_exhausted_retries_raise_conflict(self):
        CaseNumberSequence.objects.create(year=self.year, last_value=0)
        self._legacy_file(f"{self.year}-00001")

        with self.assertRaises(Conflict):
            CaseFileCreationService.create_case_file({"title": "Unlucky claim"}, self.judge)
        self.assertFalse(CaseFile.objects.filter(title="Unlucky claim").exists())
