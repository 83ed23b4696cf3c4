"""
Integration tests for case-file documents.

Endpoints under test:
    GET|POST   /api/case-files/{id}/documents/            (case-file-documents)
    GET|DELETE /api/case-files/{id}/documents/{doc_id}/   (case-file-document-detail)

Uploads are multipart; stored files land under the temporary MEDIA_ROOT
set by the root conftest.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Department, DepartmentType
from casefiles.models import CaseFileDocument
from core.constants import RoleCode

User = get_user_model()

_PASSWORD = "Judic1al!Docs55"


def pdf(name: str = "registry-extract.pdf", size: int = 0) -> SimpleUploadedFile:
    body = b"%PDF-1.4 registry extract" + b"0" * size
    return SimpleUploadedFile(name, body, content_type="application/pdf")


class TestCaseFileDocumentsApi(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.department = Department.objects.create(
            name="Civil Court 5", code="CIV-5", department_type=DepartmentType.COURT,
        )

        def make(username, role, department=None, n=0):
            return User.objects.create_user(
                username=username,
                password=_PASSWORD,
                email=f"{username}@courts.test",
                national_id=f"75000000{n:02d}",
                phone_number=f"091600000{n:02d}",
                role=role,
                department=department,
            )

        cls.judge = make("doc_judge", RoleCode.JUDGE, cls.department, 1)
        cls.other_judge = make("doc_other_judge", RoleCode.JUDGE, cls.department, 2)
        cls.president = make("doc_president", RoleCode.APPEALS_PRESIDENT, cls.department, 3)
        cls.secretary = make("doc_secretary", RoleCode.SECRETARY_GENERAL, None, 4)

    def setUp(self):
        self.client = APIClient()

    def login_as(self, user) -> None:
        resp = self.client.post(
            reverse("accounts:login"),
            {"identifier": user.username, "password": _PASSWORD},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Login failed: {resp.data}")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    def create_case_file(self) -> int:
        self.login_as(self.judge)
        resp = self.client.post(reverse("case-file-list"), {"title": "Inheritance dispute"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        return resp.data["id"]

    def documents_url(self, pk: int) -> str:
        return reverse("case-file-documents", kwargs={"pk": pk})

    def document_url(self, pk: int, document_pk: int) -> str:
        return reverse("case-file-document-detail", kwargs={"pk": pk, "document_pk": document_pk})

    def upload(self, pk: int, **body):
        body.setdefault("file", pdf())
        return self.client.post(self.documents_url(pk), body, format="multipart")

    # ── Upload / read ───────────────────────────────────────────────

    def test_judge_uploads_and_lists_a_document(self):
        pk = self.create_case_file()

        resp = self.upload(pk)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp.data["title"], "registry-extract.pdf")
        self.assertEqual(resp.data["uploaded_by"]["id"], self.judge.pk)

        document = CaseFileDocument.objects.get(pk=resp.data["id"])
        self.assertEqual(document.case_file_id, pk)
        self.assertTrue(default_storage.exists(document.file.name))

        listing = self.client.get(self.documents_url(pk))
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in listing.data], [document.pk])

        detail = self.client.get(reverse("case-file-detail", kwargs={"pk": pk}))
        self.assertEqual([row["id"] for row in detail.data["documents"]], [document.pk])

        single = self.client.get(self.document_url(pk, document.pk))
        self.assertEqual(single.status_code, status.HTTP_200_OK)
        self.assertTrue(single.data["file"].endswith(".pdf"))

    def test_explicit_title_is_kept(self):
        pk = self.create_case_file()
        resp = self.upload(pk, title="Death certificate")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp.data["title"], "Death certificate")

    def test_unsupported_format_is_rejected(self):
        pk = self.create_case_file()
        resp = self.upload(pk, file=SimpleUploadedFile("notes.txt", b"plain text", content_type="text/plain"))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "validation_failed")
        self.assertIn("file", resp.data)
        self.assertFalse(CaseFileDocument.objects.exists())

    @override_settings(CASE_FILE_DOCUMENT_MAX_BYTES=64)
    def test_oversized_document_is_rejected(self):
        pk = self.create_case_file()
        resp = self.upload(pk, file=pdf(size=128))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("file", resp.data)

    def test_missing_file_is_rejected(self):
        pk = self.create_case_file()
        resp = self.client.post(self.documents_url(pk), {"title": "Nothing attached"}, format="multipart")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("file", resp.data)

    def test_documents_follow_case_file_visibility(self):
        pk = self.create_case_file()
        document_pk = self.upload(pk).data["id"]

        self.login_as(self.other_judge)
        resp = self.client.get(self.documents_url(pk))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "not_found")
        self.assertEqual(self.client.get(self.document_url(pk, document_pk)).status_code, status.HTTP_404_NOT_FOUND)

        self.login_as(self.president)
        self.assertEqual(len(self.client.get(self.documents_url(pk)).data), 1)

    def test_unknown_document_is_not_found(self):
        pk = self.create_case_file()
        resp = self.client.get(self.document_url(pk, 999999))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "not_found")

    # ── Who may change documents ────────────────────────────────────

    def test_stranger_cannot_upload(self):
        pk = self.create_case_file()
        self.login_as(self.other_judge)
        resp = self.upload(pk)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "forbidden")

    def test_secretary_general_may_attach_to_a_draft(self):
        pk = self.create_case_file()
        self.login_as(self.secretary)
        resp = self.upload(pk)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)

    def test_no_uploads_while_under_review(self):
        pk = self.create_case_file()
        self.client.post(reverse("case-file-submit", kwargs={"pk": pk}), {}, format="json")

        resp = self.upload(pk)
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "invalid_state")

        self.login_as(self.president)
        resp = self.upload(pk)
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_rejected_file_accepts_new_documents(self):
        pk = self.create_case_file()
        self.client.post(reverse("case-file-submit", kwargs={"pk": pk}), {}, format="json")
        self.login_as(self.president)
        resp = self.client.post(
            reverse("case-file-reject", kwargs={"pk": pk}), {"comments": "Attach the will."}, format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)

        self.login_as(self.judge)
        resp = self.upload(pk, file=pdf("will.pdf"))
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)

    # ── Delete ──────────────────────────────────────────────────────

    def test_delete_removes_row_and_stored_file(self):
        pk = self.create_case_file()
        document = CaseFileDocument.objects.get(pk=self.upload(pk).data["id"])
        stored_name = document.file.name

        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(self.document_url(pk, document.pk))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CaseFileDocument.objects.filter(pk=document.pk).exists())
        self.assertFalse(default_storage.exists(stored_name))

        resp = self.client.delete(self.document_url(pk, document.pk))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_stranger_cannot_delete(self):
        pk = self.create_case_file()
        document_pk = self.upload(pk).data["id"]

        self.login_as(self.other_judge)
        resp = self.client.delete(self.document_url(pk, document_pk))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(CaseFileDocument.objects.filter(pk=document_pk).exists())

    def test_cannot_delete_while_under_review(self):
        pk = self.create_case_file()
        document_pk = self.upload(pk).data["id"]
        self.client.post(reverse("case-file-submit", kwargs={"pk": pk}), {}, format="json")

        resp = self.client.delete(self.document_url(pk, document_pk))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "invalid_state")
        self.assertTrue(CaseFileDocument.objects.filter(pk=document_pk).exists())
