"""
Integration tests for the news endpoints, including the anonymous public
site and image handling on drafts.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.constants import RoleCode
from news.models import NewsItem, NewsStatus, NewsType

User = get_user_model()

_PASSWORD = "N3ws!Desk2026"

# Smallest valid GIF.
_GIF = (
    b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01\x00\x00\x00"
    b"\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
)


class TestNewsApi(TestCase):

    @classmethod
    def setUpTestData(cls):
        def make(username, role, n):
            return User.objects.create_user(
                username=username,
                password=_PASSWORD,
                email=f"{username}@press.test",
                first_name=username.split("_")[-1].capitalize(),
                last_name="Tester",
                national_id=f"75000000{n:02d}",
                phone_number=f"091900000{n:02d}",
                role=role,
            )

        cls.technician = make("api_tech_lucia", RoleCode.PRESS_TECHNICIAN, 1)
        cls.director = make("api_director_mateo", RoleCode.PRESS_DIRECTOR, 2)
        cls.president = make("api_president_ines", RoleCode.COUNCIL_PRESIDENT, 3)
        cls.judge = make("api_judge_tomas", RoleCode.JUDGE, 4)
        cls.citizen = make("api_citizen_ana", RoleCode.CITIZEN, 5)

    def setUp(self):
        self.client = APIClient()
        self.list_url = reverse("news-list")

    def login_as(self, user) -> None:
        self.client.credentials()
        resp = self.client.post(
            reverse("accounts:login"),
            {"identifier": user.username, "password": _PASSWORD},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=f"Login failed: {resp.data}")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")

    def logout(self) -> None:
        self.client.credentials()

    def create_news(self, title="Judicial year opening", news_type=NewsType.ADVISORY) -> dict:
        self.login_as(self.technician)
        resp = self.client.post(
            self.list_url,
            {"title": title, "content": "The ceremony starts at ten.", "type": news_type},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        return resp.data

    def post_action(self, name: str, pk: int, body: dict | None = None):
        return self.client.post(reverse(f"news-{name}", kwargs={"pk": pk}), body or {}, format="json")

    def publish(self, data: dict) -> None:
        self.post_action("submit-to-director", data["id"])
        self.login_as(self.director)
        resp = self.post_action("approve-director", data["id"])
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)

    # ── Drafts ──────────────────────────────────────────────────────

    def test_technician_creates_draft_with_slug(self):
        data = self.create_news()
        self.assertEqual(data["status"], NewsStatus.DRAFT)
        self.assertEqual(data["slug"], "judicial-year-opening")
        self.assertEqual(data["author"]["id"], self.technician.pk)
        self.assertEqual(data["version"], 1)

    def test_citizen_cannot_create(self):
        self.login_as(self.citizen)
        resp = self.client.post(
            self.list_url,
            {"title": "Open letter", "content": "...", "type": NewsType.ADVISORY},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["code"], "forbidden")

    def test_unknown_type_is_rejected(self):
        self.login_as(self.technician)
        resp = self.client.post(
            self.list_url,
            {"title": "Open letter", "content": "...", "type": "bulletin"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("type", resp.data)

    def test_list_scoping(self):
        data = self.create_news()

        self.login_as(self.judge)
        self.assertEqual(self.client.get(self.list_url).data, [])

        self.login_as(self.president)
        ids = [row["id"] for row in self.client.get(self.list_url, {"type": "advisory"}).data]
        self.assertEqual(ids, [data["id"]])

    def test_image_upload_and_removal(self):
        data = self.create_news()
        detail_url = reverse("news-detail", kwargs={"pk": data["id"]})

        upload = SimpleUploadedFile("banner.gif", _GIF, content_type="image/gif")
        resp = self.client.patch(detail_url, {"image": upload}, format="multipart")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertIn("banner", resp.data["image"])
        self.assertEqual(resp.data["version"], 2)

        resp = self.client.patch(detail_url, {"remove_image": True}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertIsNone(resp.data["image"])
        self.assertFalse(NewsItem.objects.get(pk=data["id"]).image)

    def test_image_and_remove_image_together_is_invalid(self):
        data = self.create_news()
        upload = SimpleUploadedFile("banner.gif", _GIF, content_type="image/gif")
        resp = self.client.patch(
            reverse("news-detail", kwargs={"pk": data["id"]}),
            {"image": upload, "remove_image": True},
            format="multipart",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stale_version_on_edit_is_conflict(self):
        data = self.create_news()
        resp = self.client.patch(
            reverse("news-detail", kwargs={"pk": data["id"]}),
            {"subtitle": "Updated", "version": 7},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "conflict")

    def test_delete_only_drafts(self):
        draft = self.create_news(title="Draft to drop")
        resp = self.client.delete(reverse("news-detail", kwargs={"pk": draft["id"]}))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

        pending = self.create_news(title="Pending item")
        self.post_action("submit-to-director", pending["id"])
        resp = self.client.delete(reverse("news-detail", kwargs={"pk": pending["id"]}))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "invalid_state")

    # ── Workflow ────────────────────────────────────────────────────

    def test_notice_full_flow(self):
        data = self.create_news(title="Holiday notice", news_type=NewsType.NOTICE)
        pk = data["id"]

        resp = self.post_action("submit-to-director", pk)
        self.assertEqual(resp.data["status"], NewsStatus.PENDING_DIRECTOR)

        self.login_as(self.director)
        resp = self.post_action("approve-director", pk, {"comments": "Fine by me."})
        self.assertEqual(resp.data["status"], NewsStatus.PENDING_PRESIDENT)

        self.login_as(self.president)
        resp = self.post_action("approve-president", pk, {"version": resp.data["version"]})
        self.assertEqual(resp.status_code, status.HTTP_200_OK, msg=resp.data)
        self.assertEqual(resp.data["status"], NewsStatus.PUBLISHED)
        self.assertEqual(resp.data["approved_by_president"]["id"], self.president.pk)

        history = self.client.get(reverse("news-history", kwargs={"pk": pk}))
        self.assertEqual([row["action"] for row in history.data], ["publish", "approve", "submit"])

    def test_president_approving_advisory_is_invalid_state(self):
        data = self.create_news()
        self.post_action("submit-to-director", data["id"])

        self.login_as(self.president)
        resp = self.post_action("approve-president", data["id"])
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "invalid_state")

    def test_reject_without_comments(self):
        data = self.create_news()
        self.post_action("submit-to-director", data["id"])

        self.login_as(self.director)
        resp = self.post_action("reject", data["id"], {"comments": "   "})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "validation_failed")

        resp = self.post_action("reject", data["id"], {"comments": "Add the venue."})
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], NewsStatus.DRAFT)

    def test_court_submission_endpoint(self):
        self.login_as(self.judge)
        body = {"title": "Registry closed Friday", "content": "Maintenance work.", "type": NewsType.COMMUNIQUE}
        resp = self.client.post(reverse("news-court-submission"), body, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, msg=resp.data)
        self.assertEqual(resp.data["status"], NewsStatus.PENDING_DIRECTOR)

        resp = self.client.post(
            reverse("news-court-submission"),
            {**body, "title": "Registry notice", "type": NewsType.NOTICE},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["code"], "validation_failed")

        self.login_as(self.technician)
        resp = self.client.post(reverse("news-court-submission"), body, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_statistics(self):
        self.publish(self.create_news())
        self.create_news(title="Another draft", news_type=NewsType.NOTICE)

        self.login_as(self.director)
        resp = self.client.get(reverse("news-statistics"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["total"], 2)
        self.assertEqual(resp.data["by_status"]["published"], 1)
        self.assertEqual(resp.data["by_type"]["notice"], 1)
        self.assertEqual(resp.data["published_this_month"], 1)

    # ── Public site ─────────────────────────────────────────────────

    def test_public_site_lists_only_published(self):
        published = self.create_news(title="Opening ceremony")
        self.publish(published)
        self.create_news(title="Unpublished draft")

        self.logout()
        resp = self.client.get(reverse("news-public"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual([row["slug"] for row in resp.data], ["opening-ceremony"])
        self.assertEqual(resp.data[0]["author_name"], "Lucia Tester")
        self.assertNotIn("status", resp.data[0])

    def test_public_detail_by_slug(self):
        self.publish(self.create_news(title="Opening ceremony"))
        self.create_news(title="Unpublished draft")

        self.logout()
        resp = self.client.get(reverse("news-public-detail", kwargs={"slug": "opening-ceremony"}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["title"], "Opening ceremony")

        resp = self.client.get(reverse("news-public-detail", kwargs={"slug": "unpublished-draft"}))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "not_found")

    def test_internal_endpoints_need_a_token(self):
        self.logout()
        resp = self.client.get(self.list_url)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
