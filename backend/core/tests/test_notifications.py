"""
Tests for notification dispatch (persist, then email after commit) and
the per-user inbox endpoints.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from core.constants import RoleCode
from core.domain.notifications import NotificationDispatcher
from core.models import (
    Notification,
    NotificationEntity,
    NotificationStatus,
    NotificationType,
)

User = get_user_model()


class FailingEmailSender:
    def send(self, to, subject, html):
        raise ConnectionRefusedError("SMTP relay is down")


def _news_metadata(title="Holiday opening hours"):
    return {"news": {"id": 7, "title": title, "slug": "holiday-opening-hours"}, "comments": ""}


class TestNotificationDispatcher(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.author = User.objects.create_user(
            username="dispatch_author",
            password="Disp@tch!001",
            email="author@press.test",
            national_id="7600000001",
            phone_number="09160000001",
            role=RoleCode.PRESS_TECHNICIAN,
        )
        cls.director = User.objects.create_user(
            username="dispatch_director",
            password="Disp@tch!002",
            email="director@press.test",
            national_id="7600000002",
            phone_number="09160000002",
            role=RoleCode.PRESS_DIRECTOR,
        )

    def notify(self, dispatcher=None, recipient=None):
        return (dispatcher or NotificationDispatcher()).notify(
            recipient=recipient or self.author,
            event_type=NotificationType.NEWS_PUBLISHED,
            entity_type=NotificationEntity.NEWS,
            entity_id=7,
            metadata=_news_metadata(),
        )

    def test_row_is_stored_and_email_sent_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            notification = self.notify()
            self.assertEqual(len(mail.outbox), 0)

        notification.refresh_from_db()
        self.assertEqual(notification.status, NotificationStatus.UNREAD)
        self.assertEqual(notification.title, "News published")
        self.assertIn("Holiday opening hours", notification.message)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, [self.author.email])
        self.assertEqual(message.subject, "News published: Holiday opening hours")
        html, mimetype = message.alternatives[0]
        self.assertEqual(mimetype, "text/html")
        self.assertIn("Holiday opening hours", html)

    def test_failing_email_is_logged_not_raised(self):
        dispatcher = NotificationDispatcher(email_sender=FailingEmailSender())
        with self.assertLogs("core.domain.notifications", level="ERROR") as logs:
            with self.captureOnCommitCallbacks(execute=True):
                notification = self.notify(dispatcher)

        self.assertIsNotNone(notification)
        self.assertTrue(Notification.objects.filter(pk=notification.pk).exists())
        self.assertIn("failed", logs.output[0])

    def test_recipient_without_email_is_skipped(self):
        silent = User.objects.create_user(
            username="dispatch_silent",
            password="Disp@tch!003",
            email="",
            national_id="7600000003",
            phone_number="09160000003",
        )
        notification = self.notify(recipient=silent)
        with self.assertLogs("core.domain.notifications", level="WARNING"):
            sent = NotificationDispatcher().send_email(notification)
        self.assertFalse(sent)
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(NOTIFICATION_EMAILS_ENABLED=False)
    def test_emails_can_be_disabled(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            self.notify()
        self.assertEqual(callbacks, [])
        self.assertEqual(Notification.objects.count(), 1)

    def test_notify_many_skips_duplicates_and_missing_recipients(self):
        created = NotificationDispatcher().notify_many(
            recipients=[self.author, None, self.director, self.author],
            event_type=NotificationType.NEWS_PUBLISHED,
            entity_type=NotificationEntity.NEWS,
            entity_id=7,
            metadata=_news_metadata(),
        )
        self.assertEqual(
            sorted(n.recipient_id for n in created),
            sorted([self.author.pk, self.director.pk]),
        )

    def test_case_file_email_uses_case_number(self):
        with self.captureOnCommitCallbacks(execute=True):
            NotificationDispatcher().notify(
                recipient=self.director,
                event_type=NotificationType.CASE_FILE_ASSIGNED,
                entity_type=NotificationEntity.CASE_FILE,
                entity_id=3,
                metadata={"case_file": {"id": 3, "case_number": "2026-00003", "title": "Lease"}},
            )
        self.assertEqual(mail.outbox[0].subject, "New case file assigned: 2026-00003")


class TestNotificationInboxApi(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            username="inbox_owner",
            password="1nb0x!Owner",
            email="owner@courts.test",
            national_id="7700000001",
            phone_number="09170000101",
            role=RoleCode.JUDGE,
        )
        cls.stranger = User.objects.create_user(
            username="inbox_stranger",
            password="1nb0x!Other",
            email="stranger@courts.test",
            national_id="7700000002",
            phone_number="09170000102",
            role=RoleCode.JUDGE,
        )

        def add(recipient, event_type, **extra):
            return Notification.objects.create(
                recipient=recipient,
                type=event_type,
                title=event_type.label,
                message="...",
                entity_type=NotificationEntity.CASE_FILE,
                entity_id=1,
                **extra,
            )

        cls.assigned = add(cls.user, NotificationType.CASE_FILE_ASSIGNED)
        cls.returned = add(cls.user, NotificationType.CASE_FILE_RETURNED)
        cls.approved = add(cls.user, NotificationType.CASE_FILE_APPROVED, status=NotificationStatus.READ)
        cls.foreign = add(cls.stranger, NotificationType.CASE_FILE_ASSIGNED)

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.list_url = reverse("core:notification-list")

    def ids(self, resp):
        return {row["id"] for row in resp.data}

    def test_list_shows_only_own_rows(self):
        resp = self.client.get(self.list_url)
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(self.ids(resp), {self.assigned.pk, self.returned.pk, self.approved.pk})

    def test_list_filters(self):
        resp = self.client.get(self.list_url, {"status": "unread"})
        self.assertEqual(self.ids(resp), {self.assigned.pk, self.returned.pk})

        resp = self.client.get(self.list_url, {"type": NotificationType.CASE_FILE_RETURNED})
        self.assertEqual(self.ids(resp), {self.returned.pk})

        resp = self.client.get(self.list_url, {"status": "deleted"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_as_read(self):
        resp = self.client.post(reverse("core:notification-mark-as-read", kwargs={"pk": self.assigned.pk}))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["status"], NotificationStatus.READ)
        self.assertIsNotNone(resp.data["read_at"])

        resp = self.client.get(reverse("core:notification-unread-count"))
        self.assertEqual(resp.data["unread"], 1)

    def test_read_multiple_only_touches_own_unread_rows(self):
        resp = self.client.post(
            reverse("core:notification-read-multiple"),
            {"ids": [self.assigned.pk, self.returned.pk, self.approved.pk, self.foreign.pk]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["updated"], 2)

        self.foreign.refresh_from_db()
        self.assertEqual(self.foreign.status, NotificationStatus.UNREAD)

    def test_read_multiple_requires_ids(self):
        resp = self.client.post(reverse("core:notification-read-multiple"), {"ids": []}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_soft_delete_hides_the_row(self):
        detail_url = reverse("core:notification-detail", kwargs={"pk": self.returned.pk})
        resp = self.client.delete(detail_url)
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

        self.returned.refresh_from_db()
        self.assertEqual(self.returned.status, NotificationStatus.DELETED)
        self.assertIsNotNone(self.returned.deleted_at)

        self.assertNotIn(self.returned.pk, self.ids(self.client.get(self.list_url)))
        self.assertEqual(self.client.get(detail_url).status_code, status.HTTP_404_NOT_FOUND)

    def test_foreign_notification_is_not_found(self):
        resp = self.client.get(reverse("core:notification-detail", kwargs={"pk": self.foreign.pk}))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data["code"], "not_found")

    def test_inbox_requires_authentication(self):
        self.client.force_authenticate(None)
        resp = self.client.get(self.list_url)
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
