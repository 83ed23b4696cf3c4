"""
Core app models.

Provides abstract base models and shared utilities used across the project:

- ``TimeStampedModel``: ``created_at`` / ``updated_at`` for every table.
- ``LedgerEntry``: append-only base for the workflow transition ledgers.
- ``Notification``: per-user inbox record created by the workflows.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.domain.exceptions import Conflict


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


# ═══════════════════════════════════════════════════════════════════
#  Ledger
# ═══════════════════════════════════════════════════════════════════


class LedgerQuerySet(models.QuerySet):
    """
    Read side of a transition ledger.

    Concrete ledgers point a foreign key at the aggregate root and name
    that field in the ``entity_field`` class attribute.
    """

    def for_entity(self, entity_id: int) -> LedgerQuerySet:
        """All rows for one entity, oldest first."""
        field = self.model.entity_field
        return self.filter(**{f"{field}_id": entity_id}).order_by("created_at", "pk")

    def history(self, entity_id: int) -> LedgerQuerySet:
        """All rows for one entity, newest first."""
        return self.for_entity(entity_id).order_by("-created_at", "-pk")

    def find_latest_matching(self, entity_id: int, **criteria):
        """
        Return the most recent row for ``entity_id`` matching ``criteria``.

        Rows are scanned in reverse-chronological order and the first match
        wins.  Returns ``None`` when nothing matches; callers that depend on
        a match must raise instead of guessing.
        """
        return self.history(entity_id).filter(**criteria).first()


class LedgerEntry(models.Model):
    """
    Abstract base for append-only transition records.

    A row is written once, in the same transaction as the entity mutation
    it describes, and never updated or deleted individually.  Rows go away
    only through cascade deletion of the owning aggregate.
    """

    entity_field: str = ""

    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
        verbose_name="From User",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="To User",
    )
    comments = models.TextField(blank=True, default="", verbose_name="Comments")
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name="Created At",
    )

    objects = LedgerQuerySet.as_manager()

    class Meta:
        abstract = True
        ordering = ["created_at", "id"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise Conflict(f"{type(self).__name__} rows are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise Conflict(f"{type(self).__name__} rows cannot be deleted.")


# ═══════════════════════════════════════════════════════════════════
#  Notifications
# ═══════════════════════════════════════════════════════════════════


class NotificationType(models.TextChoices):
    CASE_FILE_ASSIGNED = "case_file_assigned", "Case File Assigned"
    CASE_FILE_APPROVED = "case_file_approved", "Case File Approved"
    CASE_FILE_REJECTED = "case_file_rejected", "Case File Rejected"
    CASE_FILE_RETURNED = "case_file_returned", "Case File Returned"
    NEWS_PENDING_APPROVAL = "news_pending_approval", "News Pending Approval"
    NEWS_FORWARDED = "news_forwarded", "News Forwarded"
    NEWS_PUBLISHED = "news_published", "News Published"
    NEWS_REJECTED = "news_rejected", "News Rejected"
    NEWS_COURT_SUBMISSION = "news_court_submission", "Court Submission"


class NotificationStatus(models.TextChoices):
    UNREAD = "unread", "Unread"
    READ = "read", "Read"
    DELETED = "deleted", "Deleted"


class NotificationEntity(models.TextChoices):
    CASE_FILE = "case_file", "Case File"
    NEWS = "news", "News"


class Notification(TimeStampedModel):
    """
    Inbox record telling a user that a workflow moved something to them
    or finished something of theirs.

    The related entity is stored as a plain ``(entity_type, entity_id)``
    pair so that the notification survives deletion of the entity.
    ``metadata`` carries a denormalised snapshot used to render emails.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    type = models.CharField(
        max_length=40,
        choices=NotificationType.choices,
        verbose_name="Type",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    status = models.CharField(
        max_length=10,
        choices=NotificationStatus.choices,
        default=NotificationStatus.UNREAD,
        verbose_name="Status",
    )
    entity_type = models.CharField(
        max_length=20,
        choices=NotificationEntity.choices,
        blank=True,
        verbose_name="Entity Type",
    )
    entity_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Entity ID",
    )
    metadata = models.JSONField(default=dict, blank=True, verbose_name="Metadata")
    read_at = models.DateTimeField(null=True, blank=True, verbose_name="Read At")
    deleted_at = models.DateTimeField(null=True, blank=True, verbose_name="Deleted At")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "status"]),
            models.Index(fields=["entity_type", "entity_id"]),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"
