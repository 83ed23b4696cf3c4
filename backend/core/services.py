"""
Core app services: **Service Layer**.

Cross-app read helpers and the recipient-facing side of notifications.
Views delegate all business logic to the classes defined here.

Models from other apps are imported inside the methods that need them,
never at module level, so that ``core`` stays importable from every app.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from core.domain.exceptions import NotFound, ValidationFailed

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers the workflow choice enumerations and the role codes into a
    single dict for the frontend.

    Stateless: the result does not depend on the requesting user.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        from casefiles.models import ApprovalLevel, CaseFileStatus
        from core.constants import RoleCode
        from core.models import NotificationType
        from news.models import NewsStatus, NewsType

        to_list = SystemConstantsService._choices_to_list
        return {
            "case_file_statuses": to_list(CaseFileStatus),
            "approval_levels": to_list(ApprovalLevel),
            "news_types": to_list(NewsType),
            "news_statuses": to_list(NewsStatus),
            "notification_types": to_list(NotificationType),
            "roles": to_list(RoleCode),
        }

    @staticmethod
    def _choices_to_list(choices_class: type) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` class to a list of
        ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Notification Inbox Service
# ═══════════════════════════════════════════════════════════════════

class NotificationInboxService:
    """
    Listing, reading and soft-deleting the notifications of one user.

    A user can only ever reach their own rows; anything else is reported
    as ``NotFound``.  Deleted rows are hidden from every read.
    """

    def __init__(self, user: User) -> None:
        self.user = user

    def _own(self) -> QuerySet[Notification]:
        from core.models import Notification, NotificationStatus

        return Notification.objects.filter(recipient=self.user).exclude(
            status=NotificationStatus.DELETED,
        )

    def list_notifications(self, filters: dict[str, Any] | None = None) -> QuerySet[Notification]:
        """
        Most recent first.

        ``filters``: ``status`` (``unread``, ``read`` or ``all``) and ``type``.
        """
        filters = filters or {}
        qs = self._own()
        status = filters.get("status") or "all"
        if status != "all":
            qs = qs.filter(status=status)
        if filters.get("type"):
            qs = qs.filter(type=filters["type"])
        return qs.order_by("-created_at", "-pk")

    def get_notification(self, notification_id: Any) -> Notification:
        from core.models import Notification

        try:
            return self._own().get(pk=notification_id)
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Notification with id {notification_id} not found.")

    def unread_count(self) -> int:
        from core.models import NotificationStatus

        return self._own().filter(status=NotificationStatus.UNREAD).count()

    def mark_as_read(self, notification_id: Any) -> Notification:
        """Mark one notification as read.  Reading a read row is a no-op."""
        from core.models import NotificationStatus

        notification = self.get_notification(notification_id)
        if notification.status == NotificationStatus.UNREAD:
            notification.status = NotificationStatus.READ
            notification.read_at = timezone.now()
            notification.save(update_fields=["status", "read_at", "updated_at"])
        return notification

    def mark_many_as_read(self, notification_ids: Iterable[int]) -> int:
        """
        Mark the given notifications as read and return how many changed.

        Raises
        ------
        ValidationFailed
            If ``notification_ids`` is empty.
        """
        from core.models import NotificationStatus

        ids = list(dict.fromkeys(notification_ids))
        if not ids:
            raise ValidationFailed("At least one notification id is required.")

        now = timezone.now()
        updated = self._own().filter(
            pk__in=ids,
            status=NotificationStatus.UNREAD,
        ).update(status=NotificationStatus.READ, read_at=now, updated_at=now)
        logger.info("User %s marked %d notification(s) as read", self.user.pk, updated)
        return updated

    def delete_notification(self, notification_id: Any) -> None:
        """Soft-delete: the row stays, flagged ``deleted``."""
        from core.models import NotificationStatus

        with transaction.atomic():
            notification = self.get_notification(notification_id)
            notification.status = NotificationStatus.DELETED
            notification.deleted_at = timezone.now()
            notification.save(update_fields=["status", "deleted_at", "updated_at"])
        logger.info("Notification %s deleted by user=%s", notification.pk, self.user.pk)
