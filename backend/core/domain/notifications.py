"""
core.domain.notifications: Notification dispatch for workflow side effects.

Centralises notification creation so every workflow uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Runs after the transition.**  Workflow services call the dispatcher
  once their ``transaction.atomic`` block has exited, so a notification
  failure can never undo a committed transition.
* **Persist first, email second.**  The ``Notification`` row is written in
  its own savepoint.  The email is scheduled with
  ``transaction.on_commit`` so it only goes out once the row (and the
  transition before it) is durable.
* **Best effort.**  A failing insert or a failing email is logged with
  its traceback and swallowed.  The persisted row is the only record of
  whether the user was informed; there is no retry queue.

Usage::

    from core.domain.notifications import NotificationDispatcher

    NotificationDispatcher().notify(
        recipient=case_file.assigned_to,
        event_type=NotificationType.CASE_FILE_ASSIGNED,
        entity_type=NotificationEntity.CASE_FILE,
        entity_id=case_file.pk,
        metadata={"case_file": snapshot, "comments": comments},
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.conf import settings
from django.db import DatabaseError, transaction
from django.template.loader import render_to_string

from core.domain.email import get_email_sender

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → (title, message, email subject) templates ─────────
# Placeholders are filled from the metadata snapshot of the entity.
_EVENT_TEMPLATES: dict[str, tuple[str, str, str]] = {
    "case_file_assigned": (
        "New case file assigned",
        "Case file {case_number} has been assigned to you for review.",
        "New case file assigned: {case_number}",
    ),
    "case_file_approved": (
        "Case file approved",
        "Case file {case_number} has been approved.",
        "Case file approved: {case_number}",
    ),
    "case_file_rejected": (
        "Case file rejected",
        "Case file {case_number} has been rejected.",
        "Case file rejected: {case_number}",
    ),
    "case_file_returned": (
        "Case file returned",
        "Case file {case_number} has been returned for revision.",
        "Case file returned for revision: {case_number}",
    ),
    "news_pending_approval": (
        "News pending approval",
        'The news item "{title}" is waiting for your approval.',
        "News pending approval: {title}",
    ),
    "news_forwarded": (
        "News forwarded to the President",
        'The news item "{title}" was approved by the Press Director and forwarded to the President.',
        "News forwarded to the President: {title}",
    ),
    "news_published": (
        "News published",
        'The news item "{title}" has been published.',
        "News published: {title}",
    ),
    "news_rejected": (
        "News rejected",
        'The news item "{title}" has been rejected.',
        "News rejected: {title}",
    ),
    "news_court_submission": (
        "New court submission",
        'A court has submitted "{title}" for review.',
        "New court submission: {title}",
    ),
}

# ── Entity-type → email template ───────────────────────────────────
_EMAIL_TEMPLATES: dict[str, str] = {
    "case_file": "emails/case_file_notification.html",
    "news": "emails/news_notification.html",
}


class _Placeholders(dict):
    def __missing__(self, key: str) -> str:
        return ""


def _template_context(metadata: dict[str, Any]) -> _Placeholders:
    context = _Placeholders()
    for key in ("case_file", "news"):
        snapshot = metadata.get(key)
        if isinstance(snapshot, dict):
            context.update(snapshot)
    return context


class NotificationDispatcher:
    """
    Creates ``Notification`` records and triggers the matching email.

    Parameters
    ----------
    email_sender : object, optional
        Anything with ``send(to, subject, html)``.  Defaults to the sender
        configured in ``settings.NOTIFICATION_EMAIL_SENDER``.
    """

    def __init__(self, email_sender: Any | None = None) -> None:
        self._email_sender = email_sender

    @property
    def email_sender(self) -> Any:
        if self._email_sender is None:
            self._email_sender = get_email_sender()
        return self._email_sender

    def notify(
        self,
        *,
        recipient: User,
        event_type: str,
        entity_type: str,
        entity_id: int | None,
        metadata: dict[str, Any] | None = None,
        title: str | None = None,
        message: str | None = None,
    ) -> Notification | None:
        """
        Persist an unread notification for ``recipient`` and schedule its
        email.

        Returns
        -------
        Notification or None
            The created row, or ``None`` if it could not be stored.  Never
            raises for storage or email problems.
        """
        from core.models import Notification  # lazy import: avoids circular deps

        metadata = metadata or {}
        context = _template_context(metadata)
        default_title, default_message, _ = _EVENT_TEMPLATES.get(
            event_type,
            (event_type.replace("_", " ").capitalize(), "", ""),
        )

        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient=recipient,
                    type=event_type,
                    title=title or default_title.format_map(context),
                    message=message or default_message.format_map(context),
                    entity_type=entity_type,
                    entity_id=entity_id,
                    metadata=metadata,
                )
        except DatabaseError:
            logger.exception(
                "Could not store %s notification for user=%s (%s #%s)",
                event_type,
                getattr(recipient, "pk", recipient),
                entity_type,
                entity_id,
            )
            return None

        logger.info(
            "Notification %s [%s] created for user=%s",
            notification.pk,
            event_type,
            recipient.pk,
        )

        if getattr(settings, "NOTIFICATION_EMAILS_ENABLED", True):
            transaction.on_commit(lambda: self.send_email(notification))
        return notification

    def notify_many(
        self,
        *,
        recipients: Iterable[User | None],
        **kwargs: Any,
    ) -> list[Notification]:
        """
        ``notify`` each distinct recipient once.  ``None`` entries are
        skipped.
        """
        created: list[Notification] = []
        seen: set[int] = set()
        for recipient in recipients:
            if recipient is None or recipient.pk in seen:
                continue
            seen.add(recipient.pk)
            notification = self.notify(recipient=recipient, **kwargs)
            if notification is not None:
                created.append(notification)

        if not seen:
            logger.warning(
                "notify_many called with no recipients for event_type=%s",
                kwargs.get("event_type"),
            )
        return created

    def send_email(self, notification: Notification) -> bool:
        """
        Render and send the email for ``notification``.

        Returns ``True`` when the sender accepted the message.  Every
        failure (missing address, template error, transport error) is
        logged and reported as ``False``.
        """
        address = notification.recipient.email
        if not address:
            logger.warning(
                "User %s has no email address; skipping email for notification %s",
                notification.recipient_id,
                notification.pk,
            )
            return False

        try:
            subject, html = self.render_email(notification)
            self.email_sender.send(address, subject, html)
        except Exception:
            logger.exception(
                "Email for notification %s [%s] to %s failed",
                notification.pk,
                notification.type,
                address,
            )
            return False

        logger.info("Email for notification %s sent to %s", notification.pk, address)
        return True

    @staticmethod
    def render_email(notification: Notification) -> tuple[str, str]:
        """Return ``(subject, html)`` for ``notification``."""
        metadata = notification.metadata or {}
        context = _template_context(metadata)
        _, _, subject_template = _EVENT_TEMPLATES.get(
            notification.type,
            ("", "", notification.title),
        )
        subject = subject_template.format_map(context) or notification.title

        html = render_to_string(
            _EMAIL_TEMPLATES.get(notification.entity_type, "emails/generic_notification.html"),
            {
                "notification": notification,
                "recipient": notification.recipient,
                "entity": dict(context),
                "comments": metadata.get("comments", ""),
                "frontend_url": getattr(settings, "FRONTEND_URL", ""),
            },
        )
        return subject, html
