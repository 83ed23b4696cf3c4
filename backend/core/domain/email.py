"""
core.domain.email: Outbound email collaborator.

The notification dispatcher never talks to a mail transport directly.  It
asks for the sender configured in ``settings.NOTIFICATION_EMAIL_SENDER``
(a dotted path) and calls ``send(to, subject, html)`` on it.  Any object
with that method can be plugged in, which is how tests swap in a failing
or recording sender.

The default ``DjangoEmailSender`` goes through Django's mail framework, so
the actual transport is chosen by ``settings.EMAIL_BACKEND`` (SMTP in
production, console in development, ``locmem`` in tests).
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import strip_tags
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class DjangoEmailSender:
    """Send HTML email with a plain-text alternative through Django."""

    def send(self, to: str, subject: str, html: str) -> int:
        """
        Deliver one message.

        Returns
        -------
        int
            Number of messages sent (``1`` on success).

        Raises
        ------
        Exception
            Whatever the configured email backend raises; the caller is
            responsible for containing it.
        """
        message = EmailMultiAlternatives(
            subject=subject,
            body=strip_tags(html),
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[to],
        )
        message.attach_alternative(html, "text/html")
        sent = message.send(fail_silently=False)
        logger.debug("Email '%s' sent to %s", subject, to)
        return sent


def get_email_sender():
    """Instantiate the sender named in ``settings.NOTIFICATION_EMAIL_SENDER``."""
    return import_string(settings.NOTIFICATION_EMAIL_SENDER)()
