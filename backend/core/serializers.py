"""
Core app serializers.

Response shapes for the system constants endpoint and the notification
inbox.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import Notification, NotificationStatus, NotificationType


# ════════════════════════════════════════════════════════════════════
#  System Constants / Enums
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single key-label pair representing one choice/enum option.

    Example::

        {"value": "pending_approval", "label": "Pending Approval"}
    """

    value = serializers.CharField(
        help_text="Machine-readable value to send in API requests.",
    )
    label = serializers.CharField(
        help_text="Human-readable display label for the UI.",
    )


class SystemConstantsSerializer(serializers.Serializer):
    """
    Response of ``GET /api/core/constants/``.

    Response shape::

        {
            "case_file_statuses": [{"value": "draft", "label": "Draft"}, ...],
            "approval_levels": [...],
            "news_types": [...],
            "news_statuses": [...],
            "notification_types": [...],
            "roles": [...]
        }
    """

    case_file_statuses = ChoiceItemSerializer(many=True)
    approval_levels = ChoiceItemSerializer(many=True)
    news_types = ChoiceItemSerializer(many=True)
    news_statuses = ChoiceItemSerializer(many=True)
    notification_types = ChoiceItemSerializer(many=True)
    roles = ChoiceItemSerializer(many=True)


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[NotificationStatus.UNREAD, NotificationStatus.READ, "all"],
        required=False,
        default="all",
    )
    type = serializers.ChoiceField(choices=NotificationType.choices, required=False)


class NotificationReadMultipleSerializer(serializers.Serializer):
    ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        help_text="Primary keys of the notifications to mark as read.",
    )


class NotificationSerializer(serializers.ModelSerializer):
    """Read-only representation of one inbox row."""

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "message",
            "status",
            "entity_type",
            "entity_id",
            "metadata",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields


class UnreadCountSerializer(serializers.Serializer):
    unread = serializers.IntegerField()


class ReadMultipleResultSerializer(serializers.Serializer):
    updated = serializers.IntegerField()
