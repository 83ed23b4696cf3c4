"""
News app serializers.

Input serializers validate request shape only; who may write, review or
publish is decided by ``news.services``.
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.serializers import UserSummarySerializer

from .models import NewsItem, NewsStatus, NewsTransition, NewsType


# ═══════════════════════════════════════════════════════════════════
#  Input Serializers
# ═══════════════════════════════════════════════════════════════════


class NewsFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=NewsStatus.choices, required=False)
    type = serializers.ChoiceField(choices=NewsType.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=255)


class PublicNewsFilterSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=NewsType.choices, required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=255)


class NewsCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, min_length=3)
    subtitle = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    content = serializers.CharField()
    type = serializers.ChoiceField(choices=NewsType.choices)
    image = serializers.FileField(required=False, allow_null=True)


class NewsUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, min_length=3, required=False)
    subtitle = serializers.CharField(max_length=500, required=False, allow_blank=True)
    content = serializers.CharField(required=False)
    type = serializers.ChoiceField(choices=NewsType.choices, required=False)
    image = serializers.FileField(required=False)
    remove_image = serializers.BooleanField(required=False, default=False)
    version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Version the client last saw; a mismatch yields 409.",
    )

    def validate(self, attrs):
        if attrs.get("image") is not None and attrs.get("remove_image"):
            raise serializers.ValidationError("Send either a new image or remove_image, not both.")
        return attrs


class NewsWorkflowActionSerializer(serializers.Serializer):
    """Body of submit / approve / reject.  Reject requires ``comments``."""

    comments = serializers.CharField(required=False, allow_blank=True, default="")
    version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Version the client last saw; a mismatch yields 409.",
    )


class CourtSubmissionSerializer(serializers.Serializer):
    """
    A court's advisory or communique.  ``type`` accepts every news type so
    that a notice is refused by the service with ``validation_failed``.
    """

    title = serializers.CharField(max_length=255, min_length=3)
    subtitle = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    content = serializers.CharField()
    type = serializers.ChoiceField(choices=NewsType.choices)
    image = serializers.FileField(required=False, allow_null=True)
    comments = serializers.CharField(required=False, allow_blank=True, default="")


# ═══════════════════════════════════════════════════════════════════
#  Output Serializers
# ═══════════════════════════════════════════════════════════════════


class NewsListSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)

    class Meta:
        model = NewsItem
        fields = [
            "id",
            "title",
            "subtitle",
            "slug",
            "type",
            "status",
            "author",
            "published_at",
            "version",
            "created_at",
        ]
        read_only_fields = fields


class NewsDetailSerializer(serializers.ModelSerializer):
    author = UserSummarySerializer(read_only=True)
    approved_by_director = UserSummarySerializer(read_only=True)
    approved_by_president = UserSummarySerializer(read_only=True)

    class Meta:
        model = NewsItem
        fields = [
            "id",
            "title",
            "subtitle",
            "slug",
            "content",
            "type",
            "status",
            "image",
            "author",
            "approved_by_director",
            "approved_by_president",
            "published_at",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PublicNewsSerializer(serializers.ModelSerializer):
    """What anonymous visitors of the public site see."""

    author_name = serializers.CharField(source="author.get_full_name", read_only=True)

    class Meta:
        model = NewsItem
        fields = [
            "title",
            "subtitle",
            "slug",
            "content",
            "type",
            "image",
            "author_name",
            "published_at",
        ]
        read_only_fields = fields


class NewsTransitionSerializer(serializers.ModelSerializer):
    from_user = UserSummarySerializer(read_only=True)
    to_user = UserSummarySerializer(read_only=True)

    class Meta:
        model = NewsTransition
        fields = [
            "id",
            "action",
            "from_status",
            "to_status",
            "from_user",
            "to_user",
            "comments",
            "created_at",
        ]
        read_only_fields = fields


class NewsStatisticsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    published_this_month = serializers.IntegerField()
    by_status = serializers.DictField(child=serializers.IntegerField())
    by_type = serializers.DictField(child=serializers.IntegerField())
