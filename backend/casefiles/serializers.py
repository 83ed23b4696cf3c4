"""
Case files app serializers.

Input serializers only validate the request shape; every business rule
(who may act, in which state, with which comments) is enforced by
``casefiles.services``.  Output serializers are plain ``ModelSerializer``
classes with nested user summaries.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import FileExtensionValidator
from rest_framework import serializers

from accounts.models import Department
from accounts.serializers import DepartmentSummarySerializer, UserSummarySerializer
from core.constants import CASE_FILE_DOCUMENT_EXTENSIONS, CASE_FILE_DOCUMENT_MAX_BYTES

from .models import (
    ApprovalLevel,
    CaseFile,
    CaseFileDocument,
    CaseFileStatus,
    CaseFileTransition,
)


# ═══════════════════════════════════════════════════════════════════
#  Input Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFileFilterSerializer(serializers.Serializer):
    """Query parameters accepted by the list endpoint."""

    status = serializers.ChoiceField(choices=CaseFileStatus.choices, required=False)
    current_level = serializers.ChoiceField(choices=ApprovalLevel.choices, required=False)
    department = serializers.IntegerField(required=False, min_value=1)
    search = serializers.CharField(required=False, allow_blank=True, max_length=255)


class CaseFileCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, min_length=3)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    department = serializers.PrimaryKeyRelatedField(
        queryset=Department.objects.filter(is_active=True),
        required=False,
        help_text="Defaults to the judge's own department.",
    )


class CaseFileUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, min_length=3, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Version the client last saw; a mismatch yields 409.",
    )


class CaseFileDocumentUploadSerializer(serializers.Serializer):
    """
    Validates ``POST /api/case-files/{id}/documents/`` (multipart/form-data).

    ``title`` defaults to the uploaded file name.
    """

    title = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    file = serializers.FileField(
        validators=[FileExtensionValidator(allowed_extensions=list(CASE_FILE_DOCUMENT_EXTENSIONS))],
    )

    def validate_file(self, value):
        limit = getattr(settings, "CASE_FILE_DOCUMENT_MAX_BYTES", CASE_FILE_DOCUMENT_MAX_BYTES)
        if value.size > limit:
            raise serializers.ValidationError(f"Documents may not exceed {limit // (1024 * 1024)} MB.")
        return value


class WorkflowActionSerializer(serializers.Serializer):
    """
    Body of submit / approve / reject / return.

    ``comments`` is optional here because whether it is required depends
    on the action; reject and return answer ``validation_failed`` without it.
    """

    comments = serializers.CharField(required=False, allow_blank=True, default="")
    version = serializers.IntegerField(
        required=False,
        min_value=1,
        help_text="Version the client last saw; a mismatch yields 409.",
    )


# ═══════════════════════════════════════════════════════════════════
#  Output Serializers
# ═══════════════════════════════════════════════════════════════════


class CaseFileDocumentSerializer(serializers.ModelSerializer):
    uploaded_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = CaseFileDocument
        fields = ["id", "title", "file", "uploaded_by", "created_at"]
        read_only_fields = fields


class CaseFileListSerializer(serializers.ModelSerializer):
    assigned_to = UserSummarySerializer(read_only=True)
    department_name = serializers.CharField(source="department.name", read_only=True)

    class Meta:
        model = CaseFile
        fields = [
            "id",
            "case_number",
            "title",
            "status",
            "current_level",
            "department",
            "department_name",
            "assigned_to",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CaseFileDetailSerializer(serializers.ModelSerializer):
    department = DepartmentSummarySerializer(read_only=True)
    created_by = UserSummarySerializer(read_only=True)
    assigned_to = UserSummarySerializer(read_only=True)
    documents = CaseFileDocumentSerializer(many=True, read_only=True)

    class Meta:
        model = CaseFile
        fields = [
            "id",
            "case_number",
            "title",
            "description",
            "status",
            "current_level",
            "department",
            "created_by",
            "assigned_to",
            "documents",
            "version",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CaseFileTransitionSerializer(serializers.ModelSerializer):
    from_user = UserSummarySerializer(read_only=True)
    to_user = UserSummarySerializer(read_only=True)

    class Meta:
        model = CaseFileTransition
        fields = [
            "id",
            "action",
            "from_level",
            "to_level",
            "from_user",
            "to_user",
            "comments",
            "created_at",
        ]
        read_only_fields = fields


class CaseFileStatisticsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    pending_for_me = serializers.IntegerField()
    by_status = serializers.DictField(child=serializers.IntegerField())
