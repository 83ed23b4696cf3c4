"""
Accounts app serializers.

Output serializers for users and departments (also nested by the
case-file and news serializers) and the JWT login serializer.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Department, User


# ═══════════════════════════════════════════════════════════════════
#  Directory Serializers
# ═══════════════════════════════════════════════════════════════════


class DepartmentSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Department
        fields = ["id", "name", "code", "department_type"]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Compact user representation embedded in workflow payloads
    (creator, assignee, approvers, ledger actors).
    """

    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "full_name", "email", "role"]
        read_only_fields = fields

    def get_full_name(self, obj: User) -> str:
        return obj.get_full_name() or obj.username


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full profile of the authenticated user, including the workflow
    actions their role allows.
    """

    role_display = serializers.CharField(source="get_role_display", read_only=True)
    department = DepartmentSummarySerializer(read_only=True)
    allowed_actions = serializers.ListField(
        child=serializers.CharField(),
        read_only=True,
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "national_id",
            "phone_number",
            "first_name",
            "last_name",
            "role",
            "role_display",
            "department",
            "allowed_actions",
            "is_active",
            "date_joined",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``MultiFieldAuthBackend``.
    3. Injects ``role`` and ``department_id`` claims into the token.
    """

    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, National ID, Phone Number, or Email.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role
        token["department_id"] = user.department_id
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        # The backend refuses inactive users, so both cases land here.
        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


class TokenResponseSerializer(serializers.Serializer):
    """Shape of the login response (for the OpenAPI schema)."""

    access = serializers.CharField(read_only=True)
    refresh = serializers.CharField(read_only=True)
    user = UserDetailSerializer(read_only=True)
