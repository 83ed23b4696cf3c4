"""
Core app views: **Thin Views**.

Each view delegates to the corresponding service in ``core.services`` and
only validates input and serialises output.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    NotificationFilterSerializer,
    NotificationReadMultipleSerializer,
    NotificationSerializer,
    ReadMultipleResultSerializer,
    SystemConstantsSerializer,
    UnreadCountSerializer,
)
from .services import NotificationInboxService, SystemConstantsService


class SystemConstantsView(APIView):
    """
    **GET /api/core/constants/**

    Workflow choice enumerations and role codes for client dropdowns.
    Public configuration data, so no authentication is required.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="System constants",
        description="Workflow choice enumerations and role codes as value/label lists.",
        responses={200: OpenApiResponse(response=SystemConstantsSerializer, description="System constants.")},
        tags=["System"],
        auth=[],
    )
    def get(self, request: Request) -> Response:
        data = SystemConstantsService.get_constants()
        return Response(SystemConstantsSerializer(data).data, status=status.HTTP_200_OK)


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API**: the authenticated user's inbox.

    Endpoints
    ---------
    GET    /api/core/notifications/                 → list (deleted rows hidden)
    GET    /api/core/notifications/{id}/            → retrieve
    DELETE /api/core/notifications/{id}/            → soft delete
    POST   /api/core/notifications/{id}/read/       → mark one as read
    POST   /api/core/notifications/read-multiple/   → mark several as read
    GET    /api/core/notifications/unread-count/    → unread counter
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY,
                             description="unread, read or all (default)."),
            OpenApiParameter(name="type", type=str, location=OpenApiParameter.QUERY,
                             description="Filter by notification type."),
        ],
        responses={200: NotificationSerializer(many=True)},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = NotificationFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        notifications = NotificationInboxService(request.user).list_notifications(
            filter_serializer.validated_data,
        )
        return Response(NotificationSerializer(notifications, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Retrieve a notification",
        responses={200: NotificationSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Notifications"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        notification = NotificationInboxService(request.user).get_notification(pk)
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a notification",
        responses={204: OpenApiResponse(description="Deleted."), 404: OpenApiResponse(description="Not found.")},
        tags=["Notifications"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        NotificationInboxService(request.user).delete_notification(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        summary="Mark notification as read",
        request=None,
        responses={200: NotificationSerializer, 404: OpenApiResponse(description="Not found.")},
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: str = None) -> Response:
        notification = NotificationInboxService(request.user).mark_as_read(pk)
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark several notifications as read",
        request=NotificationReadMultipleSerializer,
        responses={200: ReadMultipleResultSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["post"], url_path="read-multiple")
    def read_multiple(self, request: Request) -> Response:
        serializer = NotificationReadMultipleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        updated = NotificationInboxService(request.user).mark_many_as_read(serializer.validated_data["ids"])
        return Response(ReadMultipleResultSerializer({"updated": updated}).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Unread notification count",
        responses={200: UnreadCountSerializer},
        tags=["Notifications"],
    )
    @action(detail=False, methods=["get"], url_path="unread-count")
    def unread_count(self, request: Request) -> Response:
        count = NotificationInboxService(request.user).unread_count()
        return Response(UnreadCountSerializer({"unread": count}).data, status=status.HTTP_200_OK)
