"""
News app views.

Thin ``ViewSet`` over ``news.services``: validate with a serializer, call
the service, serialise the result.  The two ``public`` actions are the
only endpoints reachable without a token.
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    CourtSubmissionSerializer,
    NewsCreateSerializer,
    NewsDetailSerializer,
    NewsFilterSerializer,
    NewsListSerializer,
    NewsStatisticsSerializer,
    NewsTransitionSerializer,
    NewsUpdateSerializer,
    NewsWorkflowActionSerializer,
    PublicNewsFilterSerializer,
    PublicNewsSerializer,
)
from .services import NewsEditingService, NewsQueryService, NewsWorkflowService

_WORKFLOW_RESPONSES = {
    200: OpenApiResponse(response=NewsDetailSerializer, description="Transition applied."),
    400: OpenApiResponse(description="Comments missing (validation_failed)."),
    403: OpenApiResponse(description="Wrong role or not the author (forbidden)."),
    404: OpenApiResponse(description="News item or approver not found (not_found)."),
    409: OpenApiResponse(description="Wrong state (invalid_state) or concurrent change (conflict)."),
}

_PUBLIC_ACTIONS = ("public", "public_detail")


class NewsViewSet(viewsets.ViewSet):
    """
    News items and their publication workflow.

    Standard endpoints
    ------------------
    GET    /api/news/                           list (press office sees all)
    POST   /api/news/                           create a draft
    GET    /api/news/{id}/                      retrieve
    PATCH  /api/news/{id}/                      edit a draft
    DELETE /api/news/{id}/                      delete a draft

    Workflow endpoints
    ------------------
    POST   /api/news/{id}/submit-to-director/
    POST   /api/news/{id}/approve-director/
    POST   /api/news/{id}/approve-president/
    POST   /api/news/{id}/reject/
    GET    /api/news/{id}/history/
    POST   /api/news/court-submission/
    GET    /api/news/statistics/

    Public endpoints
    ----------------
    GET    /api/news/public/
    GET    /api/news/public/{slug}/
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_permissions(self):
        if self.action in _PUBLIC_ACTIONS:
            return [AllowAny()]
        return super().get_permissions()

    # ─── Standard endpoints ─────────────────────────────────────────

    @extend_schema(
        summary="List news items",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by status."),
            OpenApiParameter(name="type", type=str, location=OpenApiParameter.QUERY, description="Filter by type."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Search title and subtitle."),
        ],
        responses={200: NewsListSerializer(many=True)},
        tags=["News"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = NewsFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        queryset = NewsQueryService.get_filtered_queryset(
            requesting_user=request.user,
            filters=filter_serializer.validated_data,
        )
        return Response(NewsListSerializer(queryset, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create a news item",
        description="Write a Draft. Press Technicians and the Press Director only.",
        request=NewsCreateSerializer,
        responses={
            201: OpenApiResponse(response=NewsDetailSerializer, description="Draft created."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Caller is not in the press office."),
        },
        tags=["News"],
    )
    def create(self, request: Request) -> Response:
        serializer = NewsCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        news = NewsEditingService.create_news(serializer.validated_data, request.user)
        return Response(
            NewsDetailSerializer(news, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Retrieve a news item",
        responses={200: NewsDetailSerializer, 404: OpenApiResponse(description="Not found or not visible.")},
        tags=["News"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        news = NewsQueryService.get_news_detail(request.user, pk)
        return Response(NewsDetailSerializer(news, context={"request": request}).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Edit a draft",
        request=NewsUpdateSerializer,
        responses={
            200: NewsDetailSerializer,
            403: OpenApiResponse(description="Not allowed to edit."),
            409: OpenApiResponse(description="Not a draft, or stale version."),
        },
        tags=["News"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = NewsUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        news = NewsEditingService.update_news(pk, serializer.validated_data, request.user)
        return Response(NewsDetailSerializer(news, context={"request": request}).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Delete a draft",
        responses={
            204: OpenApiResponse(description="Deleted."),
            403: OpenApiResponse(description="Not allowed to delete."),
            409: OpenApiResponse(description="Not a draft."),
        },
        tags=["News"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        NewsEditingService.delete_news(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ─── Workflow endpoints ─────────────────────────────────────────

    def _run_transition(self, request: Request, pk: str, operation_name: str) -> Response:
        serializer = NewsWorkflowActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        operation = getattr(NewsWorkflowService(), operation_name)
        news = operation(
            pk,
            request.user,
            comments=serializer.validated_data.get("comments", ""),
            expected_version=serializer.validated_data.get("version"),
        )
        return Response(NewsDetailSerializer(news, context={"request": request}).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Submit to the Press Director",
        description=(
            "The author sends a Draft for review. When the author is the Press Director "
            "the submission counts as the director's approval."
        ),
        request=NewsWorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["News – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="submit-to-director")
    def submit_to_director(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "submit_to_director")

    @extend_schema(
        summary="Press Director approval",
        description="Advisories and communiques are published; notices go to the President of the Council.",
        request=NewsWorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["News – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="approve-director")
    def approve_director(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "approve_by_director")

    @extend_schema(
        summary="President approval",
        description="Publish a notice already approved by the Press Director.",
        request=NewsWorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["News – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="approve-president")
    def approve_president(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "approve_by_president")

    @extend_schema(
        summary="Reject",
        description="Send a pending item back to Draft. Comments are required.",
        request=NewsWorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["News – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "reject")

    @extend_schema(
        summary="Approval history",
        responses={200: NewsTransitionSerializer(many=True)},
        tags=["News – Workflow"],
    )
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request: Request, pk: str = None) -> Response:
        transitions = NewsQueryService.get_approval_history(request.user, pk)
        return Response(NewsTransitionSerializer(transitions, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Court submission",
        description="A Judge or Appeals President files an advisory or communique for the Press Director.",
        request=CourtSubmissionSerializer,
        responses={
            201: OpenApiResponse(response=NewsDetailSerializer, description="Submitted."),
            400: OpenApiResponse(description="Notices cannot be submitted by courts."),
            403: OpenApiResponse(description="Caller is not a judge or appeals president."),
            404: OpenApiResponse(description="No Press Director."),
        },
        tags=["News – Workflow"],
    )
    @action(detail=False, methods=["post"], url_path="court-submission")
    def court_submission(self, request: Request) -> Response:
        serializer = CourtSubmissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        news = NewsWorkflowService().submit_from_court(serializer.validated_data, request.user)
        return Response(
            NewsDetailSerializer(news, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="News statistics",
        responses={200: NewsStatisticsSerializer},
        tags=["News"],
    )
    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request: Request) -> Response:
        data = NewsQueryService.get_statistics(request.user)
        return Response(NewsStatisticsSerializer(data).data, status=status.HTTP_200_OK)

    # ─── Public endpoints ───────────────────────────────────────────

    @extend_schema(
        summary="Published news",
        parameters=[
            OpenApiParameter(name="type", type=str, location=OpenApiParameter.QUERY, description="Filter by type."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Search title, subtitle and content."),
        ],
        responses={200: PublicNewsSerializer(many=True)},
        tags=["News – Public"],
        auth=[],
    )
    @action(detail=False, methods=["get"], url_path="public")
    def public(self, request: Request) -> Response:
        filter_serializer = PublicNewsFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        queryset = NewsQueryService.get_public_queryset(filter_serializer.validated_data)
        return Response(
            PublicNewsSerializer(queryset, many=True, context={"request": request}).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Published news item by slug",
        responses={200: PublicNewsSerializer, 404: OpenApiResponse(description="No published item with this slug.")},
        tags=["News – Public"],
        auth=[],
    )
    @action(detail=False, methods=["get"], url_path=r"public/(?P<slug>[-\w]+)")
    def public_detail(self, request: Request, slug: str = None) -> Response:
        news = NewsQueryService.get_published_by_slug(slug)
        return Response(PublicNewsSerializer(news, context={"request": request}).data, status=status.HTTP_200_OK)
