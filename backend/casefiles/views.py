"""
Case files app views.

Architecture: Views are intentionally thin.  Every view method:
  1. Parses / validates input via a serializer.
  2. Delegates to the appropriate service class.
  3. Serialises the result and returns a DRF ``Response``.

Domain errors raised by the services (``PermissionDenied``,
``InvalidTransition``, ``ValidationFailed``, ...) are turned into
``{"code", "detail"}`` responses by the global exception handler.
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
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import (
    CaseFileCreateSerializer,
    CaseFileDetailSerializer,
    CaseFileDocumentSerializer,
    CaseFileDocumentUploadSerializer,
    CaseFileFilterSerializer,
    CaseFileListSerializer,
    CaseFileStatisticsSerializer,
    CaseFileTransitionSerializer,
    CaseFileUpdateSerializer,
    WorkflowActionSerializer,
)
from .services import (
    CaseFileCreationService,
    CaseFileDocumentService,
    CaseFileEditingService,
    CaseFileQueryService,
    CaseFileWorkflowService,
)

_WORKFLOW_RESPONSES = {
    200: OpenApiResponse(response=CaseFileDetailSerializer, description="Transition applied."),
    400: OpenApiResponse(description="Comments missing (validation_failed)."),
    403: OpenApiResponse(description="Not the assignee or wrong role (forbidden)."),
    404: OpenApiResponse(description="Case file or next approver not found (not_found)."),
    409: OpenApiResponse(description="Wrong state (invalid_state) or concurrent change (conflict)."),
}


class CaseFileViewSet(viewsets.ViewSet):
    """
    Case files and their approval workflow.

    Standard endpoints
    ------------------
    GET    /api/case-files/                 list (scoped by role)
    POST   /api/case-files/                 create (Judge)
    GET    /api/case-files/{id}/            retrieve
    PATCH  /api/case-files/{id}/            edit title/description
    DELETE /api/case-files/{id}/            delete a draft

    Workflow endpoints
    ------------------
    POST   /api/case-files/{id}/submit/     Judge → Appeals President
    POST   /api/case-files/{id}/approve/    approve at the current level
    POST   /api/case-files/{id}/reject/     reject back to the creator
    POST   /api/case-files/{id}/return/     return one step for revision
    GET    /api/case-files/{id}/history/    approval ledger, newest first
    GET    /api/case-files/statistics/      dashboard counters

    Document endpoints
    ------------------
    GET    /api/case-files/{id}/documents/              list attached documents
    POST   /api/case-files/{id}/documents/              upload (multipart)
    GET    /api/case-files/{id}/documents/{doc_id}/     one document
    DELETE /api/case-files/{id}/documents/{doc_id}/     remove a document
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    # ─── Standard endpoints ─────────────────────────────────────────

    @extend_schema(
        summary="List case files",
        description="Case files visible to the authenticated user, newest first.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by status."),
            OpenApiParameter(name="current_level", type=str, location=OpenApiParameter.QUERY, description="Filter by approval level."),
            OpenApiParameter(name="department", type=int, location=OpenApiParameter.QUERY, description="Filter by department PK."),
            OpenApiParameter(name="search", type=str, location=OpenApiParameter.QUERY, description="Search case number or title."),
        ],
        responses={200: CaseFileListSerializer(many=True)},
        tags=["Case Files"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = CaseFileFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        queryset = CaseFileQueryService.get_filtered_queryset(
            requesting_user=request.user,
            filters=filter_serializer.validated_data,
        )
        serializer = CaseFileListSerializer(queryset, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Create a case file",
        description="Open a case file in Draft. Judges only; the case number is assigned by the server.",
        request=CaseFileCreateSerializer,
        responses={
            201: OpenApiResponse(response=CaseFileDetailSerializer, description="Case file created."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Caller is not a judge."),
        },
        tags=["Case Files"],
    )
    def create(self, request: Request) -> Response:
        serializer = CaseFileCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        case_file = CaseFileCreationService.create_case_file(
            validated_data=serializer.validated_data,
            requesting_user=request.user,
        )
        return Response(
            CaseFileDetailSerializer(case_file, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Retrieve a case file",
        responses={
            200: CaseFileDetailSerializer,
            404: OpenApiResponse(description="Not found or not visible."),
        },
        tags=["Case Files"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        case_file = CaseFileQueryService.get_case_file_detail(request.user, pk)
        serializer = CaseFileDetailSerializer(case_file, context={"request": request})
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Edit a case file",
        description="Edit title/description while the case file is Draft or Rejected.",
        request=CaseFileUpdateSerializer,
        responses={
            200: CaseFileDetailSerializer,
            403: OpenApiResponse(description="Not allowed to edit."),
            409: OpenApiResponse(description="Not editable in the current state, or stale version."),
        },
        tags=["Case Files"],
    )
    def partial_update(self, request: Request, pk: str = None) -> Response:
        serializer = CaseFileUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        case_file = CaseFileEditingService.update_case_file(
            case_file_id=pk,
            validated_data=serializer.validated_data,
            requesting_user=request.user,
        )
        return Response(
            CaseFileDetailSerializer(case_file, context={"request": request}).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Delete a draft case file",
        responses={
            204: OpenApiResponse(description="Deleted."),
            403: OpenApiResponse(description="Only the creator or an admin may delete."),
            409: OpenApiResponse(description="Case file is not a draft."),
        },
        tags=["Case Files"],
    )
    def destroy(self, request: Request, pk: str = None) -> Response:
        CaseFileEditingService.delete_case_file(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ─── Workflow endpoints ─────────────────────────────────────────

    def _run_transition(self, request: Request, pk: str, operation_name: str) -> Response:
        serializer = WorkflowActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        operation = getattr(CaseFileWorkflowService(), operation_name)
        case_file = operation(
            pk,
            request.user,
            comments=serializer.validated_data.get("comments", ""),
            expected_version=serializer.validated_data.get("version"),
        )
        return Response(
            CaseFileDetailSerializer(case_file, context={"request": request}).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        summary="Submit for approval",
        description="The assigned judge sends a Draft or Rejected case file to the Appeals President of its department.",
        request=WorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["Case Files – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="submit")
    def submit(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "submit")

    @extend_schema(
        summary="Approve",
        description=(
            "Appeals President: forward to the Secretary General. "
            "Secretary General: final approval."
        ),
        request=WorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["Case Files – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "approve")

    @extend_schema(
        summary="Reject",
        description="Send the case file back to its creator as Rejected. Comments are required.",
        request=WorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["Case Files – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "reject")

    @extend_schema(
        summary="Return for revision",
        description=(
            "Send the case file one level back as Draft: from the Secretary General "
            "to the forwarding Appeals President, from the Appeals President to the judge. "
            "Comments are required."
        ),
        request=WorkflowActionSerializer,
        responses=_WORKFLOW_RESPONSES,
        tags=["Case Files – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="return", url_name="return")
    def return_for_revision(self, request: Request, pk: str = None) -> Response:
        return self._run_transition(request, pk, "return_for_revision")

    @extend_schema(
        summary="Approval history",
        responses={200: CaseFileTransitionSerializer(many=True)},
        tags=["Case Files – Workflow"],
    )
    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request: Request, pk: str = None) -> Response:
        transitions = CaseFileQueryService.get_approval_history(request.user, pk)
        serializer = CaseFileTransitionSerializer(transitions, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Case file statistics",
        responses={200: CaseFileStatisticsSerializer},
        tags=["Case Files"],
    )
    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request: Request) -> Response:
        data = CaseFileQueryService.get_statistics(request.user)
        return Response(CaseFileStatisticsSerializer(data).data, status=status.HTTP_200_OK)

    # ─── Document endpoints ─────────────────────────────────────────

    @extend_schema(
        summary="List or upload documents",
        description=(
            "GET: documents attached to a visible case file.\n"
            "POST: upload a PDF/DOC/DOCX (multipart/form-data) while the case file "
            "is Draft or Rejected."
        ),
        request=CaseFileDocumentUploadSerializer,
        responses={
            200: OpenApiResponse(response=CaseFileDocumentSerializer(many=True), description="Document list."),
            201: OpenApiResponse(response=CaseFileDocumentSerializer, description="Document uploaded."),
            400: OpenApiResponse(description="Missing file, wrong format or too large."),
            403: OpenApiResponse(description="Not allowed to change documents."),
            409: OpenApiResponse(description="Case file is not Draft or Rejected."),
        },
        tags=["Case Files – Documents"],
    )
    @action(detail=True, methods=["get", "post"], url_path="documents")
    def documents(self, request: Request, pk: str = None) -> Response:
        if request.method == "GET":
            documents = CaseFileDocumentService.list_documents(request.user, pk)
            serializer = CaseFileDocumentSerializer(documents, many=True, context={"request": request})
            return Response(serializer.data, status=status.HTTP_200_OK)

        serializer = CaseFileDocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        document = CaseFileDocumentService.upload_document(pk, serializer.validated_data, request.user)
        return Response(
            CaseFileDocumentSerializer(document, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        summary="Retrieve or delete a document",
        responses={
            200: CaseFileDocumentSerializer,
            204: OpenApiResponse(description="Deleted; the stored file is removed after commit."),
            403: OpenApiResponse(description="Not allowed to change documents."),
            404: OpenApiResponse(description="Case file or document not found."),
            409: OpenApiResponse(description="Case file is not Draft or Rejected."),
        },
        tags=["Case Files – Documents"],
    )
    @action(
        detail=True,
        methods=["get", "delete"],
        url_path=r"documents/(?P<document_pk>[^/.]+)",
        url_name="document-detail",
    )
    def document_detail(self, request: Request, pk: str = None, document_pk: str = None) -> Response:
        if request.method == "GET":
            document = CaseFileDocumentService.get_document(request.user, pk, document_pk)
            return Response(
                CaseFileDocumentSerializer(document, context={"request": request}).data,
                status=status.HTTP_200_OK,
            )

        CaseFileDocumentService.delete_document(pk, document_pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
