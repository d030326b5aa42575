"""
Reports app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

Domain exceptions raised by services are translated to HTTP responses by
``core.domain.exception_handler``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from accounts.views import citizen_id_for

from .serializers import (
    ReportCreateSerializer,
    ReportFilterSerializer,
    ReportSerializer,
    ReportStatusUpdateSerializer,
)
from .services import (
    ReportCreationService,
    ReportQueryService,
    ReportWorkflowService,
)


class ReportViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the reports app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined.  Role checks for status changes happen in the
    service layer via the transition table, never in the view.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List reports",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by report status."),
        ],
        responses={200: OpenApiResponse(response=ReportSerializer(many=True), description="Reports.")},
        tags=["Reports"],
    )
    def list(self, request: Request) -> Response:
        """
        GET /api/reports/
        """
        filters = ReportFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = ReportQueryService.by_status(filters.validated_data.get("status"))
        return Response(ReportSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="File a new report",
        description=(
            "Create a report in Pending Approval. photo_ids are staged uploads "
            "(1 to 3) that get moved to permanent storage."
        ),
        request=ReportCreateSerializer,
        responses={
            201: OpenApiResponse(response=ReportSerializer, description="Report created."),
            400: OpenApiResponse(description="Validation error."),
            404: OpenApiResponse(description="Unknown citizen or category."),
            502: OpenApiResponse(description="Photos could not be processed."),
        },
        tags=["Reports"],
    )
    def create(self, request: Request) -> Response:
        """
        POST /api/reports/
        """
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportCreationService.create_report(
            serializer.validated_data,
            citizen_id_for(request.user),
        )
        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve a report",
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Report."),
            404: OpenApiResponse(description="Not found."),
        },
        tags=["Reports"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        """
        GET /api/reports/{id}/
        """
        report = ReportQueryService.get_report(pk)
        return Response(ReportSerializer(report).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Reports assigned to me",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by report status."),
        ],
        responses={200: OpenApiResponse(response=ReportSerializer(many=True), description="Reports.")},
        tags=["Reports"],
    )
    @action(detail=False, methods=["get"], url_path="assigned")
    def assigned(self, request: Request) -> Response:
        """
        GET /api/reports/assigned/
        """
        filters = ReportFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = ReportQueryService.assigned_to(request.user, filters.validated_data.get("status"))
        return Response(ReportSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Reports I filed",
        responses={200: OpenApiResponse(response=ReportSerializer(many=True), description="Reports.")},
        tags=["Reports"],
    )
    @action(detail=False, methods=["get"], url_path="mine")
    def mine(self, request: Request) -> Response:
        """
        GET /api/reports/mine/
        """
        qs = ReportQueryService.filed_by(citizen_id_for(request.user))
        return Response(ReportSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Reports handled by my office",
        description="Reports whose category maps to a role in the caller's office.",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by report status."),
        ],
        responses={200: OpenApiResponse(response=ReportSerializer(many=True), description="Reports.")},
        tags=["Reports"],
    )
    @action(detail=False, methods=["get"], url_path="by-office")
    def by_office(self, request: Request) -> Response:
        """
        GET /api/reports/by-office/
        """
        filters = ReportFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = ReportQueryService.by_office(request.user, filters.validated_data.get("status"))
        return Response(ReportSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Change report status",
        description=(
            "Move a report along its lifecycle. Approving (status=assigned) "
            "routes the report to the least-loaded officer of the responsible role."
        ),
        request=ReportStatusUpdateSerializer,
        responses={
            200: OpenApiResponse(response=ReportSerializer, description="Status updated."),
            404: OpenApiResponse(description="Report or category not found."),
            409: OpenApiResponse(description="Transition not allowed for this user."),
            503: OpenApiResponse(description="No role or officer available for the category."),
        },
        tags=["Reports – Workflow"],
    )
    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request: Request, pk: int = None) -> Response:
        """
        PATCH /api/reports/{id}/status/
        """
        serializer = ReportStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = ReportWorkflowService.update_status(
            int(pk),
            serializer.validated_data["status"],
            serializer.validated_data.get("explanation"),
            request.user,
            category_id=serializer.validated_data.get("category_id"),
        )
        return Response(ReportSerializer(report).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Statuses I can move this report to",
        responses={200: OpenApiResponse(description="List of status values.")},
        tags=["Reports – Workflow"],
    )
    @action(detail=True, methods=["get"], url_path="next-statuses")
    def next_statuses(self, request: Request, pk: int = None) -> Response:
        """
        GET /api/reports/{id}/next-statuses/
        """
        report = ReportQueryService.get_report(pk)
        return Response(
            {"status": report.status, "next_statuses": ReportWorkflowService.next_statuses(report, request.user)},
            status=status.HTTP_200_OK,
        )
