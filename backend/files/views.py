"""
Files app views.

Thin endpoints over ``FileStagingService``: validate input with a
serializer, delegate, serialize the result.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from .serializers import StagedFileSerializer, StagedUploadSerializer
from .services import FileStagingService


class StagedFileViewSet(viewsets.ViewSet):
    """
    Upload and discard staged files.

    A staged file lives for 24 hours; its ``file_id`` is what clients pass
    as ``photo_ids`` when creating a report.
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]
    lookup_field = "file_id"

    @extend_schema(
        summary="Stage an upload",
        description=(
            "Store an image under a temporary key for 24 hours. "
            "Use the returned file_id when creating a report or setting a profile photo."
        ),
        request=StagedUploadSerializer,
        parameters=[
            OpenApiParameter(name="type", type=str, location=OpenApiParameter.QUERY, description="report (default) or profile."),
        ],
        responses={
            201: OpenApiResponse(response=StagedFileSerializer, description="File staged."),
            400: OpenApiResponse(description="Too large, wrong type, or extension mismatch."),
            502: OpenApiResponse(description="File storage unavailable."),
        },
        tags=["Files"],
    )
    @action(detail=False, methods=["post"], url_path="upload")
    def upload(self, request: Request) -> Response:
        """
        POST /api/files/upload/
        """
        payload = {"file": request.data.get("file")}
        # ``type`` may come as a query parameter or a form field.
        upload_type = request.query_params.get("type") or request.data.get("type")
        if upload_type:
            payload["type"] = upload_type
        serializer = StagedUploadSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data["file"]
        # Reject on the declared size and type before buffering the body.
        FileStagingService.validate_upload(upload.name, upload.content_type, upload.size)

        staged = FileStagingService.stage_upload(
            upload.read(),
            upload.name,
            upload.content_type,
            upload.size,
            serializer.validated_data["type"],
        )
        return Response(StagedFileSerializer(staged).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Discard a staged upload",
        responses={204: OpenApiResponse(description="Deleted (or already gone).")},
        tags=["Files"],
    )
    def destroy(self, request: Request, file_id: str = None) -> Response:
        """
        DELETE /api/files/{file_id}/
        """
        FileStagingService.delete_staged(file_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
