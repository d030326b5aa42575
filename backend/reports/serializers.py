"""
Reports app serializers.

Contains all Request and Response serializers for the Reports API.
Serializers handle field definitions, read/write constraints, and
field-level validation only.  **No workflow transitions or routing live
here** — those belong in ``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Report read serializers
3. Report write serializers (create, status update)
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from rest_framework import serializers

from core.constants import MAX_PHOTOS_PER_REPORT, MIN_PHOTOS_PER_REPORT
from core.domain.exceptions import StorageError
from files.storage import get_blob_store

from .models import Report, ReportStatus

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=ReportStatus.choices,
        required=False,
        help_text="Filter by report status.",
    )


# ═══════════════════════════════════════════════════════════════════
#  2. Report Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportSerializer(serializers.ModelSerializer):
    """
    Report DTO.

    ``photo_urls`` are presigned GET URLs for the stored photos; a photo
    whose URL cannot be signed is left out rather than failing the response.
    Anonymous reports hide the citizen id.
    """

    category = serializers.CharField(source="category.name", read_only=True)
    category_id = serializers.IntegerField(read_only=True)
    citizen_id = serializers.SerializerMethodField()
    assigned_to = serializers.SerializerMethodField()
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    photo_urls = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = [
            "id",
            "citizen_id",
            "is_anonymous",
            "title",
            "description",
            "category",
            "category_id",
            "latitude",
            "longitude",
            "status",
            "status_display",
            "explanation",
            "assigned_to",
            "photo_keys",
            "photo_urls",
            "created_at",
        ]
        read_only_fields = fields

    def get_citizen_id(self, obj: Report) -> int | None:
        return None if obj.is_anonymous else obj.citizen_id

    def get_assigned_to(self, obj: Report) -> dict | None:
        officer = obj.assigned_to
        if officer is None:
            return None
        return {
            "id": officer.pk,
            "username": officer.username,
            "role": officer.role_name,
        }

    def get_photo_urls(self, obj: Report) -> list[str]:
        if not obj.photo_keys:
            return []
        store = get_blob_store()
        ttl = timedelta(seconds=settings.PRESIGNED_URL_TTL)
        urls = []
        for key in obj.photo_keys:
            try:
                urls.append(store.presign(settings.MINIO_REPORT_BUCKET, key, ttl))
            except StorageError:
                logger.warning("Could not presign photo %s of report #%s", key, obj.pk, exc_info=True)
        return urls


# ═══════════════════════════════════════════════════════════════════
#  3. Report Write Serializers
# ═══════════════════════════════════════════════════════════════════


class ReportCreateSerializer(serializers.Serializer):
    """Body of ``POST /api/reports/``."""

    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    category_id = serializers.IntegerField(min_value=1)
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    is_anonymous = serializers.BooleanField(default=False)
    photo_ids = serializers.ListField(
        child=serializers.UUIDField(),
        min_length=MIN_PHOTOS_PER_REPORT,
        max_length=MAX_PHOTOS_PER_REPORT,
        help_text="file_id values returned by POST /api/files/upload/.",
    )

    def validate_photo_ids(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Each photo may only be attached once.")
        return value


class ReportStatusUpdateSerializer(serializers.Serializer):
    """Body of ``PATCH /api/reports/{id}/status/``."""

    status = serializers.ChoiceField(choices=ReportStatus.choices)
    explanation = serializers.CharField(required=False, allow_blank=True)
    category_id = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        if attrs["status"] == ReportStatus.REJECTED and not attrs.get("explanation", "").strip():
            raise serializers.ValidationError(
                {"explanation": "An explanation is required when rejecting a report."}
            )
        return attrs
