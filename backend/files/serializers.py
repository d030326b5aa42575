"""
Files app serializers.

Field definitions and field-level validation only.  Size / MIME /
extension checks live in ``FileStagingService.validate_upload`` so the
service enforces them no matter who calls it.
"""

from __future__ import annotations

from rest_framework import serializers

from .models import StagedFile, UploadCategory


class StagedUploadSerializer(serializers.Serializer):
    """Validates a multipart ``POST /api/files/upload/`` body."""

    file = serializers.FileField(
        help_text="Image file (jpeg, png, gif, webp), at most 5MB.",
    )
    type = serializers.ChoiceField(
        choices=UploadCategory.choices,
        default=UploadCategory.REPORT,
        help_text="What the upload is for: 'report' or 'profile'.",
    )


class StagedFileSerializer(serializers.ModelSerializer):
    """Metadata returned to the client after staging; never the bytes."""

    file_id = serializers.UUIDField(read_only=True)
    filename = serializers.CharField(source="original_name", read_only=True)
    temp_path = serializers.CharField(source="staged_key", read_only=True)

    class Meta:
        model = StagedFile
        fields = [
            "file_id",
            "filename",
            "size",
            "mime_type",
            "category",
            "temp_path",
            "expires_at",
        ]
        read_only_fields = fields
