"""
Files app models.

``StagedFile`` is the durable record of an upload that has been written to
the blob store under a temporary key but is not yet linked to any report
or profile.  It is consumed by exactly one promotion, or swept once past
``expires_at``.
"""

import uuid

from django.db import models


class UploadCategory(models.TextChoices):
    """What the upload is for; decides the target bucket."""

    REPORT = "report", "Report Photo"
    PROFILE = "profile", "Profile Photo"


class StagedFile(models.Model):
    """
    An uploaded blob held under ``temp/{file_id}/{sanitized_name}``.
    """

    file_id = models.UUIDField(
        default=uuid.uuid4,
        unique=True,
        editable=False,
        verbose_name="File ID",
        help_text="Opaque token handed to the client.",
    )
    original_name = models.CharField(
        max_length=255,
        verbose_name="Original Filename",
    )
    staged_key = models.CharField(
        max_length=500,
        verbose_name="Staged Object Key",
    )
    category = models.CharField(
        max_length=10,
        choices=UploadCategory.choices,
        default=UploadCategory.REPORT,
        verbose_name="Upload Category",
    )
    size = models.PositiveIntegerField(
        verbose_name="Size (bytes)",
    )
    mime_type = models.CharField(
        max_length=50,
        verbose_name="MIME Type",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    expires_at = models.DateTimeField(
        db_index=True,
        verbose_name="Expires At",
    )

    class Meta:
        verbose_name = "Staged File"
        verbose_name_plural = "Staged Files"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.file_id} ({self.original_name})"
