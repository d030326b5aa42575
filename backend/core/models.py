"""
Core app models.

Only abstract bases live here; every concrete table belongs to an app.
"""

from django.db import models


class TimeStampedModel(models.Model):
    """
    Adds ``created_at`` / ``updated_at``.

    ``updated_at`` only moves when it is part of the write, so services
    that save with ``update_fields`` list it explicitly.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True
        get_latest_by = "created_at"
