"""
Reports app models.

Covers the citizen report lifecycle: a report is filed in
``pending_approval``, approved into ``assigned`` (which routes it to an
officer), worked through ``in_progress`` / ``suspended`` / ``delegated``
and ends in ``resolved`` or ``rejected``.  Reports are never physically
deleted by the lifecycle engine.
"""

from django.conf import settings
from django.db import models

from accounts.models import Citizen, Role
from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ReportStatus(models.TextChoices):
    """Every status a report can be in."""

    PENDING_APPROVAL = "pending_approval", "Pending Approval"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    SUSPENDED = "suspended", "Suspended"
    DELEGATED = "delegated", "Delegated"
    REJECTED = "rejected", "Rejected"
    RESOLVED = "resolved", "Resolved"


#: Statuses in which the report always has an assigned holder.
ASSIGNED_STATUSES: frozenset[str] = frozenset({
    ReportStatus.ASSIGNED,
    ReportStatus.IN_PROGRESS,
    ReportStatus.SUSPENDED,
    ReportStatus.DELEGATED,
    ReportStatus.RESOLVED,
})

#: No further transitions leave these statuses.
TERMINAL_STATUSES: frozenset[str] = frozenset({
    ReportStatus.RESOLVED,
    ReportStatus.REJECTED,
})


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Category(models.Model):
    """
    Problem category, e.g. "Roads and Urban Furnishings".
    """

    name = models.CharField(
        max_length=150,
        unique=True,
        verbose_name="Category Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )

    class Meta:
        verbose_name = "Category"
        verbose_name_plural = "Categories"
        ordering = ["name"]

    def __str__(self):
        return self.name


class CategoryRole(models.Model):
    """
    Maps a category to the single role responsible for its reports.

    Editable data: an administrator can re-route a category to another
    role without a deploy.
    """

    category = models.OneToOneField(
        Category,
        on_delete=models.CASCADE,
        related_name="responsible_role",
        verbose_name="Category",
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name="category_mappings",
        verbose_name="Responsible Role",
    )

    class Meta:
        verbose_name = "Category → Role Mapping"
        verbose_name_plural = "Category → Role Mappings"

    def __str__(self):
        return f"{self.category} → {self.role}"


class Report(TimeStampedModel):
    """
    A citizen-filed issue with location and one to three photos.

    * ``photo_keys`` holds object-store keys, never raw bytes.
    * ``assigned_to`` is set exactly while the status is in
      ``ASSIGNED_STATUSES``.
    """

    citizen = models.ForeignKey(
        Citizen,
        on_delete=models.PROTECT,
        related_name="reports",
        verbose_name="Citizen",
    )
    is_anonymous = models.BooleanField(
        default=False,
        verbose_name="Anonymous",
    )
    title = models.CharField(
        max_length=255,
        verbose_name="Title",
    )
    description = models.TextField(
        verbose_name="Description",
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name="reports",
        verbose_name="Category",
    )
    latitude = models.FloatField(verbose_name="Latitude")
    longitude = models.FloatField(verbose_name="Longitude")
    photo_keys = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Photo Object Keys",
    )
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING_APPROVAL,
        verbose_name="Current Status",
        db_index=True,
    )
    explanation = models.TextField(
        blank=True,
        default="",
        verbose_name="Explanation",
        help_text="Set by staff on rejection, delegation or resolution.",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_reports",
        verbose_name="Assigned To",
    )

    class Meta:
        verbose_name = "Report"
        verbose_name_plural = "Reports"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["assigned_to", "status"]),
        ]

    def __str__(self):
        return f"Report #{self.pk}: {self.title} [{self.status}]"
