"""
Accounts app models.

Defines the municipal organisation (offices and the roles that belong to
them), a custom ``User`` model that extends Django's ``AbstractUser``, and
the ``Citizen`` profile used by people filing reports.

Internal staff hold at most one ``Role``.  The role decides which report
categories land on their desk (via ``reports.CategoryRole``), and the
``active_tasks`` counter is the load signal used by the assignment router.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

from core.constants import EXTERNAL_MAINTAINER_ROLE
from core.models import TimeStampedModel


class Office(models.Model):
    """
    Municipal office, e.g. "Street Maintenance Office".

    Offices group roles; they carry no workflow logic of their own.
    """

    name = models.CharField(
        max_length=150,
        unique=True,
        verbose_name="Office Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )

    class Meta:
        verbose_name = "Office"
        verbose_name_plural = "Offices"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Role(models.Model):
    """
    Dynamic, admin-manageable role.

    Roles can be created, renamed or re-homed to another office at runtime
    by an administrator.  Each role belongs to exactly one office.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Role Name",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )
    office = models.ForeignKey(
        Office,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="roles",
        verbose_name="Office",
    )

    class Meta:
        verbose_name = "Role"
        verbose_name_plural = "Roles"
        ordering = ["name"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    """
    Custom user model shared by internal staff and citizens.

    Staff carry a ``role``; citizens have no role and own a ``Citizen``
    profile instead.
    """

    role = models.ForeignKey(
        Role,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
        verbose_name="Assigned Role",
    )
    active_tasks = models.PositiveIntegerField(
        default=0,
        verbose_name="Active Tasks",
        help_text=(
            "Number of reports routed to this officer.  Only ever "
            "incremented, always through a single UPDATE statement."
        ),
    )

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        indexes = [
            models.Index(fields=["role", "active_tasks"]),
        ]

    def __str__(self):
        role_name = self.role.name if self.role else "No Role"
        return f"{self.username} - {role_name}"

    # ── Helper predicates for role checks ────────────────────────────

    @property
    def role_name(self) -> str:
        """Return the role name, or an empty string when unassigned."""
        return self.role.name if self.role else ""

    @property
    def is_external_maintainer(self) -> bool:
        return EXTERNAL_MAINTAINER_ROLE in self.role_name


class Citizen(TimeStampedModel):
    """
    Public-facing profile of a person who files reports.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="citizen_profile",
        verbose_name="User",
    )
    email_notifications = models.BooleanField(
        default=True,
        verbose_name="E-mail Notifications",
    )
    profile_photo_key = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Profile Photo Object Key",
        help_text="Key in the profile-photo bucket; empty when unset.",
    )

    class Meta:
        verbose_name = "Citizen"
        verbose_name_plural = "Citizens"

    def __str__(self):
        return f"Citizen #{self.pk} ({self.user.username})"
