"""
Reports app Service Layer.

This module is the **single source of truth** for all business logic
in the ``reports`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``ReportQueryService``      — Lookups and filtered querysets.
- ``ReportCreationService``   — Filing a report and attaching its photos.
- ``ReportAssignmentService`` — Category → role → least-loaded officer routing.
- ``ReportWorkflowService``   — Validated status transitions.

Lifecycle Overview
------------------
  PENDING_APPROVAL
    → ASSIGNED       (PR officer approves; the router picks the officer)
    → REJECTED       (PR officer rejects; terminal)
  ASSIGNED
    → IN_PROGRESS    (assigned officer starts work)
    → DELEGATED      (assigned officer hands off to an external maintainer)
  DELEGATED → IN_PROGRESS
  IN_PROGRESS ⇄ SUSPENDED
  IN_PROGRESS / SUSPENDED → RESOLVED (terminal)

The legal edges themselves live in ``reports.transitions``.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from accounts.models import Citizen, Role, User
from core.constants import MAX_PHOTOS_PER_REPORT, MIN_PHOTOS_PER_REPORT
from core.domain.exceptions import (
    CategoryNotFound,
    CitizenNotFound,
    DomainError,
    InvalidTransition,
    NoOfficersAvailable,
    NoRoleForCategory,
    PermissionDenied,
    PhotoProcessingFailed,
    ReportNotFound,
    TransitionRejected,
)
from core.domain.transactions import atomic_increment, lock_for_update
from files.models import UploadCategory
from files.services import FileStagingService

from .models import (
    TERMINAL_STATUSES,
    Category,
    CategoryRole,
    Report,
    ReportStatus,
)
from .transitions import valid_next_statuses, validate_transition

logger = logging.getLogger(__name__)


def report_photo_key(citizen_id: int, report_id: int, filename: str) -> str:
    # Same filename uploaded twice for one report collides; not deduplicated.
    return f"reports/{citizen_id}/{report_id}/{filename}"


# ═══════════════════════════════════════════════════════════════════
#  Report Query Service
# ═══════════════════════════════════════════════════════════════════


class ReportQueryService:
    """Read-side lookups used by the views."""

    @staticmethod
    def _base_queryset() -> QuerySet[Report]:
        return Report.objects.select_related(
            "category", "citizen__user", "assigned_to__role",
        )

    @staticmethod
    def get_report(report_id: int) -> Report:
        try:
            return ReportQueryService._base_queryset().get(pk=report_id)
        except Report.DoesNotExist:
            raise ReportNotFound(f"Report with id {report_id} not found.")

    @staticmethod
    def by_status(status: str | None = None) -> QuerySet[Report]:
        qs = ReportQueryService._base_queryset()
        if status:
            qs = qs.filter(status=status)
        return qs

    @staticmethod
    def assigned_to(user: User, status: str | None = None) -> QuerySet[Report]:
        qs = ReportQueryService._base_queryset().filter(assigned_to=user)
        if status:
            qs = qs.filter(status=status)
        return qs

    @staticmethod
    def filed_by(citizen_id: int) -> QuerySet[Report]:
        return ReportQueryService._base_queryset().filter(citizen_id=citizen_id)

    @staticmethod
    def by_office(user: User, status: str | None = None) -> QuerySet[Report]:
        """
        Reports whose category is handled by a role of the caller's office.

        A user without a role, or whose role has no office, sees nothing.
        The office is read fresh since roles can be re-homed at runtime.
        """
        office_id = (
            Role.objects.filter(pk=user.role_id).values_list("office_id", flat=True).first()
        )
        if office_id is None:
            return Report.objects.none()
        qs = ReportQueryService._base_queryset().filter(
            category__responsible_role__role__office_id=office_id,
        )
        if status:
            qs = qs.filter(status=status)
        return qs


# ═══════════════════════════════════════════════════════════════════
#  Report Creation Service
# ═══════════════════════════════════════════════════════════════════


class ReportCreationService:
    """
    Files a new report and moves its staged photos to permanent keys.

    Creation is two-phase: the row is written first so the permanent photo
    keys can embed the report id, then the photos are promoted.
    """

    @staticmethod
    def create_report(validated_data: dict[str, Any], citizen_id: int) -> Report:
        """
        Create a report in ``PENDING_APPROVAL`` and attach its photos.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``ReportCreateSerializer``: ``title``,
            ``description``, ``category_id``, ``latitude``, ``longitude``,
            ``photo_ids`` (1–3 staged file ids), optional ``is_anonymous``.
        citizen_id : int
            PK of the filing ``Citizen``.

        Returns
        -------
        Report
            The new report with ``photo_keys`` populated.

        Raises
        ------
        DomainError
            Wrong number of photo ids, or the same id given twice.
        CitizenNotFound, CategoryNotFound
            Unknown citizen or category; nothing is written.
        PhotoProcessingFailed
            Staged photos could not be validated or promoted.  The report
            row stays in ``PENDING_APPROVAL`` without photos.
        """
        photo_ids = list(validated_data.get("photo_ids") or [])
        if not MIN_PHOTOS_PER_REPORT <= len(photo_ids) <= MAX_PHOTOS_PER_REPORT:
            raise DomainError(
                f"A report needs between {MIN_PHOTOS_PER_REPORT} and "
                f"{MAX_PHOTOS_PER_REPORT} photos."
            )
        if len({str(photo_id) for photo_id in photo_ids}) != len(photo_ids):
            raise DomainError("Each photo may only be attached once.")

        try:
            citizen = Citizen.objects.get(pk=citizen_id)
        except Citizen.DoesNotExist:
            raise CitizenNotFound("Citizen not found.")

        category_id = validated_data["category_id"]
        try:
            category = Category.objects.get(pk=category_id)
        except Category.DoesNotExist:
            raise CategoryNotFound(f"Category not found with ID: {category_id}")

        report = Report.objects.create(
            citizen=citizen,
            is_anonymous=validated_data.get("is_anonymous", False),
            title=validated_data["title"],
            description=validated_data["description"],
            category=category,
            latitude=validated_data["latitude"],
            longitude=validated_data["longitude"],
            status=ReportStatus.PENDING_APPROVAL,
        )

        try:
            staged_files = FileStagingService.validate_staged(photo_ids)
            for staged in staged_files:
                if staged.category != UploadCategory.REPORT:
                    raise DomainError(f"File {staged.file_id} was not uploaded as a report photo.")

            moves = [
                (staged.file_id, report_photo_key(citizen.pk, report.pk, staged.original_name))
                for staged in staged_files
            ]
            report.photo_keys = FileStagingService.promote_many(moves)
            report.save(update_fields=["photo_keys", "updated_at"])
        except (DomainError, DatabaseError) as exc:
            logger.exception("Failed to move photos for report #%d", report.pk)
            raise PhotoProcessingFailed(
                f"Failed to process photo uploads: {str(exc).rstrip('.')}. Please try again."
            ) from exc

        logger.info(
            "Report #%d filed by citizen #%d in category '%s' with %d photo(s)",
            report.pk,
            citizen.pk,
            category.name,
            len(report.photo_keys),
        )
        return report


# ═══════════════════════════════════════════════════════════════════
#  Report Assignment Service
# ═══════════════════════════════════════════════════════════════════


class ReportAssignmentService:
    """
    Picks the officer who owns a newly approved report.

    category → responsible role → active officers holding it → lowest
    ``active_tasks`` (ties go to the lowest user id).  The selection is a
    best-effort snapshot; only the counter update has to be atomic.
    """

    @staticmethod
    def resolve_role(category: Category):
        try:
            return CategoryRole.objects.select_related("role").get(category=category).role
        except CategoryRole.DoesNotExist:
            raise NoRoleForCategory(f"No role found for category: {category.name}")

    @staticmethod
    def select_officer(role) -> User:
        officer = (
            User.objects
            .filter(role=role, is_active=True)
            .order_by("active_tasks", "pk")
            .first()
        )
        if officer is None:
            raise NoOfficersAvailable(
                f"No officers available for role '{role.name}'. "
                "Report remains in Pending Approval state."
            )
        return officer

    @staticmethod
    def assign(report: Report, category: Category | None = None) -> User:
        """
        Route ``report`` to an officer and bump that officer's counter.

        Must run inside the transaction that persists the new status, so a
        failed save also undoes the increment.

        Parameters
        ----------
        report : Report
            The report being approved.
        category : Category, optional
            Overrides ``report.category`` (re-categorisation in the same
            request).

        Raises
        ------
        NoRoleForCategory, NoOfficersAvailable
        """
        category = category or report.category
        try:
            role = ReportAssignmentService.resolve_role(category)
            officer = ReportAssignmentService.select_officer(role)
        except (NoRoleForCategory, NoOfficersAvailable) as exc:
            logger.error("Cannot route report #%s: %s", report.pk, exc)
            raise

        atomic_increment(User, officer.pk, "active_tasks")
        officer.refresh_from_db(fields=["active_tasks"])

        logger.info(
            "Report #%s routed to officer %s (role '%s', active tasks now %d)",
            report.pk,
            officer.username,
            role.name,
            officer.active_tasks,
        )
        return officer


# ═══════════════════════════════════════════════════════════════════
#  Report Workflow Service
# ═══════════════════════════════════════════════════════════════════


class ReportWorkflowService:
    """
    The validated gateway through the report state machine.

    Each call is a command ``(report, target_status, actor, explanation)``
    executed in one transaction: lock the report row, validate, route on
    entry to ``ASSIGNED``, persist.
    """

    @staticmethod
    def actor_context(report: Report, actor: User) -> dict[str, Any]:
        return {
            "actor_role": actor.role_name,
            "is_external_maintainer": actor.is_external_maintainer,
            "is_assigned": report.assigned_to_id is not None and report.assigned_to_id == actor.pk,
        }

    @staticmethod
    def next_statuses(report: Report, actor: User) -> list[str]:
        """Statuses ``actor`` may move ``report`` to right now."""
        context = ReportWorkflowService.actor_context(report, actor)
        return [
            str(status)
            for status in valid_next_statuses(
                report.status,
                context["actor_role"],
                context["is_external_maintainer"],
                context["is_assigned"],
            )
        ]

    @staticmethod
    def update_status(
        report_id: int,
        target_status: str,
        explanation: str | None,
        actor: User,
        category_id: int | None = None,
    ) -> Report:
        """
        Move a report to ``target_status`` on behalf of ``actor``.

        Parameters
        ----------
        report_id : int
        target_status : str
            A ``ReportStatus`` value.
        explanation : str or None
            Stored on the report when given.
        actor : User
            The staff member performing the transition.
        category_id : int, optional
            Re-categorise the report; only while ``PENDING_APPROVAL`` and
            never by an external maintainer.

        Returns
        -------
        Report
            The updated report.

        Raises
        ------
        ReportNotFound
        InvalidTransition
            The report is already resolved or rejected.
        PermissionDenied
            External maintainer tried to re-categorise.
        TransitionRejected
            The transition table refused the move for this actor.
        CategoryNotFound, NoRoleForCategory, NoOfficersAvailable
        """
        with transaction.atomic():
            report = lock_for_update(Report, report_id, not_found=ReportNotFound)
            previous_status = report.status

            if previous_status in TERMINAL_STATUSES:
                raise InvalidTransition(
                    "Cannot update a report that is already Resolved or Rejected.",
                    current=previous_status,
                    target=target_status,
                )

            context = ReportWorkflowService.actor_context(report, actor)
            update_fields = ["status", "explanation", "assigned_to", "updated_at"]

            category = report.category
            if category_id is not None and category_id != report.category_id:
                if context["is_external_maintainer"]:
                    raise PermissionDenied("External maintainers cannot change the report category.")
                if previous_status != ReportStatus.PENDING_APPROVAL:
                    raise InvalidTransition(
                        "Cannot change category after report leaves Pending stage.",
                        current=previous_status,
                        target=target_status,
                    )
                try:
                    category = Category.objects.get(pk=category_id)
                except Category.DoesNotExist:
                    raise CategoryNotFound(f"Category not found with ID: {category_id}")
                update_fields.append("category")

            result = validate_transition(previous_status, target_status, **context)
            if not result.valid:
                raise TransitionRejected(
                    result.error_message,
                    current=previous_status,
                    target=target_status,
                )

            if target_status == ReportStatus.ASSIGNED and previous_status != ReportStatus.ASSIGNED:
                report.assigned_to = ReportAssignmentService.assign(report, category)

            report.category = category
            report.status = target_status
            if explanation is not None:
                report.explanation = explanation
            report.save(update_fields=update_fields)

        logger.info(
            "Report #%d moved %s → %s by %s",
            report.pk,
            previous_status,
            target_status,
            actor.username,
        )
        return ReportQueryService.get_report(report.pk)
