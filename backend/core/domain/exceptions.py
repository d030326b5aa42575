"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the domain layer stays
framework-agnostic.  The global DRF exception handler
(``core.domain.exception_handler``) maps them to HTTP responses.

Mapping cheatsheet
------------------
┌──────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception     │ Meaning                      │ Code │
├──────────────────────┼──────────────────────────────┼──────┤
│ DomainError          │ Bad input / rule violated    │ 400  │
│ PermissionDenied     │ Actor may not do this        │ 403  │
│ NotFound             │ Resource missing             │ 404  │
│ Conflict             │ Clashes with current state   │ 409  │
│ InvalidTransition    │ Illegal status move          │ 409  │
│ Expired              │ Resource past its TTL        │ 410  │
│ StorageError         │ Blob store down/inconsistent │ 502  │
│ ConfigurationError   │ Operator data gap            │ 503  │
└──────────────────────┴──────────────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import ReportNotFound

    try:
        report = Report.objects.get(pk=report_id)
    except Report.DoesNotExist:
        raise ReportNotFound(f"Report with id {report_id} not found.")
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Raised directly for input the user can fix and retry (wrong file type,
    oversized upload, wrong number of photos).  Maps to 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The actor is known but may not touch this report or field, e.g. an
    external maintainer trying to re-categorise.  Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    A report, category, citizen or staged file id that resolves to
    nothing.  Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The request is well-formed but clashes with the state the row is in
    now.  Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current status.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="pending_approval",
            target="resolved",
            reason="Report must be assigned first.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


class Expired(DomainError):
    """
    The resource existed but its time-to-live has passed.  The client has
    to recreate it (e.g. re-upload a staged file).

    Maps to HTTP 410.
    """

    def __init__(self, message: str = "The requested resource has expired.") -> None:
        super().__init__(message)


class StorageError(DomainError):
    """
    The blob store is unavailable, or its contents disagree with the
    metadata recorded in the database.

    Maps to HTTP 502.
    """

    def __init__(self, message: str = "The file storage backend failed.") -> None:
        super().__init__(message)


class ConfigurationError(DomainError):
    """
    Operator-maintained data is incomplete (missing category mapping,
    nobody holding a role).  Not the caller's fault; should alert operators.

    Maps to HTTP 503.
    """

    def __init__(self, message: str = "The system is not configured to handle this request.") -> None:
        super().__init__(message)


# ────────────────────────────────────────────────────────────────────
# Report lifecycle
# ────────────────────────────────────────────────────────────────────

class CitizenNotFound(NotFound):
    """No citizen profile exists for the given id."""


class CategoryNotFound(NotFound):
    """No report category exists for the given id."""


class ReportNotFound(NotFound):
    """No report exists for the given id."""


class StagedFileNotFound(NotFound):
    """No staging record exists for the given file id (never uploaded, or already consumed)."""


class StagedFileExpired(Expired):
    """The staging record is past its ``expires_at``."""


class StagedFileMissingFromStore(StorageError):
    """The staging record exists but its blob is gone from the store."""


class TransitionRejected(InvalidTransition):
    """The transition validator refused the move for this actor."""


class NoRoleForCategory(ConfigurationError):
    """The report's category is not mapped to a responsible role."""


class NoOfficersAvailable(ConfigurationError):
    """Nobody currently holds the role responsible for the category."""


class PhotoProcessingFailed(StorageError):
    """
    Staged photos could not be validated or promoted onto a report.

    The report row survives in ``pending_approval`` with no photos; the
    client has to retry, possibly after re-uploading.
    """

    def __init__(self, message: str = "Failed to process photo uploads. Please try again.") -> None:
        super().__init__(message)
