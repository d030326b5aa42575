"""
Report status transition rules.

The legal edges of the report state machine live in ``STATUS_TRANSITIONS``
as plain data.  ``validate_transition`` and ``valid_next_statuses`` read the
table; neither touches the database, and neither raises.  Callers turn a
negative ``TransitionResult`` into a ``TransitionRejected``.

    | From              | To           | Who                                 |
    |-------------------|--------------|-------------------------------------|
    | PENDING_APPROVAL  | ASSIGNED     | Public Relations Officer            |
    | PENDING_APPROVAL  | REJECTED     | Public Relations Officer            |
    | ASSIGNED          | IN_PROGRESS  | Assigned staff                      |
    | ASSIGNED          | DELEGATED    | Assigned staff (municipality only)  |
    | DELEGATED         | IN_PROGRESS  | Assigned user, maintainers allowed  |
    | IN_PROGRESS       | SUSPENDED    | Assigned user, maintainers allowed  |
    | IN_PROGRESS       | RESOLVED     | Assigned user, maintainers allowed  |
    | SUSPENDED         | IN_PROGRESS  | Assigned user, maintainers allowed  |
    | SUSPENDED         | RESOLVED     | Assigned user, maintainers allowed  |
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import PR_OFFICER_ROLE

from .models import ReportStatus

#: Marker for rules that require the actor to be the report's current holder.
ASSIGNED = "assigned"


@dataclass(frozen=True)
class TransitionRule:
    """One legal edge of the state machine."""

    from_status: str
    to_status: str
    # Either ``ASSIGNED`` or a tuple of role names.
    allowed_roles: tuple[str, ...] | str
    external_maintainer_allowed: bool
    municipality_only: bool = False

    @property
    def requires_assignment(self) -> bool:
        return self.allowed_roles == ASSIGNED


@dataclass(frozen=True)
class TransitionResult:
    valid: bool
    error_message: str | None = None


_ACCEPTED = TransitionResult(valid=True)


STATUS_TRANSITIONS: tuple[TransitionRule, ...] = (
    # ── Public Relations Officer triage ─────────────────────────────
    TransitionRule(ReportStatus.PENDING_APPROVAL, ReportStatus.ASSIGNED,
                   allowed_roles=(PR_OFFICER_ROLE,), external_maintainer_allowed=False),
    TransitionRule(ReportStatus.PENDING_APPROVAL, ReportStatus.REJECTED,
                   allowed_roles=(PR_OFFICER_ROLE,), external_maintainer_allowed=False),
    # ── Assigned staff ──────────────────────────────────────────────
    # External maintainers receive DELEGATED reports, never ASSIGNED ones.
    TransitionRule(ReportStatus.ASSIGNED, ReportStatus.IN_PROGRESS,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=False),
    TransitionRule(ReportStatus.ASSIGNED, ReportStatus.DELEGATED,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=False,
                   municipality_only=True),
    # ── External maintainer picks up delegated work ─────────────────
    TransitionRule(ReportStatus.DELEGATED, ReportStatus.IN_PROGRESS,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=True),
    # ── Work in flight (staff or maintainers) ───────────────────────
    TransitionRule(ReportStatus.IN_PROGRESS, ReportStatus.SUSPENDED,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=True),
    TransitionRule(ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=True),
    TransitionRule(ReportStatus.SUSPENDED, ReportStatus.IN_PROGRESS,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=True),
    TransitionRule(ReportStatus.SUSPENDED, ReportStatus.RESOLVED,
                   allowed_roles=ASSIGNED, external_maintainer_allowed=True),
)


def find_rule(current_status: str, target_status: str) -> TransitionRule | None:
    for rule in STATUS_TRANSITIONS:
        if rule.from_status == current_status and rule.to_status == target_status:
            return rule
    return None


def role_matches(actor_role: str, allowed_roles: tuple[str, ...]) -> bool:
    """
    Exact or substring match, so "Senior Public Relations Officer" passes
    a rule written for "Public Relations Officer".
    """
    actor_role = actor_role or ""
    return any(actor_role == allowed or allowed in actor_role for allowed in allowed_roles)


def _rule_permits(rule: TransitionRule, actor_role: str, is_external_maintainer: bool, is_assigned: bool) -> bool:
    if is_external_maintainer and not rule.external_maintainer_allowed:
        return False
    if rule.municipality_only and is_external_maintainer:
        return False
    if rule.requires_assignment:
        return is_assigned
    return role_matches(actor_role, rule.allowed_roles)


def validate_transition(
    current_status: str,
    target_status: str,
    actor_role: str,
    is_external_maintainer: bool,
    is_assigned: bool = False,
) -> TransitionResult:
    """
    Decide whether the actor may move a report from ``current_status`` to
    ``target_status``.

    Checks run in a fixed order so the message names the first failed
    predicate: pair lookup, external-maintainer permission,
    municipality-only flag, then assignment or role membership.
    """
    if current_status == target_status:
        return _ACCEPTED

    rule = find_rule(current_status, target_status)
    if rule is None:
        return TransitionResult(
            valid=False,
            error_message=(
                f'Invalid status transition from "{current_status}" to "{target_status}". '
                "This transition is not allowed."
            ),
        )

    if is_external_maintainer and not rule.external_maintainer_allowed:
        return TransitionResult(
            valid=False,
            error_message=(
                f'External maintainers cannot transition reports from "{current_status}" '
                f'to "{target_status}".'
            ),
        )

    if rule.municipality_only and is_external_maintainer:
        return TransitionResult(
            valid=False,
            error_message=(
                "Only municipality staff can delegate reports. "
                "External maintainers cannot perform this transition."
            ),
        )

    if rule.requires_assignment:
        if not is_assigned:
            return TransitionResult(
                valid=False,
                error_message=(
                    f'Only the assigned user can transition this report from "{current_status}" '
                    f'to "{target_status}".'
                ),
            )
    elif not role_matches(actor_role, rule.allowed_roles):
        return TransitionResult(
            valid=False,
            error_message=(
                f'Users with role "{actor_role}" cannot transition reports from "{current_status}" '
                f'to "{target_status}". Allowed roles: {", ".join(rule.allowed_roles)}.'
            ),
        )

    return _ACCEPTED


def valid_next_statuses(
    current_status: str,
    actor_role: str,
    is_external_maintainer: bool,
    is_assigned: bool,
) -> list[str]:
    """Target statuses this actor may reach from ``current_status``, in table order."""
    return [
        rule.to_status
        for rule in STATUS_TRANSITIONS
        if rule.from_status == current_status
        and _rule_permits(rule, actor_role, is_external_maintainer, is_assigned)
    ]
