"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``select_for_update`` and single-statement counter updates into
reusable patterns so that every app's service layer follows the same
concurrency-safe approach.

Usage::

    from core.domain.transactions import atomic_increment, lock_for_update

    with transaction.atomic():
        report = lock_for_update(Report, report_id, not_found=ReportNotFound)
        ...
        atomic_increment(User, officer.pk, "active_tasks")
"""

from __future__ import annotations

from typing import Any, TypeVar

from django.db import models
from django.db.models import F

from core.domain.exceptions import NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(
    model_class: type[M],
    pk: Any,
    *,
    not_found: type[NotFound] = NotFound,
) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.
        not_found:   ``NotFound`` subclass raised when the row is missing.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise not_found(f"{model_class.__name__} with id {pk} does not exist.")


def atomic_increment(model_class: type[models.Model], pk: Any, field: str, by: int = 1) -> int:
    """
    Increment ``field`` on one row with a single ``UPDATE ... SET f = f + n``.

    The database evaluates the addition, so two concurrent callers can
    never both write back the same stale value.

    Returns:
        Number of rows updated (0 when the row has vanished).
    """
    return model_class.objects.filter(pk=pk).update(**{field: F(field) + by})
