"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions that map cleanly to HTTP responses.
exception_handler  DRF global handler translating those exceptions.
transactions       Helpers for ``select_for_update`` and atomic counter updates.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.transactions import atomic_increment, lock_for_update
"""
