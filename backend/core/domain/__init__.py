"""
core.domain: Shared domain utilities for cross-app service layers.

Modules
-------
exceptions         Domain-specific exceptions with stable error codes.
exception_handler  DRF exception handler for those exceptions.
notifications      Notification persistence + best-effort email dispatch.
email              Pluggable outbound email sender.
transactions       Row locking and compare-and-set helpers.
access             Role-based guards and scoped queryset selectors.
slugs              URL slug generation with collision suffixes.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.notifications import NotificationDispatcher
    from core.domain.transactions import compare_and_set, lock_for_update
    from core.domain.access import require_action
"""
