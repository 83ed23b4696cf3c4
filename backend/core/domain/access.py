"""
core.domain.access: Role-based guards and scoped queryset selectors.

This module provides shared utilities that each app's service layer
calls to check whether a user's role may perform a workflow action and
to obtain querysets filtered by what that user is allowed to see.

╔══════════════════════════════════════════════════════════════════╗
║  IMPORTANT: Per-app scoping logic does NOT live here.            ║
║  Each app's ``services.py`` owns its own scope-rules list.       ║
║  This module provides:                                           ║
║    1) ``apply_permission_scope``: ordered action dispatch.       ║
║    2) ``require_action``: guard backed by ``ROLE_ACTIONS``.      ║
║    3) ``get_user_role_code``: effective role of a user.          ║
╚══════════════════════════════════════════════════════════════════╝

Architecture overview
---------------------
    ┌─────────┐      ┌────────────────┐      ┌──────────────────────┐
    │  View   │─────▶│  App service   │─────▶│ core.domain.access   │
    │ (thin)  │      │ (owns logic)   │      │ core.permissions_    │
    └─────────┘      └────────────────┘      │   constants (table)  │
                                             └──────────────────────┘

Usage in an app's service layer::

    from core.domain.access import apply_permission_scope

    CASE_FILE_SCOPE_RULES = [
        (CaseFileActions.VIEW_ALL, lambda qs, u: qs),
        (CaseFileActions.VIEW_DEPARTMENT, lambda qs, u: qs.filter(department=u.department)),
    ]

    qs = apply_permission_scope(
        CaseFile.objects.all(), user,
        scope_rules=CASE_FILE_SCOPE_RULES,
        fallback=lambda qs, u: qs.filter(created_by=u),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from django.db.models import QuerySet

from core.constants import RoleCode
from core.domain.exceptions import PermissionDenied
from core.permissions_constants import permissions_for, role_can

if TYPE_CHECKING:
    from accounts.models import User

# Type alias for a scope filter function.
# Takes (queryset, user) and returns a filtered queryset.
ScopeFilter = Callable[[QuerySet, "User"], QuerySet]

# Type alias for a single scope rule: (action_code, filter_fn).
ScopeRule = tuple[str, ScopeFilter]


def get_user_role_code(user: User) -> str | None:
    """
    Return the role code the workflows should use for ``user``.

    Superusers act as administrators.  Anonymous users have no role.
    """
    if not getattr(user, "is_authenticated", False):
        return None
    if user.is_superuser:
        return RoleCode.ADMIN.value
    return user.role or None


def user_can(user: User, action: str) -> bool:
    """Return ``True`` if the user's role is listed for ``action``."""
    return role_can(get_user_role_code(user), action)


def require_action(user: User, action: str, *, message: str = "") -> None:
    """
    Guard that raises ``PermissionDenied`` if the user's role is not
    allowed to perform ``action``.

    Args:
        user:    Authenticated user.
        action:  One of the constants in ``core.permissions_constants``.
        message: Optional custom error message.

    Raises:
        core.domain.exceptions.PermissionDenied

    Example::

        require_action(user, CaseFileActions.CREATE)
    """
    if user_can(user, action):
        return
    allowed = ", ".join(sorted(permissions_for(action))) or "nobody"
    raise PermissionDenied(
        message or f"Role '{get_user_role_code(user)}' may not perform '{action}' (allowed: {allowed})."
    )


def apply_permission_scope(
    queryset: QuerySet,
    user: User,
    *,
    scope_rules: list[ScopeRule],
    fallback: ScopeFilter | None = None,
) -> QuerySet:
    """
    Apply the first matching action-based scope rule.

    Rules are checked **in order**: first match wins.  Order rules from
    broadest (unrestricted) to narrowest so that users with wider access
    hit their rule first.

    Args:
        queryset:     Base (unfiltered) queryset.
        user:         The authenticated user.
        scope_rules:  Ordered list of ``(action, filter_fn)`` tuples.
        fallback:     Filter applied when no rule matches.  ``None``
                      returns an empty queryset.

    Returns:
        The (possibly filtered) queryset.
    """
    for action, filter_fn in scope_rules:
        if user_can(user, action):
            return filter_fn(queryset, user)

    if fallback is None:
        return queryset.none()
    return fallback(queryset, user)
