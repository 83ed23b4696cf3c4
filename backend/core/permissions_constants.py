"""
Permissions Constants: **Single Source of Truth**

Every workflow action referenced in code (services, views, tests) MUST use
one of the constants defined here.

Organisation
------------
- Action constants are grouped per app (``CaseFileActions``,
  ``NewsActions``).  Each constant is a dotted ``<app>.<action>`` string.
- ``ROLE_ACTIONS`` maps every action to the immutable set of role codes
  allowed to perform it.  The table is built once at import time and
  wrapped in a read-only mapping.
- ``permissions_for(action)`` is the only lookup services use.  Ownership
  rules (author, assignee, creator) are checked by the services on top of
  this table.

Adding a new action requires:
    1. Add the constant below.
    2. Add the ``action: _roles(...)`` row to ``ROLE_ACTIONS``.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from core.constants import RoleCode


# ════════════════════════════════════════════════════════════════════
#  CASE FILES APP
# ════════════════════════════════════════════════════════════════════

class CaseFileActions:
    """Actions of the case-file approval workflow."""

    CREATE = "casefiles.create"
    """Open a new case file in Draft."""

    UPDATE_ANY = "casefiles.update_any"
    """Edit a Draft/Rejected case file without owning or holding it."""

    DELETE_ANY = "casefiles.delete_any"
    """Delete a Draft case file created by someone else."""

    SUBMIT = "casefiles.submit"
    """Send a Draft/Rejected case file to the Appeals President."""

    APPROVE_APPEALS = "casefiles.approve_appeals"
    """First-tier approval at the Appeals President level."""

    APPROVE_FINAL = "casefiles.approve_final"
    """Final approval at the Secretary General level."""

    VIEW_ALL = "casefiles.view_all"
    """See every case file regardless of department or assignment."""

    VIEW_DEPARTMENT = "casefiles.view_department"
    """See every case file of one's own department."""


# ════════════════════════════════════════════════════════════════════
#  NEWS APP
# ════════════════════════════════════════════════════════════════════

class NewsActions:
    """Actions of the news approval workflow."""

    CREATE = "news.create"
    """Write a news item in Draft."""

    EDIT_ANY = "news.edit_any"
    """Edit or delete a Draft news item written by someone else."""

    APPROVE_DIRECTOR = "news.approve_director"
    """Director review: publish advisories, forward notices."""

    APPROVE_PRESIDENT = "news.approve_president"
    """Second approval of notices by the President of the Council."""

    COURT_SUBMISSION = "news.court_submission"
    """Courts send advisories/communiques straight to the Director."""

    VIEW_ALL = "news.view_all"
    """See every news item in the internal listing."""


# ════════════════════════════════════════════════════════════════════
#  ROLE → ACTION TABLE
# ════════════════════════════════════════════════════════════════════

def _roles(*codes: RoleCode) -> frozenset[str]:
    # Plain strings so lookups with ``user.role`` values hash the same.
    return frozenset(code.value for code in codes)


ROLE_ACTIONS: Mapping[str, frozenset[str]] = MappingProxyType({
    # ── Case files ──────────────────────────────────────────────────
    CaseFileActions.CREATE: _roles(RoleCode.JUDGE),
    CaseFileActions.UPDATE_ANY: _roles(
        RoleCode.ADMIN,
        RoleCode.SECRETARY_GENERAL,
    ),
    CaseFileActions.DELETE_ANY: _roles(RoleCode.ADMIN),
    CaseFileActions.SUBMIT: _roles(RoleCode.JUDGE),
    CaseFileActions.APPROVE_APPEALS: _roles(RoleCode.APPEALS_PRESIDENT),
    CaseFileActions.APPROVE_FINAL: _roles(RoleCode.SECRETARY_GENERAL),
    CaseFileActions.VIEW_ALL: _roles(
        RoleCode.ADMIN,
        RoleCode.SECRETARY_GENERAL,
        RoleCode.COUNCIL_PRESIDENT,
    ),
    CaseFileActions.VIEW_DEPARTMENT: _roles(RoleCode.APPEALS_PRESIDENT),

    # ── News ────────────────────────────────────────────────────────
    NewsActions.CREATE: _roles(
        RoleCode.PRESS_TECHNICIAN,
        RoleCode.PRESS_DIRECTOR,
    ),
    NewsActions.EDIT_ANY: _roles(
        RoleCode.PRESS_DIRECTOR,
        RoleCode.ADMIN,
    ),
    NewsActions.APPROVE_DIRECTOR: _roles(RoleCode.PRESS_DIRECTOR),
    NewsActions.APPROVE_PRESIDENT: _roles(RoleCode.COUNCIL_PRESIDENT),
    NewsActions.COURT_SUBMISSION: _roles(
        RoleCode.JUDGE,
        RoleCode.APPEALS_PRESIDENT,
    ),
    NewsActions.VIEW_ALL: _roles(
        RoleCode.PRESS_TECHNICIAN,
        RoleCode.PRESS_DIRECTOR,
        RoleCode.COUNCIL_PRESIDENT,
        RoleCode.ADMIN,
    ),
})


def permissions_for(action: str) -> frozenset[str]:
    """
    Return the set of role codes allowed to perform ``action``.

    Unknown actions resolve to an empty set, i.e. nobody is allowed.
    """
    return ROLE_ACTIONS.get(action, frozenset())


def role_can(role: str | None, action: str) -> bool:
    """Return ``True`` if ``role`` is listed for ``action``."""
    return role is not None and role in permissions_for(action)
