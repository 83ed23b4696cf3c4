"""
User directory and approver resolution for the workflows.

Two layers:

``UserDirectory``
    Point lookups against active users, returning ``None`` when nobody
    matches.  This is the seam tests replace with an in-memory directory.

``ApproverResolver``
    Names the approvers the workflows need ("the Appeals President of
    department D", "the Secretary General", ...) and turns a missing match
    into ``NotFound``.  There is no fallback to another user.

Workflow services receive a resolver in their constructor and default to
``ApproverResolver(UserDirectory())``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from core.constants import RoleCode
from core.domain.exceptions import NotFound

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)


class Directory(Protocol):
    def find_by_role(self, role: str) -> User | None: ...

    def find_by_role_and_department(self, role: str, department_id: int | None) -> User | None: ...

    def find_by_id(self, user_id: int) -> User | None: ...


class UserDirectory:
    """ORM-backed directory over active ``accounts.User`` rows."""

    @staticmethod
    def _active():
        from accounts.models import User

        return User.objects.filter(is_active=True).select_related("department")

    def find_by_role(self, role: str) -> User | None:
        # Lowest pk wins when several users share a singleton role.
        return self._active().filter(role=role).order_by("pk").first()

    def find_by_role_and_department(self, role: str, department_id: int | None) -> User | None:
        if department_id is None:
            return None
        return (
            self._active()
            .filter(role=role, department_id=department_id)
            .order_by("pk")
            .first()
        )

    def find_by_id(self, user_id: int) -> User | None:
        return self._active().filter(pk=user_id).first()


class ApproverResolver:
    """
    Resolves the next approver of a workflow step.

    Every method either returns a user or raises ``NotFound``.
    """

    def __init__(self, directory: Directory | None = None) -> None:
        self.directory = directory if directory is not None else UserDirectory()

    def _require(self, user: User | None, description: str) -> User:
        if user is None:
            logger.warning("Approver lookup failed: %s", description)
            raise NotFound(f"No active {description} was found.")
        return user

    def appeals_president_for(self, department_id: int | None) -> User:
        """The Appeals President of ``department_id``."""
        return self._require(
            self.directory.find_by_role_and_department(RoleCode.APPEALS_PRESIDENT, department_id),
            f"Appeals President for department {department_id}",
        )

    def secretary_general(self) -> User:
        """The Secretary General (not department scoped)."""
        return self._require(
            self.directory.find_by_role(RoleCode.SECRETARY_GENERAL),
            "Secretary General",
        )

    def press_director(self) -> User:
        """The Press Director."""
        return self._require(
            self.directory.find_by_role(RoleCode.PRESS_DIRECTOR),
            "Press Director",
        )

    def council_president(self) -> User:
        """The President of the Council."""
        return self._require(
            self.directory.find_by_role(RoleCode.COUNCIL_PRESIDENT),
            "President of the Council",
        )

    def user(self, user_id: int) -> User:
        """A specific active user, e.g. an approver recovered from the ledger."""
        return self._require(self.directory.find_by_id(user_id), f"user with id {user_id}")
