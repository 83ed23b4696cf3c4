"""
Accounts app service layer.

Authentication itself is handled by ``MultiFieldAuthBackend`` and
SimpleJWT; approver lookups live in ``accounts.directory``.  This module
only serves the current user's profile.
"""

from __future__ import annotations

from .models import User


class CurrentUserService:
    """Read access to the authenticated user's own profile."""

    @staticmethod
    def get_profile(user: User) -> User:
        """
        Re-load ``user`` with its department joined, so serialising the
        profile costs a single query.
        """
        return User.objects.select_related("department").get(pk=user.pk)
