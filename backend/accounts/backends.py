"""
Custom authentication backend for multi-field login.

Court staff sign in with whatever identifier they have at hand:
``username``, ``national_id``, ``phone_number`` or ``email``, together
with their ``password``.

This backend is registered in ``settings.AUTHENTICATION_BACKENDS``
so that Django's ``authenticate()`` call dispatches to it.
"""

from __future__ import annotations

import logging
from functools import reduce
from operator import or_

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

logger = logging.getLogger(__name__)

# Unique user columns accepted as a login identifier.
IDENTIFIER_LOOKUPS = ("username", "national_id", "phone_number", "email__iexact")


class MultiFieldAuthBackend(ModelBackend):
    """
    Authenticate against any of ``IDENTIFIER_LOOKUPS``.

    Called as ``django.contrib.auth.authenticate(identifier=..., password=...)``.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        """
        Resolve the user by *identifier* and verify *password*.

        Returns
        -------
        User | None
            The authenticated user, or ``None`` on failure.
        """
        if not identifier or password is None:
            return None

        user_model = get_user_model()
        match = reduce(or_, (Q(**{lookup: identifier}) for lookup in IDENTIFIER_LOOKUPS))
        candidates = list(user_model.objects.filter(match)[:2])

        if len(candidates) != 1:
            # Run the default password hasher to mitigate timing attacks
            user_model().set_password(password)
            if candidates:
                logger.warning("Login identifier %r matches several users", identifier)
            return None

        user = candidates[0]
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
