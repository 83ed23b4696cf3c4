"""
core.domain.exceptions: Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside the workflow
services.  They are deliberately **not** DRF exceptions so that the
domain layer stays framework-agnostic.  The global DRF exception handler
(``core.domain.exception_handler``) maps them to HTTP responses.

Every class carries a stable, machine-readable ``code`` that is returned
to API clients next to the human readable message.

Mapping cheatsheet
------------------
┌─────────────────────┬─────────────────────┬──────┐
│ Domain Exception    │ code                │ HTTP │
├─────────────────────┼─────────────────────┼──────┤
│ DomainError         │ domain_error        │ 400  │
│ ValidationFailed    │ validation_failed   │ 400  │
│ PermissionDenied    │ forbidden           │ 403  │
│ NotFound            │ not_found           │ 404  │
│ Conflict            │ conflict            │ 409  │
│ InvalidTransition   │ invalid_state       │ 409  │
└─────────────────────┴─────────────────────┴──────┘

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if case_file.status != CaseFileStatus.PENDING_APPROVAL:
        raise InvalidTransition(
            current=case_file.status,
            target=CaseFileStatus.APPROVED,
            reason="Only pending case files can be approved.",
        )
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    code = "domain_error"
    default_message = "A business rule was violated."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(DomainError):
    """
    Input accepted by the transport layer still violates a business rule,
    e.g. a rejection without comments.

    Maps to HTTP 400.
    """

    code = "validation_failed"
    default_message = "The request failed validation."


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required role or ownership
    for this operation.

    Maps to HTTP 403.
    """

    code = "forbidden"
    default_message = "You do not have permission to perform this action."


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user given their role scope).  Also raised when a required
    approver cannot be resolved from the user directory.

    Maps to HTTP 404.
    """

    code = "not_found"
    default_message = "The requested resource was not found."


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Typical usage: optimistic-lock failure, concurrent modification.
    Maps to HTTP 409.
    """

    code = "conflict"
    default_message = "The operation conflicts with the current state."


class InvalidTransition(Conflict):
    """
    A state-machine transition that is not allowed from the current
    status or level.

    Inherits from ``Conflict`` because an invalid transition IS a conflict
    with the resource's current state.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="draft",
            target="approved",
            reason="Case file must be submitted first.",
        )
    """

    code = "invalid_state"
    default_message = "Invalid state transition."

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
            message = " ".join(parts) + "."
            if reason:
                message = f"{message} {reason}"
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason


# Names used by API clients and error documentation.
Forbidden = PermissionDenied
InvalidState = InvalidTransition
