"""
Core constants: **Single Source of Truth** for project-wide codes and
magic numbers.

Any business rule that references a role code or a numeric constant
should import it from here instead of hardcoding.  This avoids drift
between apps that use the same value.
"""

from django.db import models


# ── Roles ───────────────────────────────────────────────────────────
# Fixed set of roles known to the workflows.  Stored on ``User.role``.


class RoleCode(models.TextChoices):
    ADMIN = "admin", "Administrator"
    COUNCIL_PRESIDENT = "council_president", "President of the Council"
    COUNCIL_VICE_PRESIDENT = "council_vice_president", "Vice President of the Council"
    SECRETARY_GENERAL = "secretary_general", "Secretary General"
    DEPUTY_SECRETARY = "deputy_secretary", "Deputy Secretary"
    APPEALS_PRESIDENT = "appeals_president", "Appeals Court President"
    JUDGE = "judge", "Judge"
    PRESS_TECHNICIAN = "press_technician", "Press Technician"
    PRESS_DIRECTOR = "press_director", "Press Director"
    CITIZEN = "citizen", "Citizen"


# ── Case numbers ────────────────────────────────────────────────────
# Case numbers look like ``2026-00001``: year, dash, zero-padded sequence.
CASE_NUMBER_PADDING: int = 5

# Attempts made to insert a case file when the generated number collides
# with an existing row.  Overridable via ``settings.CASE_NUMBER_MAX_RETRIES``.
CASE_NUMBER_MAX_RETRIES: int = 5


# ── Slugs ───────────────────────────────────────────────────────────
SLUG_MAX_LENGTH: int = 100


# ── Case-file documents ─────────────────────────────────────────────
# Accepted upload formats and size.  The size is overridable via
# ``settings.CASE_FILE_DOCUMENT_MAX_BYTES``.
CASE_FILE_DOCUMENT_EXTENSIONS: tuple[str, ...] = ("pdf", "doc", "docx")
CASE_FILE_DOCUMENT_MAX_BYTES: int = 10 * 1024 * 1024
