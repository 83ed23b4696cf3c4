"""
Case files app models.

A case file ("expediente") is opened by a Judge in Draft and climbs a
three-tier approval chain: Judge → Appeals President of the file's
department → Secretary General.  Every move along that chain is recorded
in ``CaseFileTransition``, the append-only ledger that is the only source
of approval history.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.constants import CASE_NUMBER_PADDING
from core.models import LedgerEntry, TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class CaseFileStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_APPROVAL = "pending_approval", "Pending Approval"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class ApprovalLevel(models.TextChoices):
    """
    Tier currently responsible for a case file.  Values double as the
    role code of the users acting at that tier.
    """

    JUDGE = "judge", "Judge"
    APPEALS_PRESIDENT = "appeals_president", "Appeals President"
    SECRETARY_GENERAL = "secretary_general", "Secretary General"


class CaseFileAction(models.TextChoices):
    SUBMIT = "submit", "Submit"
    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"
    RETURN = "return", "Return for Revision"


def format_case_number(year: int, sequence: int) -> str:
    """``2026, 1`` → ``"2026-00001"``."""
    return f"{year}-{sequence:0{CASE_NUMBER_PADDING}d}"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class CaseNumberSequence(models.Model):
    """
    Per-year counter behind case numbers.

    The row for a year is locked and incremented atomically, so two
    concurrent creations never draw the same value.
    """

    year = models.PositiveIntegerField(primary_key=True, verbose_name="Year")
    last_value = models.PositiveIntegerField(default=0, verbose_name="Last Issued Value")

    class Meta:
        verbose_name = "Case Number Sequence"
        verbose_name_plural = "Case Number Sequences"

    def __str__(self):
        return f"{self.year}: {self.last_value}"


class CaseFile(TimeStampedModel):
    """
    Judicial case file moving through the approval chain.

    ``assigned_to`` is the single user expected to act next.  It is empty
    exactly when the file is Approved (and then the level is Secretary
    General); the check constraint below enforces that at the database.
    ``version`` is bumped by every write and backs optimistic concurrency.
    """

    case_number = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        verbose_name="Case Number",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    description = models.TextField(blank=True, default="", verbose_name="Description")
    status = models.CharField(
        max_length=20,
        choices=CaseFileStatus.choices,
        default=CaseFileStatus.DRAFT,
        db_index=True,
        verbose_name="Status",
    )
    current_level = models.CharField(
        max_length=20,
        choices=ApprovalLevel.choices,
        default=ApprovalLevel.JUDGE,
        verbose_name="Current Level",
    )
    department = models.ForeignKey(
        "accounts.Department",
        on_delete=models.PROTECT,
        related_name="case_files",
        verbose_name="Department",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="created_case_files",
        verbose_name="Created By",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_case_files",
        verbose_name="Assigned To",
    )
    version = models.PositiveIntegerField(default=1, verbose_name="Version")

    class Meta:
        verbose_name = "Case File"
        verbose_name_plural = "Case Files"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "current_level"]),
            models.Index(fields=["assigned_to", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        status=CaseFileStatus.APPROVED,
                        assigned_to__isnull=True,
                        current_level=ApprovalLevel.SECRETARY_GENERAL,
                    )
                    | (~Q(status=CaseFileStatus.APPROVED) & Q(assigned_to__isnull=False))
                ),
                name="casefile_unassigned_iff_approved",
            ),
        ]

    def __str__(self):
        return f"{self.case_number} {self.title}"


class CaseFileDocument(TimeStampedModel):
    """
    File attached to a case file.  Removed together with the case file,
    including the stored object.
    """

    case_file = models.ForeignKey(
        CaseFile,
        on_delete=models.CASCADE,
        related_name="documents",
        verbose_name="Case File",
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    file = models.FileField(upload_to="case_files/%Y/%m/", verbose_name="File")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Uploaded By",
    )

    class Meta:
        verbose_name = "Case File Document"
        verbose_name_plural = "Case File Documents"
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.title} ({self.case_file_id})"


class CaseFileTransition(LedgerEntry):
    """
    Immutable record of one move of a case file between levels.

    ``from_level``/``to_level`` capture the tier before and after the
    action, which is what the Return action reads to find the Appeals
    President who forwarded a file to the Secretary General.
    """

    entity_field = "case_file"

    case_file = models.ForeignKey(
        CaseFile,
        on_delete=models.CASCADE,
        related_name="transitions",
        verbose_name="Case File",
    )
    action = models.CharField(
        max_length=10,
        choices=CaseFileAction.choices,
        verbose_name="Action",
    )
    from_level = models.CharField(
        max_length=20,
        choices=ApprovalLevel.choices,
        verbose_name="From Level",
    )
    to_level = models.CharField(
        max_length=20,
        choices=ApprovalLevel.choices,
        verbose_name="To Level",
    )

    class Meta(LedgerEntry.Meta):
        verbose_name = "Case File Transition"
        verbose_name_plural = "Case File Transitions"
        indexes = [
            models.Index(fields=["case_file", "created_at"]),
            models.Index(fields=["case_file", "to_level"]),
        ]

    def __str__(self):
        return f"{self.case_file_id}: {self.action} {self.from_level} → {self.to_level}"
