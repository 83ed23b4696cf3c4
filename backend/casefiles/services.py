"""
Case files app service layer.

All business logic for the case-file approval workflow lives here.
Views call these services and serialise whatever they return.

Workflow
--------
::

    Draft ──submit──▶ Pending @ Appeals President ──approve──▶ Pending @ Secretary General ──approve──▶ Approved
      ▲                     │            │                         │            │
      │◀────return──────────┘            │                         │            │
      │ (Draft @ Appeals President) ◀─────────────return───────────┘            │
      └─────── Rejected ◀────────────────┴──────────reject──────────────────────┘

Every transition runs inside one ``transaction.atomic`` block that:

1. locks the case file row (``select_for_update``) and checks the
   caller's expected ``version``,
2. validates status/level, then the assignee, then the role,
3. writes the new state with a version compare-and-set,
4. appends exactly one ``CaseFileTransition`` row.

Notifications are sent only after that block has committed; their
failures are logged by the dispatcher and never reach the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q, QuerySet
from django.utils import timezone

from accounts.directory import ApproverResolver
from accounts.models import User
from core.constants import CASE_NUMBER_MAX_RETRIES
from core.domain.access import (
    ScopeRule,
    apply_permission_scope,
    require_action,
    user_can,
)
from core.domain.exceptions import (
    Conflict,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from core.domain.notifications import NotificationDispatcher
from core.domain.transactions import compare_and_set, ensure_version, lock_for_update
from core.models import NotificationEntity, NotificationType
from core.permissions_constants import CaseFileActions

from .models import (
    ApprovalLevel,
    CaseFile,
    CaseFileAction,
    CaseFileDocument,
    CaseFileStatus,
    CaseFileTransition,
    CaseNumberSequence,
    format_case_number,
)

logger = logging.getLogger(__name__)

# Statuses in which the file can be edited or (re)submitted by the judge.
EDITABLE_STATUSES = (CaseFileStatus.DRAFT, CaseFileStatus.REJECTED)


# ═══════════════════════════════════════════════════════════════════
#  Scope rules
# ═══════════════════════════════════════════════════════════════════

def _own_or_assigned(qs: QuerySet, user: User) -> QuerySet:
    return qs.filter(Q(created_by=user) | Q(assigned_to=user))


CASE_FILE_SCOPE_RULES: list[ScopeRule] = [
    (CaseFileActions.VIEW_ALL, lambda qs, u: qs),
    (
        CaseFileActions.VIEW_DEPARTMENT,
        lambda qs, u: qs.filter(
            Q(department_id=u.department_id) | Q(created_by=u) | Q(assigned_to=u)
        ),
    ),
]


def case_file_snapshot(case_file: CaseFile) -> dict[str, Any]:
    """Denormalised view of a case file stored in notification metadata."""
    return {
        "id": case_file.pk,
        "case_number": case_file.case_number,
        "title": case_file.title,
        "status": case_file.status,
        "current_level": case_file.current_level,
    }


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════

class CaseFileQueryService:
    """Read-side operations: listing, detail, history, statistics."""

    @staticmethod
    def get_filtered_queryset(
        requesting_user: User,
        filters: dict[str, Any] | None = None,
    ) -> QuerySet[CaseFile]:
        """
        Return the case files ``requesting_user`` may see, narrowed by
        ``filters``.

        Visibility
        ----------
        - Admin, Secretary General, President of the Council: everything.
        - Appeals President: their department, plus files they created
          or hold.
        - Everyone else: files they created or hold.

        Parameters
        ----------
        filters : dict, optional
            ``status``, ``current_level``, ``department`` (id) and
            ``search`` (matches case number or title).
        """
        qs = apply_permission_scope(
            CaseFile.objects.select_related("department", "created_by", "assigned_to"),
            requesting_user,
            scope_rules=CASE_FILE_SCOPE_RULES,
            fallback=_own_or_assigned,
        )

        filters = filters or {}
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("current_level"):
            qs = qs.filter(current_level=filters["current_level"])
        if filters.get("department"):
            qs = qs.filter(department_id=filters["department"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(Q(case_number__icontains=term) | Q(title__icontains=term))
        return qs.order_by("-created_at")

    @staticmethod
    def get_case_file_detail(requesting_user: User, case_file_id: Any) -> CaseFile:
        """
        Return one visible case file with its documents prefetched.

        Raises
        ------
        NotFound
            If it does not exist or is outside the user's scope.
        """
        try:
            return (
                CaseFileQueryService.get_filtered_queryset(requesting_user)
                .prefetch_related("documents")
                .get(pk=case_file_id)
            )
        except (CaseFile.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Case file with id {case_file_id} not found.")

    @staticmethod
    def get_approval_history(requesting_user: User, case_file_id: Any) -> QuerySet[CaseFileTransition]:
        """Ledger rows of a visible case file, newest first."""
        case_file = CaseFileQueryService.get_case_file_detail(requesting_user, case_file_id)
        return (
            CaseFileTransition.objects
            .history(case_file.pk)
            .select_related("from_user", "to_user")
        )

    @staticmethod
    def get_statistics(requesting_user: User) -> dict[str, Any]:
        """
        Counters for the user's dashboard: total visible files, visible
        files per status, and files waiting on the user.
        """
        qs = CaseFileQueryService.get_filtered_queryset(requesting_user)
        by_status = {value: 0 for value in CaseFileStatus.values}
        for row in qs.order_by().values("status").annotate(count=Count("id")):
            by_status[row["status"]] = row["count"]

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "pending_for_me": CaseFile.objects.filter(
                assigned_to=requesting_user,
                status=CaseFileStatus.PENDING_APPROVAL,
            ).count(),
        }


# ═══════════════════════════════════════════════════════════════════
#  Case Number Service
# ═══════════════════════════════════════════════════════════════════

class CaseNumberService:
    """Allocates ``{year}-{sequence}`` case numbers."""

    @staticmethod
    def _issued_count(year: int) -> int:
        # Seeds a fresh counter from rows created before the counter existed.
        return CaseFile.objects.filter(case_number__startswith=f"{year}-").count()

    @staticmethod
    def next_case_number(year: int | None = None) -> str:
        """
        Draw the next number for ``year`` (default: current year).

        The per-year ``CaseNumberSequence`` row is locked and incremented
        with an ``F()`` expression inside its own transaction.
        """
        year = year or timezone.now().year
        with transaction.atomic():
            sequence, _ = (
                CaseNumberSequence.objects
                .select_for_update()
                .get_or_create(
                    year=year,
                    defaults={"last_value": lambda: CaseNumberService._issued_count(year)},
                )
            )
            CaseNumberSequence.objects.filter(pk=year).update(last_value=F("last_value") + 1)
            sequence.refresh_from_db(fields=["last_value"])
        return format_case_number(year, sequence.last_value)


# ═══════════════════════════════════════════════════════════════════
#  Creation / Editing Services
# ═══════════════════════════════════════════════════════════════════

class CaseFileCreationService:

    @staticmethod
    def create_case_file(validated_data: dict[str, Any], requesting_user: User) -> CaseFile:
        """
        Open a new case file in Draft at the Judge level, assigned to its
        creator.

        Parameters
        ----------
        validated_data : dict
            ``title``, optional ``description`` and optional
            ``department`` (defaults to the creator's department).

        Raises
        ------
        PermissionDenied
            If the user is not a Judge.
        ValidationFailed
            If no department can be determined.
        Conflict
            If no unique case number could be allocated after
            ``CASE_NUMBER_MAX_RETRIES`` attempts.
        """
        require_action(requesting_user, CaseFileActions.CREATE,
                       message="Only judges can open case files.")

        department = validated_data.get("department") or requesting_user.department
        if department is None:
            raise ValidationFailed("A department is required to open a case file.")

        retries = getattr(settings, "CASE_NUMBER_MAX_RETRIES", CASE_NUMBER_MAX_RETRIES)
        for attempt in range(1, retries + 1):
            case_number = CaseNumberService.next_case_number()
            try:
                with transaction.atomic():
                    case_file = CaseFile.objects.create(
                        case_number=case_number,
                        title=validated_data["title"],
                        description=validated_data.get("description", ""),
                        department=department,
                        status=CaseFileStatus.DRAFT,
                        current_level=ApprovalLevel.JUDGE,
                        created_by=requesting_user,
                        assigned_to=requesting_user,
                    )
            except IntegrityError:
                logger.warning(
                    "Case number %s already taken (attempt %d/%d)",
                    case_number, attempt, retries,
                )
                continue

            logger.info(
                "Case file %s (pk=%d) created by user=%s in department=%s",
                case_file.case_number, case_file.pk, requesting_user.pk, department.pk,
            )
            return case_file

        raise Conflict("Could not allocate a unique case number, please retry.")


class CaseFileEditingService:

    @staticmethod
    def update_case_file(
        case_file_id: Any,
        validated_data: dict[str, Any],
        requesting_user: User,
    ) -> CaseFile:
        """
        Edit title/description of a Draft or Rejected case file.

        Allowed for the creator, the current assignee, and roles with
        ``casefiles.update_any`` (Admin, Secretary General).  An optional
        ``version`` in ``validated_data`` pins the expected version.
        """
        data = dict(validated_data)
        expected_version = data.pop("version", None)

        with transaction.atomic():
            case_file = lock_for_update(CaseFile, case_file_id)
            ensure_version(case_file, expected_version)

            if case_file.status not in EDITABLE_STATUSES:
                raise InvalidTransition(
                    f"Case file {case_file.case_number} cannot be edited while {case_file.status}."
                )
            if not (
                requesting_user.pk in (case_file.created_by_id, case_file.assigned_to_id)
                or user_can(requesting_user, CaseFileActions.UPDATE_ANY)
            ):
                raise PermissionDenied("You cannot edit this case file.")

            changed = [name for name in ("title", "description") if name in data]
            for name in changed:
                setattr(case_file, name, data[name])
            if changed:
                compare_and_set(case_file, fields=changed)

        logger.info("Case file %s updated by user=%s (%s)",
                    case_file.case_number, requesting_user.pk, ", ".join(changed) or "no changes")
        return case_file

    @staticmethod
    def delete_case_file(case_file_id: Any, requesting_user: User) -> None:
        """
        Delete a Draft case file together with its ledger rows and
        documents.  Stored document files are removed after commit.

        Allowed for the creator and for Admins, and only at the Judge
        level.  A draft returned to the Appeals President cannot be deleted.
        """
        with transaction.atomic():
            case_file = lock_for_update(CaseFile, case_file_id)

            if case_file.status != CaseFileStatus.DRAFT:
                raise InvalidTransition(
                    f"Case file {case_file.case_number} can only be deleted while draft."
                )
            if case_file.current_level != ApprovalLevel.JUDGE:
                raise InvalidTransition(
                    current=f"{case_file.status}@{case_file.current_level}",
                    target="deleted",
                    reason="The case file is held by a reviewer.",
                )
            if not (
                case_file.created_by_id == requesting_user.pk
                or user_can(requesting_user, CaseFileActions.DELETE_ANY)
            ):
                raise PermissionDenied("You cannot delete this case file.")

            stored_files = [doc.file.name for doc in case_file.documents.all() if doc.file]
            case_number = case_file.case_number
            case_file.delete()
            transaction.on_commit(lambda: _remove_stored_files(stored_files))

        logger.info("Case file %s deleted by user=%s", case_number, requesting_user.pk)


def _remove_stored_files(names: list[str]) -> None:
    for name in names:
        try:
            default_storage.delete(name)
        except OSError:
            logger.exception("Could not remove stored document %s", name)


# ═══════════════════════════════════════════════════════════════════
#  Document Service
# ═══════════════════════════════════════════════════════════════════

class CaseFileDocumentService:
    """
    Files attached to a case file.

    Reading follows the case-file visibility rules.  Uploading and
    deleting follow the editing rules: the file must be Draft or Rejected
    and the caller its creator, its assignee, or a holder of
    ``casefiles.update_any``.
    """

    @staticmethod
    def _require_editor(case_file: CaseFile, user: User) -> None:
        if case_file.status not in EDITABLE_STATUSES:
            raise InvalidTransition(
                f"Documents of case file {case_file.case_number} cannot change while {case_file.status}."
            )
        if not (
            user.pk in (case_file.created_by_id, case_file.assigned_to_id)
            or user_can(user, CaseFileActions.UPDATE_ANY)
        ):
            raise PermissionDenied("You cannot change the documents of this case file.")

    @staticmethod
    def list_documents(requesting_user: User, case_file_id: Any) -> QuerySet[CaseFileDocument]:
        case_file = CaseFileQueryService.get_case_file_detail(requesting_user, case_file_id)
        return (
            CaseFileDocument.objects
            .filter(case_file=case_file)
            .select_related("uploaded_by")
            .order_by("created_at")
        )

    @staticmethod
    def get_document(requesting_user: User, case_file_id: Any, document_id: Any) -> CaseFileDocument:
        """
        Raises
        ------
        NotFound
            If the case file is not visible or has no such document.
        """
        try:
            return CaseFileDocumentService.list_documents(requesting_user, case_file_id).get(pk=document_id)
        except (CaseFileDocument.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Document with id {document_id} not found.")

    @staticmethod
    def upload_document(
        case_file_id: Any,
        validated_data: dict[str, Any],
        requesting_user: User,
    ) -> CaseFileDocument:
        """
        Store ``validated_data["file"]`` and attach it to the case file.
        ``title`` defaults to the uploaded file name.
        """
        upload = validated_data["file"]
        with transaction.atomic():
            case_file = lock_for_update(CaseFile, case_file_id)
            CaseFileDocumentService._require_editor(case_file, requesting_user)
            document = CaseFileDocument.objects.create(
                case_file=case_file,
                title=validated_data.get("title") or upload.name,
                file=upload,
                uploaded_by=requesting_user,
            )

        logger.info(
            "Document #%d (%s) attached to case file %s by user=%s",
            document.pk, document.file.name, case_file.case_number, requesting_user.pk,
        )
        return document

    @staticmethod
    def delete_document(case_file_id: Any, document_id: Any, requesting_user: User) -> None:
        """Remove one document; its stored file is deleted after commit."""
        with transaction.atomic():
            case_file = lock_for_update(CaseFile, case_file_id)
            try:
                document = case_file.documents.get(pk=document_id)
            except (CaseFileDocument.DoesNotExist, ValueError, TypeError):
                raise NotFound(f"Document with id {document_id} not found.")
            CaseFileDocumentService._require_editor(case_file, requesting_user)

            stored_files = [document.file.name] if document.file else []
            document.delete()
            transaction.on_commit(lambda: _remove_stored_files(stored_files))

        logger.info("Document #%s removed from case file %s by user=%s",
                    document_id, case_file.case_number, requesting_user.pk)


# ═══════════════════════════════════════════════════════════════════
#  Workflow Service
# ═══════════════════════════════════════════════════════════════════

class CaseFileWorkflowService:
    """
    Submit / approve / reject / return transitions.

    Parameters
    ----------
    resolver : ApproverResolver, optional
        Source of the next approver.  Inject one backed by an in-memory
        directory to test without users in the database.
    dispatcher : NotificationDispatcher, optional
        Receives the post-commit notifications.
    """

    def __init__(
        self,
        resolver: ApproverResolver | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self.resolver = resolver or ApproverResolver()
        self.dispatcher = dispatcher or NotificationDispatcher()

    # ── Guards ──────────────────────────────────────────────────────

    @staticmethod
    def _require_assignee(case_file: CaseFile, actor: User) -> None:
        if case_file.assigned_to_id != actor.pk:
            raise PermissionDenied(
                f"Case file {case_file.case_number} is not assigned to you."
            )

    @staticmethod
    def _require_comments(comments: str | None, verb: str) -> str:
        comments = (comments or "").strip()
        if not comments:
            raise ValidationFailed(f"Comments are required to {verb} a case file.")
        return comments

    @staticmethod
    def _require_under_review(case_file: CaseFile, target: str) -> None:
        # Pending at either reviewer level, or sent back to the Appeals
        # President by the Secretary General.
        under_review = case_file.current_level != ApprovalLevel.JUDGE and case_file.status in (
            CaseFileStatus.PENDING_APPROVAL,
            CaseFileStatus.DRAFT,
        )
        if not under_review:
            raise InvalidTransition(
                current=f"{case_file.status}@{case_file.current_level}",
                target=target,
                reason="The case file is not under review.",
            )

    # ── Transition plumbing ─────────────────────────────────────────

    def _transition(
        self,
        case_file_id: Any,
        expected_version: int | None,
        apply: Callable[[CaseFile], tuple[CaseFileTransition, User, str]],
        comments: str,
    ) -> CaseFile:
        """
        Run ``apply`` on the locked case file inside one transaction, then
        notify.  ``apply`` mutates the case file, appends the ledger row
        and returns ``(transition, recipient, notification_type)``.
        """
        with transaction.atomic():
            case_file = lock_for_update(
                CaseFile, case_file_id, related=("created_by", "department"),
            )
            ensure_version(case_file, expected_version)
            transition, recipient, event_type = apply(case_file)

        logger.info(
            "Case file %s: %s by user=%s (%s → %s), now %s assigned to %s",
            case_file.case_number,
            transition.action,
            transition.from_user_id,
            transition.from_level,
            transition.to_level,
            case_file.status,
            case_file.assigned_to_id,
        )
        self.dispatcher.notify(
            recipient=recipient,
            event_type=event_type,
            entity_type=NotificationEntity.CASE_FILE,
            entity_id=case_file.pk,
            metadata={
                "case_file": case_file_snapshot(case_file),
                "action": transition.action,
                "comments": comments,
            },
        )
        return case_file

    @staticmethod
    def _move(
        case_file: CaseFile,
        *,
        actor: User,
        action: str,
        status: str,
        level: str,
        assignee: User | None,
        comments: str,
        to_user: User,
    ) -> CaseFileTransition:
        from_level = case_file.current_level
        case_file.status = status
        case_file.current_level = level
        case_file.assigned_to = assignee
        compare_and_set(case_file, fields=["status", "current_level", "assigned_to"])
        return CaseFileTransition.objects.create(
            case_file=case_file,
            from_user=actor,
            to_user=to_user,
            action=action,
            from_level=from_level,
            to_level=level,
            comments=comments,
        )

    # ── Public operations ───────────────────────────────────────────

    def submit(
        self,
        case_file_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> CaseFile:
        """
        Judge sends a Draft/Rejected case file to the Appeals President of
        its department.

        Raises
        ------
        InvalidTransition
            Not Draft/Rejected at the Judge level.
        PermissionDenied
            Actor is not the assignee or not a Judge.
        NotFound
            The department has no Appeals President.
        """
        comments = (comments or "").strip()

        def apply(case_file: CaseFile):
            if case_file.status not in EDITABLE_STATUSES or case_file.current_level != ApprovalLevel.JUDGE:
                raise InvalidTransition(
                    current=case_file.status,
                    target=CaseFileStatus.PENDING_APPROVAL,
                    reason="Only draft or rejected case files can be submitted.",
                )
            self._require_assignee(case_file, actor)
            require_action(actor, CaseFileActions.SUBMIT,
                           message="Only judges can submit case files.")

            president = self.resolver.appeals_president_for(case_file.department_id)
            transition = self._move(
                case_file,
                actor=actor,
                action=CaseFileAction.SUBMIT,
                status=CaseFileStatus.PENDING_APPROVAL,
                level=ApprovalLevel.APPEALS_PRESIDENT,
                assignee=president,
                comments=comments,
                to_user=president,
            )
            return transition, president, NotificationType.CASE_FILE_ASSIGNED

        return self._transition(case_file_id, expected_version, apply, comments)

    def approve(
        self,
        case_file_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> CaseFile:
        """
        Approve at the current level.

        - Appeals President: forward to the Secretary General (still
          pending).
        - Secretary General: final approval, file becomes Approved and
          unassigned; the creator is notified.
        """
        comments = (comments or "").strip()

        def apply(case_file: CaseFile):
            self._require_under_review(case_file, CaseFileStatus.APPROVED)
            self._require_assignee(case_file, actor)

            if case_file.current_level == ApprovalLevel.APPEALS_PRESIDENT:
                require_action(actor, CaseFileActions.APPROVE_APPEALS,
                               message="Only an Appeals President can approve at this level.")
                secretary = self.resolver.secretary_general()
                transition = self._move(
                    case_file,
                    actor=actor,
                    action=CaseFileAction.APPROVE,
                    status=CaseFileStatus.PENDING_APPROVAL,
                    level=ApprovalLevel.SECRETARY_GENERAL,
                    assignee=secretary,
                    comments=comments,
                    to_user=secretary,
                )
                return transition, secretary, NotificationType.CASE_FILE_ASSIGNED

            require_action(actor, CaseFileActions.APPROVE_FINAL,
                           message="Only the Secretary General can give final approval.")
            transition = self._move(
                case_file,
                actor=actor,
                action=CaseFileAction.APPROVE,
                status=CaseFileStatus.APPROVED,
                level=ApprovalLevel.SECRETARY_GENERAL,
                assignee=None,
                comments=comments,
                to_user=actor,
            )
            return transition, case_file.created_by, NotificationType.CASE_FILE_APPROVED

        return self._transition(case_file_id, expected_version, apply, comments)

    def reject(
        self,
        case_file_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> CaseFile:
        """
        Reject at any reviewer level.  The file goes back to its creator
        as Rejected at the Judge level.  Comments are mandatory.
        """
        comments = self._require_comments(comments, "reject")

        def apply(case_file: CaseFile):
            self._require_under_review(case_file, CaseFileStatus.REJECTED)
            self._require_assignee(case_file, actor)
            creator = case_file.created_by
            transition = self._move(
                case_file,
                actor=actor,
                action=CaseFileAction.REJECT,
                status=CaseFileStatus.REJECTED,
                level=ApprovalLevel.JUDGE,
                assignee=creator,
                comments=comments,
                to_user=creator,
            )
            return transition, creator, NotificationType.CASE_FILE_REJECTED

        return self._transition(case_file_id, expected_version, apply, comments)

    def return_for_revision(
        self,
        case_file_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> CaseFile:
        """
        Send the case file one step back, as Draft.

        - From the Secretary General: back to the Appeals President who
          forwarded it, found through the ledger (most recent transition
          into the Secretary General level).
        - From the Appeals President: back to the creating Judge.

        Raises
        ------
        ValidationFailed
            Comments missing.
        NotFound
            No ledger row explains how the file reached the Secretary
            General, or that President is no longer active.
        """
        comments = self._require_comments(comments, "return")

        def apply(case_file: CaseFile):
            self._require_under_review(case_file, CaseFileStatus.DRAFT)
            self._require_assignee(case_file, actor)

            if case_file.current_level == ApprovalLevel.SECRETARY_GENERAL:
                forwarded = CaseFileTransition.objects.find_latest_matching(
                    case_file.pk,
                    from_level=ApprovalLevel.APPEALS_PRESIDENT,
                    to_level=ApprovalLevel.SECRETARY_GENERAL,
                )
                if forwarded is None:
                    raise NotFound(
                        f"No approval into the Secretary General level is recorded "
                        f"for case file {case_file.case_number}."
                    )
                assignee = self.resolver.user(forwarded.from_user_id)
                level = ApprovalLevel.APPEALS_PRESIDENT
            else:
                assignee = case_file.created_by
                level = ApprovalLevel.JUDGE

            transition = self._move(
                case_file,
                actor=actor,
                action=CaseFileAction.RETURN,
                status=CaseFileStatus.DRAFT,
                level=level,
                assignee=assignee,
                comments=comments,
                to_user=assignee,
            )
            return transition, assignee, NotificationType.CASE_FILE_RETURNED

        return self._transition(case_file_id, expected_version, apply, comments)
