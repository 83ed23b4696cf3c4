"""
News app service layer.

All business logic for writing, reviewing and publishing news lives here.
Views call these services and serialise whatever they return.

Workflow
--------
::

    Draft ──submit──▶ Pending Director ──approve (advisory/communique)──▶ Published
      ▲                  │     │
      │                  │     └──approve (notice)──▶ Pending President ──publish──▶ Published
      └──────reject──────┴───────────────────────────────────┘

    court submission (judge / appeals president) ──▶ Pending Director

A Press Director submitting their own item counts as the director's
approval: notices go straight to Pending President, advisories and
communiques are published immediately.

Every transition runs inside one ``transaction.atomic`` block (row lock,
version compare-and-set, one ``NewsTransition`` row).  Notifications are
sent after the block has committed.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from django.core.files.storage import default_storage
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, QuerySet
from django.utils import timezone

from accounts.directory import ApproverResolver
from accounts.models import User
from core.constants import RoleCode
from core.domain.access import (
    ScopeRule,
    apply_permission_scope,
    get_user_role_code,
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
from core.domain.slugs import generate_unique_slug
from core.domain.transactions import compare_and_set, ensure_version, lock_for_update
from core.models import NotificationEntity, NotificationType
from core.permissions_constants import NewsActions

from .models import (
    DIRECTOR_ONLY_TYPES,
    NewsAction,
    NewsItem,
    NewsStatus,
    NewsTransition,
    NewsType,
)

logger = logging.getLogger(__name__)

# (recipients, notification type) pairs produced by a transition.
Notice = tuple[list[User | None], str]


# ═══════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════

NEWS_SCOPE_RULES: list[ScopeRule] = [
    (NewsActions.VIEW_ALL, lambda qs, u: qs),
]


def news_snapshot(news: NewsItem) -> dict[str, Any]:
    """Denormalised view of a news item stored in notification metadata."""
    return {
        "id": news.pk,
        "title": news.title,
        "slug": news.slug,
        "type": news.type,
        "status": news.status,
    }


def unique_news_slug(title: str, *, exclude_pk: int | None = None) -> str:
    """Slug for ``title`` that no other news item uses."""
    others = NewsItem.objects.all()
    if exclude_pk is not None:
        others = others.exclude(pk=exclude_pk)
    return generate_unique_slug(title, exists=lambda candidate: others.filter(slug=candidate).exists())


def _remove_stored_file(name: str) -> None:
    if not name:
        return
    try:
        default_storage.delete(name)
    except OSError:
        logger.exception("Could not remove stored image %s", name)


# ═══════════════════════════════════════════════════════════════════
#  Query Service
# ═══════════════════════════════════════════════════════════════════

class NewsQueryService:
    """Read-side operations for the internal and the public site."""

    @staticmethod
    def get_filtered_queryset(
        requesting_user: User,
        filters: dict[str, Any] | None = None,
    ) -> QuerySet[NewsItem]:
        """
        Internal listing.  Press roles, the President of the Council and
        admins see everything; everyone else sees what they authored.

        ``filters``: ``status``, ``type``, ``search``.
        """
        qs = apply_permission_scope(
            NewsItem.objects.select_related("author", "approved_by_director", "approved_by_president"),
            requesting_user,
            scope_rules=NEWS_SCOPE_RULES,
            fallback=lambda qs, u: qs.filter(author=u),
        )
        filters = filters or {}
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("type"):
            qs = qs.filter(type=filters["type"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(Q(title__icontains=term) | Q(subtitle__icontains=term))
        return qs.order_by("-created_at")

    @staticmethod
    def get_news_detail(requesting_user: User, news_id: Any) -> NewsItem:
        try:
            return NewsQueryService.get_filtered_queryset(requesting_user).get(pk=news_id)
        except (NewsItem.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"News item with id {news_id} not found.")

    @staticmethod
    def get_public_queryset(filters: dict[str, Any] | None = None) -> QuerySet[NewsItem]:
        """Published items only, most recently published first."""
        qs = NewsItem.objects.filter(status=NewsStatus.PUBLISHED).select_related("author")
        filters = filters or {}
        if filters.get("type"):
            qs = qs.filter(type=filters["type"])
        if filters.get("search"):
            term = filters["search"]
            qs = qs.filter(
                Q(title__icontains=term)
                | Q(subtitle__icontains=term)
                | Q(content__icontains=term)
            )
        return qs.order_by("-published_at")

    @staticmethod
    def get_published_by_slug(slug: str) -> NewsItem:
        """
        Raises
        ------
        NotFound
            If no *published* item has this slug.
        """
        try:
            return NewsQueryService.get_public_queryset().get(slug=slug)
        except NewsItem.DoesNotExist:
            raise NotFound(f"News item '{slug}' not found.")

    @staticmethod
    def get_approval_history(requesting_user: User, news_id: Any) -> QuerySet[NewsTransition]:
        news = NewsQueryService.get_news_detail(requesting_user, news_id)
        return NewsTransition.objects.history(news.pk).select_related("from_user", "to_user")

    @staticmethod
    def get_statistics(requesting_user: User) -> dict[str, Any]:
        """Counts by status and type, plus items published this month."""
        qs = NewsQueryService.get_filtered_queryset(requesting_user).order_by()

        by_status = {value: 0 for value in NewsStatus.values}
        for row in qs.values("status").annotate(count=Count("id")):
            by_status[row["status"]] = row["count"]

        by_type = {value: 0 for value in NewsType.values}
        for row in qs.values("type").annotate(count=Count("id")):
            by_type[row["type"]] = row["count"]

        month_start = timezone.localtime().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_type": by_type,
            "published_this_month": qs.filter(
                status=NewsStatus.PUBLISHED,
                published_at__gte=month_start,
            ).count(),
        }


# ═══════════════════════════════════════════════════════════════════
#  Editing Service
# ═══════════════════════════════════════════════════════════════════

class NewsEditingService:
    """Create, edit and delete drafts."""

    @staticmethod
    def _require_editor(news: NewsItem, user: User) -> None:
        if news.author_id != user.pk and not user_can(user, NewsActions.EDIT_ANY):
            raise PermissionDenied("Only the author, the Press Director or an admin can change this news item.")

    @staticmethod
    def _require_draft(news: NewsItem, verb: str) -> None:
        if news.status != NewsStatus.DRAFT:
            raise InvalidTransition(f"News item can only be {verb} while draft (currently {news.status}).")

    @staticmethod
    def create_news(validated_data: dict[str, Any], requesting_user: User) -> NewsItem:
        """
        Write a new Draft.  Press Technicians and the Press Director only.

        Raises
        ------
        PermissionDenied, ValidationFailed (title yields no slug),
        Conflict (slug taken by a concurrent writer).
        """
        require_action(requesting_user, NewsActions.CREATE,
                       message="Only the press office can write news.")
        try:
            with transaction.atomic():
                news = NewsItem.objects.create(
                    title=validated_data["title"],
                    subtitle=validated_data.get("subtitle", ""),
                    slug=unique_news_slug(validated_data["title"]),
                    content=validated_data["content"],
                    type=validated_data["type"],
                    status=NewsStatus.DRAFT,
                    image=validated_data.get("image") or "",
                    author=requesting_user,
                )
        except IntegrityError:
            raise Conflict("Another news item with the same title was saved at the same time; retry.")

        logger.info("News %s (pk=%d, %s) drafted by user=%s",
                    news.slug, news.pk, news.type, requesting_user.pk)
        return news

    @staticmethod
    def update_news(news_id: Any, validated_data: dict[str, Any], requesting_user: User) -> NewsItem:
        """
        Edit a Draft.  A new title regenerates the slug; ``image`` replaces
        the attached image and ``remove_image`` detaches it.  Replaced or
        removed files are deleted from storage after commit.
        """
        data = dict(validated_data)
        expected_version = data.pop("version", None)
        new_image = data.pop("image", None)
        remove_image = data.pop("remove_image", False)

        with transaction.atomic():
            news = lock_for_update(NewsItem, news_id)
            ensure_version(news, expected_version)
            NewsEditingService._require_draft(news, "edited")
            NewsEditingService._require_editor(news, requesting_user)

            changed: list[str] = []
            for name in ("title", "subtitle", "content", "type"):
                if name in data and data[name] != getattr(news, name):
                    setattr(news, name, data[name])
                    changed.append(name)
            if "title" in changed:
                news.slug = unique_news_slug(news.title, exclude_pk=news.pk)
                changed.append("slug")

            old_image = news.image.name if news.image else ""
            if new_image is not None:
                news.image.save(new_image.name, new_image, save=False)
                changed.append("image")
            elif remove_image and old_image:
                news.image = ""
                changed.append("image")

            if changed:
                compare_and_set(news, fields=changed)
            if "image" in changed and old_image:
                transaction.on_commit(lambda: _remove_stored_file(old_image))

        logger.info("News %s updated by user=%s (%s)",
                    news.pk, requesting_user.pk, ", ".join(changed) or "no changes")
        return news

    @staticmethod
    def delete_news(news_id: Any, requesting_user: User) -> None:
        """Hard-delete a Draft and, after commit, its stored image."""
        with transaction.atomic():
            news = lock_for_update(NewsItem, news_id)
            NewsEditingService._require_draft(news, "deleted")
            NewsEditingService._require_editor(news, requesting_user)

            image_name = news.image.name if news.image else ""
            slug = news.slug
            news.delete()
            transaction.on_commit(lambda: _remove_stored_file(image_name))

        logger.info("News %s deleted by user=%s", slug, requesting_user.pk)


# ═══════════════════════════════════════════════════════════════════
#  Workflow Service
# ═══════════════════════════════════════════════════════════════════

class NewsWorkflowService:
    """
    Submit / approve / publish / reject transitions and court submissions.

    Parameters
    ----------
    resolver : ApproverResolver, optional
        Source of the Press Director and the President of the Council.
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

    # ── Transition plumbing ─────────────────────────────────────────

    def _transition(
        self,
        news_id: Any,
        expected_version: int | None,
        apply: Callable[[NewsItem], tuple[NewsTransition, list[Notice]]],
        comments: str,
    ) -> NewsItem:
        with transaction.atomic():
            news = lock_for_update(NewsItem, news_id, related=("author",))
            ensure_version(news, expected_version)
            transition, notices = apply(news)

        self._after_commit(news, transition, notices, comments)
        return news

    def _after_commit(
        self,
        news: NewsItem,
        transition: NewsTransition,
        notices: list[Notice],
        comments: str,
    ) -> None:
        logger.info(
            "News %s: %s by user=%s (%s → %s)",
            news.pk,
            transition.action,
            transition.from_user_id,
            transition.from_status or "-",
            transition.to_status,
        )
        for recipients, event_type in notices:
            self.dispatcher.notify_many(
                recipients=recipients,
                event_type=event_type,
                entity_type=NotificationEntity.NEWS,
                entity_id=news.pk,
                metadata={
                    "news": news_snapshot(news),
                    "action": transition.action,
                    "comments": comments,
                },
            )

    @staticmethod
    def _move(
        news: NewsItem,
        *,
        actor: User,
        action: str,
        status: str,
        to_user: User | None,
        comments: str,
        fields: tuple[str, ...] = (),
    ) -> NewsTransition:
        from_status = news.status
        news.status = status
        compare_and_set(news, fields=["status", *fields])
        return NewsTransition.objects.create(
            news=news,
            from_user=actor,
            to_user=to_user,
            action=action,
            from_status=from_status,
            to_status=status,
            comments=comments,
        )

    @classmethod
    def _publish(cls, news: NewsItem, *, actor: User, action: str, comments: str,
                 fields: tuple[str, ...]) -> NewsTransition:
        news.published_at = timezone.now()
        return cls._move(
            news,
            actor=actor,
            action=action,
            status=NewsStatus.PUBLISHED,
            to_user=None,
            comments=comments,
            fields=("published_at", *fields),
        )

    @staticmethod
    def _require_status(news: NewsItem, expected: str, target: str) -> None:
        if news.status != expected:
            raise InvalidTransition(
                current=news.status,
                target=target,
                reason=f"The news item must be {expected}.",
            )

    # ── Public operations ───────────────────────────────────────────

    def submit_to_director(
        self,
        news_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> NewsItem:
        """
        The author sends a Draft for review.

        - Any author but the Press Director: to Pending Director.
        - The Press Director: their submission is the director approval;
          a notice goes to Pending President, an advisory or communique is
          published at once.

        Sending the Director's own advisory or communique to Pending
        President, as the plain transition table reads, would leave it
        stuck: ``approve_by_president`` accepts notices only.  It is
        published here instead.
        """
        comments = (comments or "").strip()

        def apply(news: NewsItem):
            self._require_status(news, NewsStatus.DRAFT, NewsStatus.PENDING_DIRECTOR)
            if news.author_id != actor.pk:
                raise PermissionDenied("Only the author can submit this news item.")

            if get_user_role_code(actor) != RoleCode.PRESS_DIRECTOR:
                director = self.resolver.press_director()
                transition = self._move(
                    news,
                    actor=actor,
                    action=NewsAction.SUBMIT,
                    status=NewsStatus.PENDING_DIRECTOR,
                    to_user=director,
                    comments=comments,
                )
                return transition, [([director], NotificationType.NEWS_PENDING_APPROVAL)]

            news.approved_by_director = actor
            if news.type in DIRECTOR_ONLY_TYPES:
                transition = self._publish(
                    news,
                    actor=actor,
                    action=NewsAction.APPROVE_AND_PUBLISH,
                    comments=comments,
                    fields=("approved_by_director",),
                )
                return transition, []

            president = self.resolver.council_president()
            transition = self._move(
                news,
                actor=actor,
                action=NewsAction.SUBMIT,
                status=NewsStatus.PENDING_PRESIDENT,
                to_user=president,
                comments=comments,
                fields=("approved_by_director",),
            )
            return transition, [([president], NotificationType.NEWS_PENDING_APPROVAL)]

        return self._transition(news_id, expected_version, apply, comments)

    def approve_by_director(
        self,
        news_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> NewsItem:
        """
        Press Director review of a Pending Director item: advisories and
        communiques are published, notices are forwarded to the President
        of the Council.
        """
        comments = (comments or "").strip()

        def apply(news: NewsItem):
            self._require_status(news, NewsStatus.PENDING_DIRECTOR, NewsStatus.PUBLISHED)
            require_action(actor, NewsActions.APPROVE_DIRECTOR,
                           message="Only the Press Director can approve at this stage.")

            news.approved_by_director = actor
            if news.type in DIRECTOR_ONLY_TYPES:
                transition = self._publish(
                    news,
                    actor=actor,
                    action=NewsAction.APPROVE_AND_PUBLISH,
                    comments=comments,
                    fields=("approved_by_director",),
                )
                return transition, [([news.author], NotificationType.NEWS_PUBLISHED)]

            president = self.resolver.council_president()
            transition = self._move(
                news,
                actor=actor,
                action=NewsAction.APPROVE,
                status=NewsStatus.PENDING_PRESIDENT,
                to_user=president,
                comments=comments,
                fields=("approved_by_director",),
            )
            return transition, [
                ([president], NotificationType.NEWS_PENDING_APPROVAL),
                ([news.author], NotificationType.NEWS_FORWARDED),
            ]

        return self._transition(news_id, expected_version, apply, comments)

    def approve_by_president(
        self,
        news_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> NewsItem:
        """Publish a notice approved by the Press Director."""
        comments = (comments or "").strip()

        def apply(news: NewsItem):
            self._require_status(news, NewsStatus.PENDING_PRESIDENT, NewsStatus.PUBLISHED)
            require_action(actor, NewsActions.APPROVE_PRESIDENT,
                           message="Only the President of the Council can approve at this stage.")
            if news.type != NewsType.NOTICE:
                raise InvalidTransition(
                    current=news.status,
                    target=NewsStatus.PUBLISHED,
                    reason="Only notices require the President's approval.",
                )
            if news.approved_by_director_id is None:
                raise InvalidTransition(
                    current=news.status,
                    target=NewsStatus.PUBLISHED,
                    reason="The Press Director has not approved this notice.",
                )

            news.approved_by_president = actor
            transition = self._publish(
                news,
                actor=actor,
                action=NewsAction.PUBLISH,
                comments=comments,
                fields=("approved_by_president",),
            )
            return transition, [
                ([news.author, news.approved_by_director], NotificationType.NEWS_PUBLISHED),
            ]

        return self._transition(news_id, expected_version, apply, comments)

    def reject(
        self,
        news_id: Any,
        actor: User,
        *,
        comments: str = "",
        expected_version: int | None = None,
    ) -> NewsItem:
        """
        Send a pending item back to Draft.  The Press Director rejects at
        Pending Director, the President of the Council at Pending
        President.  Comments are mandatory.  A previous director approval
        is cleared because the author may now change the text.
        """
        comments = (comments or "").strip()
        if not comments:
            raise ValidationFailed("Comments are required to reject a news item.")

        def apply(news: NewsItem):
            if news.status == NewsStatus.PENDING_DIRECTOR:
                require_action(actor, NewsActions.APPROVE_DIRECTOR,
                               message="Only the Press Director can reject at this stage.")
            elif news.status == NewsStatus.PENDING_PRESIDENT:
                require_action(actor, NewsActions.APPROVE_PRESIDENT,
                               message="Only the President of the Council can reject at this stage.")
            else:
                raise InvalidTransition(
                    current=news.status,
                    target=NewsStatus.DRAFT,
                    reason="Only pending news items can be rejected.",
                )

            news.approved_by_director = None
            transition = self._move(
                news,
                actor=actor,
                action=NewsAction.REJECT,
                status=NewsStatus.DRAFT,
                to_user=news.author,
                comments=comments,
                fields=("approved_by_director",),
            )
            return transition, [([news.author], NotificationType.NEWS_REJECTED)]

        return self._transition(news_id, expected_version, apply, comments)

    def submit_from_court(self, validated_data: dict[str, Any], actor: User) -> NewsItem:
        """
        A Judge or Appeals President files an advisory or communique for
        publication.  The item is created directly at Pending Director.

        Raises
        ------
        PermissionDenied
            Caller is not a Judge or Appeals President.
        ValidationFailed
            The type is a notice.
        NotFound
            No Press Director exists.
        """
        require_action(actor, NewsActions.COURT_SUBMISSION,
                       message="Only judges and appeals presidents can submit news from a court.")
        if validated_data["type"] not in DIRECTOR_ONLY_TYPES:
            raise ValidationFailed("Courts can only submit advisories or communiques.")
        comments = (validated_data.get("comments") or "").strip()

        try:
            with transaction.atomic():
                director = self.resolver.press_director()
                news = NewsItem.objects.create(
                    title=validated_data["title"],
                    subtitle=validated_data.get("subtitle", ""),
                    slug=unique_news_slug(validated_data["title"]),
                    content=validated_data["content"],
                    type=validated_data["type"],
                    status=NewsStatus.PENDING_DIRECTOR,
                    image=validated_data.get("image") or "",
                    author=actor,
                )
                transition = NewsTransition.objects.create(
                    news=news,
                    from_user=actor,
                    to_user=director,
                    action=NewsAction.COURT_SUBMISSION,
                    from_status="",
                    to_status=NewsStatus.PENDING_DIRECTOR,
                    comments=comments,
                )
        except IntegrityError:
            raise Conflict("Another news item with the same title was saved at the same time; retry.")

        self._after_commit(
            news,
            transition,
            [([director], NotificationType.NEWS_COURT_SUBMISSION)],
            comments,
        )
        return news
