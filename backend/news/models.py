"""
News app models.

Press releases written by the press office (or submitted by courts) and
published after review.  Advisories and communiques need the Press
Director only; notices also need the President of the Council.  Every
review step is recorded in ``NewsTransition``.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import LedgerEntry, TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class NewsType(models.TextChoices):
    NOTICE = "notice", "Notice"
    ADVISORY = "advisory", "Advisory"
    COMMUNIQUE = "communique", "Communique"


# Types the Press Director alone can publish.
DIRECTOR_ONLY_TYPES = (NewsType.ADVISORY, NewsType.COMMUNIQUE)


class NewsStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_DIRECTOR = "pending_director", "Pending Director Approval"
    PENDING_PRESIDENT = "pending_president", "Pending President Approval"
    PUBLISHED = "published", "Published"


class NewsAction(models.TextChoices):
    SUBMIT = "submit", "Submit"
    APPROVE = "approve", "Approve and Forward"
    APPROVE_AND_PUBLISH = "approve_and_publish", "Approve and Publish"
    PUBLISH = "publish", "Publish"
    REJECT = "reject", "Reject"
    COURT_SUBMISSION = "court_submission", "Court Submission"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class NewsItem(TimeStampedModel):
    """
    A notice, advisory or communique.

    ``slug`` is derived from the title and made unique with a numeric
    suffix.  Database constraints guarantee that a published item has a
    ``published_at`` and that a published notice carries both approvals.
    """

    title = models.CharField(max_length=255, verbose_name="Title")
    subtitle = models.CharField(max_length=500, blank=True, default="", verbose_name="Subtitle")
    slug = models.SlugField(max_length=120, unique=True, verbose_name="Slug")
    content = models.TextField(verbose_name="Content")
    type = models.CharField(
        max_length=20,
        choices=NewsType.choices,
        verbose_name="Type",
    )
    status = models.CharField(
        max_length=20,
        choices=NewsStatus.choices,
        default=NewsStatus.DRAFT,
        db_index=True,
        verbose_name="Status",
    )
    image = models.FileField(
        upload_to="news/%Y/%m/",
        blank=True,
        verbose_name="Image",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="authored_news",
        verbose_name="Author",
    )
    approved_by_director = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Approved By Director",
    )
    approved_by_president = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Approved By President",
    )
    published_at = models.DateTimeField(null=True, blank=True, verbose_name="Published At")
    version = models.PositiveIntegerField(default=1, verbose_name="Version")

    class Meta:
        verbose_name = "News Item"
        verbose_name_plural = "News Items"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "type"]),
            models.Index(fields=["status", "published_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(status=NewsStatus.PUBLISHED) | Q(published_at__isnull=False),
                name="news_published_has_date",
            ),
            models.CheckConstraint(
                condition=(
                    ~Q(status=NewsStatus.PUBLISHED, type=NewsType.NOTICE)
                    | Q(approved_by_director__isnull=False, approved_by_president__isnull=False)
                ),
                name="news_published_notice_has_both_approvals",
            ),
        ]

    def __str__(self):
        return f"{self.title} [{self.type}, {self.status}]"


class NewsTransition(LedgerEntry):
    """
    Immutable record of one review step of a news item.

    ``from_status`` is empty for court submissions, which enter the
    workflow directly at Pending Director.  ``to_user`` is empty when the
    step published the item.
    """

    entity_field = "news"

    news = models.ForeignKey(
        NewsItem,
        on_delete=models.CASCADE,
        related_name="transitions",
        verbose_name="News Item",
    )
    action = models.CharField(
        max_length=20,
        choices=NewsAction.choices,
        verbose_name="Action",
    )
    from_status = models.CharField(
        max_length=20,
        choices=NewsStatus.choices,
        blank=True,
        verbose_name="From Status",
    )
    to_status = models.CharField(
        max_length=20,
        choices=NewsStatus.choices,
        verbose_name="To Status",
    )

    class Meta(LedgerEntry.Meta):
        verbose_name = "News Transition"
        verbose_name_plural = "News Transitions"
        indexes = [
            models.Index(fields=["news", "created_at"]),
        ]

    def __str__(self):
        return f"{self.news_id}: {self.action} {self.from_status or '-'} → {self.to_status}"
