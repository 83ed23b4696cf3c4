"""
Accounts app models.

Defines the department directory and a custom User model that extends
Django's ``AbstractUser``.  Every user holds exactly one role code (see
``core.constants.RoleCode``) and optionally belongs to one department;
together they are what the workflows use to find the next approver.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models

from core.constants import RoleCode
from core.models import TimeStampedModel
from core.permissions_constants import ROLE_ACTIONS


class DepartmentType(models.TextChoices):
    COURT = "court", "Court"
    APPEALS_COURT = "appeals_court", "Appeals Court"
    COUNCIL = "council", "Council"
    PRESS_OFFICE = "press_office", "Press Office"
    ADMINISTRATION = "administration", "Administration"


class Department(TimeStampedModel):
    """
    Organisational unit (court, appeals court, office).

    Case files belong to a department; the Appeals President of that
    department is the first reviewer of every case file filed in it.
    Departments are reference data maintained through the admin site.
    """

    name = models.CharField(max_length=255, verbose_name="Name")
    code = models.CharField(
        max_length=50,
        unique=True,
        verbose_name="Code",
    )
    department_type = models.CharField(
        max_length=20,
        choices=DepartmentType.choices,
        default=DepartmentType.COURT,
        verbose_name="Department Type",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
        verbose_name="Parent Department",
    )
    is_active = models.BooleanField(default=True, verbose_name="Active")

    class Meta:
        verbose_name = "Department"
        verbose_name_plural = "Departments"
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class User(AbstractUser):
    """
    Custom user model for the judicial administration backend.

    Login is supported via *any one* of username / national_id /
    phone_number / email together with the password.

    Each user holds exactly **one** role at a time.  New accounts default
    to ``citizen`` until an administrator assigns a working role.
    """

    national_id = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="National ID",
        db_index=True,
    )
    phone_number = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="Phone Number",
        db_index=True,
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    # ── Role and department (directory lookups) ──────────────────────
    role = models.CharField(
        max_length=30,
        choices=RoleCode.choices,
        default=RoleCode.CITIZEN,
        db_index=True,
        verbose_name="Role",
    )
    department = models.ForeignKey(
        Department,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="members",
        verbose_name="Department",
    )

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email", "national_id", "phone_number",
                       "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        indexes = [
            models.Index(fields=["role", "department"]),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_full_name()}) - {self.get_role_display()}"

    # ── Helper predicates for role checks ────────────────────────────

    def has_role(self, *role_codes: str) -> bool:
        """Check if the user's current role is one of ``role_codes``."""
        return self.role in role_codes

    @property
    def allowed_actions(self) -> list[str]:
        """
        Workflow actions the user's role may perform, for the frontend to
        render conditional UI.  Ownership rules still apply server-side.
        """
        role = RoleCode.ADMIN.value if self.is_superuser else self.role
        return sorted(action for action, roles in ROLE_ACTIONS.items() if role in roles)
