"""
core.domain.transactions: Helpers for safe state transitions.

Provides utilities that wrap ``select_for_update`` and version-checked
updates into reusable patterns so that every workflow service follows the
same concurrency-safe approach.

Design goals
------------
* State-transition reads always lock the row first (``select_for_update``)
  to serialise concurrent transitions on one entity.
* Writes are compare-and-set on an integer ``version`` column, so a
  transition computed from a stale read fails with ``Conflict`` even on
  backends where row locks are a no-op.
* Keep the helpers **generic**: they accept any Django ``Model`` with a
  ``version`` field.

Usage::

    from django.db import transaction
    from core.domain.transactions import compare_and_set, lock_for_update

    with transaction.atomic():
        case_file = lock_for_update(CaseFile, case_file_id)
        ensure_version(case_file, expected_version)
        case_file.status = CaseFileStatus.APPROVED
        compare_and_set(case_file, fields=["status"])
        CaseFileTransition.objects.create(...)
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from django.db import models
from django.utils import timezone

from core.domain.exceptions import Conflict, NotFound

M = TypeVar("M", bound=models.Model)


def lock_for_update(model_class: type[M], pk: Any, *, related: Iterable[str] = ()) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.
        related:     Forward relations to fetch with ``select_related``.
                     Only the main table row is locked.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    queryset = model_class.objects.select_for_update(of=("self",))
    if related:
        queryset = queryset.select_related(*related)
    try:
        return queryset.get(pk=pk)
    except (model_class.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"{model_class._meta.verbose_name.title()} with pk={pk} does not exist.")


def ensure_version(instance: models.Model, expected_version: int | None) -> None:
    """
    Raise ``Conflict`` when the caller's view of ``instance`` is stale.

    ``expected_version=None`` means the caller did not pin a version.
    """
    if expected_version is not None and instance.version != expected_version:
        raise Conflict(
            f"{type(instance).__name__} {instance.pk} was modified concurrently "
            f"(expected version {expected_version}, found {instance.version})."
        )


def compare_and_set(instance: M, *, fields: Iterable[str]) -> M:
    """
    Persist ``fields`` of ``instance`` only if its stored ``version`` is
    still the one that was read, bumping the version by one.

    Args:
        instance: A model instance carrying a ``version`` integer field.
        fields:   Names of the fields whose in-memory values to write.

    Returns:
        The same instance, with ``version`` (and ``updated_at`` when the
        model has one) reflecting the stored row.

    Raises:
        Conflict: If another writer changed the row in between.
    """
    model_class = type(instance)
    current_version = instance.version

    values = {name: getattr(instance, name) for name in fields}
    values["version"] = current_version + 1
    if any(field.name == "updated_at" for field in model_class._meta.concrete_fields):
        values["updated_at"] = timezone.now()

    updated = (
        model_class.objects
        .filter(pk=instance.pk, version=current_version)
        .update(**values)
    )
    if updated != 1:
        raise Conflict(
            f"{model_class.__name__} {instance.pk} was modified concurrently; "
            "reload and try again."
        )

    for name, value in values.items():
        setattr(instance, name, value)
    return instance
