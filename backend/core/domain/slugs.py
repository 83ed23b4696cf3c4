"""
core.domain.slugs: URL slug generation.

``generate_slug`` is a pure function of its input.  ``generate_unique_slug``
adds a numeric suffix (``-1``, ``-2``, ...) until the injected ``exists``
predicate reports the candidate as free, so callers decide what
"already taken" means (a queryset lookup, an in-memory set in tests).
"""

from __future__ import annotations

import re
from typing import Callable

from django.utils.text import slugify

from core.constants import SLUG_MAX_LENGTH
from core.domain.exceptions import ValidationFailed

_REPEATED_HYPHENS = re.compile(r"-{2,}")


def generate_slug(text: str, *, max_length: int = SLUG_MAX_LENGTH) -> str:
    """
    Lowercase ``text``, strip diacritics and anything that is not a letter,
    digit, space or hyphen, turn whitespace into hyphens, collapse repeated
    hyphens and truncate to ``max_length`` characters.

    >>> generate_slug("Año Judicial: Inauguración")
    'ano-judicial-inauguracion'
    """
    # slugify keeps underscores; they are not part of our slug alphabet.
    slug = slugify(text.replace("_", ""))
    slug = _REPEATED_HYPHENS.sub("-", slug)
    return slug[:max_length]


def generate_unique_slug(
    text: str,
    exists: Callable[[str], bool],
    *,
    max_length: int = SLUG_MAX_LENGTH,
) -> str:
    """
    Return the first of ``slug``, ``slug-1``, ``slug-2``, ... for which
    ``exists(candidate)`` is false.

    Raises:
        ValidationFailed: If ``text`` contains nothing a slug can be made of.
    """
    base = generate_slug(text, max_length=max_length)
    if not base:
        raise ValidationFailed(f"Cannot derive a URL slug from {text!r}.")

    candidate = base
    counter = 1
    while exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
