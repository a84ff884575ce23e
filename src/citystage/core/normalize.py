"""Normalization of heterogeneous stored field shapes.

Upstream rows mix scalar, list and nested-object representations for
logically identical fields: a locality's PIN codes may be ``"302017"`` or
``["302017", "302018"]``, nearby localities may be plain names or objects
with a ``name`` key. Every entity is built through these helpers so the rest
of the package only ever sees deduplicated lists of display strings.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

# Keys inspected, in order, to find the display text of a nested object
NAME_KEYS = ("name", "title", "label")


def to_list(value: object) -> list[str]:
    """Coerce a value into a list of unique display strings.

    Args:
        value: String, number, boolean, mapping or (nested) list of these

    Returns:
        Trimmed, non-empty strings with case-insensitive duplicates removed,
        keeping the first-seen casing and order. Empty for ``None`` or
        unrecognizable input.
    """
    result: list[str] = []
    seen: set[str] = set()
    for text in _iter_texts(value):
        cleaned = text.strip()
        if not cleaned:
            continue
        key = cleaned.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


def to_text(value: object, sep: str = ", ") -> str:
    """Coerce a value into a single display string.

    Args:
        value: Anything accepted by ``to_list``
        sep: Separator placed between multiple values

    Returns:
        Joined display text, empty string when nothing is displayable
    """
    return sep.join(to_list(value))


def first_text(value: object) -> str | None:
    """Return the first display string of a value, or None."""
    items = to_list(value)
    return items[0] if items else None


def to_float(value: object) -> float | None:
    """Coerce a numeric or numeric-string field into a finite float."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def to_bool(value: object) -> bool:
    """Coerce a flag field stored as bool, number or text."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"true", "t", "yes", "y", "1"}
    return False


def _iter_texts(value: object) -> Iterable[str]:
    if value is None:
        return
    if isinstance(value, str):
        yield value
    elif isinstance(value, bool):
        yield "Yes" if value else "No"
    elif isinstance(value, int):
        yield str(value)
    elif isinstance(value, float):
        if math.isfinite(value):
            yield str(int(value)) if value.is_integer() else str(value)
    elif isinstance(value, Mapping):
        yield from _iter_mapping(value)
    elif isinstance(value, list | tuple | set | frozenset):
        for item in value:
            yield from _iter_texts(item)
    else:
        logger.debug(f"Dropping value of unexpected type {type(value).__name__}")


def _iter_mapping(value: Mapping[object, object]) -> Iterable[str]:
    for key in NAME_KEYS:
        if key in value:
            name = to_text(value[key], sep=" ")
            if name:
                yield name
                return

    # Keyed maps such as {"metro": "Durgapura", "bus": ["AC-1", "AC-3"]}
    for key, item in value.items():
        text = to_text(item)
        if text:
            yield f"{_label(str(key))}: {text}"


def _label(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip().capitalize()


SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_slug(text: str) -> bool:
    """Check whether text is already a URL slug (lowercase, dash-separated)."""
    return SLUG_RE.match(text) is not None


def slugify(text: str) -> str:
    """Convert free text into a URL slug ("Malviya Nagar" -> "malviya-nagar")."""
    lowered = text.lower().strip().replace("&", " and ")
    return re.sub(r"[^a-z0-9]+", "-", lowered).strip("-")


def titleize(slug: str) -> str:
    """Convert a slug into display text ("event-tickets" -> "Event Tickets")."""
    return " ".join(word.capitalize() for word in slug.replace("_", "-").split("-") if word)
