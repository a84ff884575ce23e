"""Core type definitions."""

from enum import StrEnum
from typing import NewType

# URL path for routing (e.g., "/jaipur/malviya-nagar", "/events/holi-fest")
# Always carries a leading slash and no trailing slash except for the root
URLPath = NewType("URLPath", str)


class Vertical(StrEnum):
    """Content vertical a page belongs to."""

    LOCALITY = "locality"
    EVENT = "event"
    DEAL = "deal"


class PageKind(StrEnum):
    """Shape of a resolved page within its vertical."""

    ENTITY = "entity"
    COLLECTION = "collection"
    CATEGORY = "category"
    LOCALITY = "locality"
    CATEGORY_LOCALITY = "category_locality"


def normalize_path(path: str) -> URLPath:
    """Normalize a request path to have a single leading slash.

    Trailing slashes and empty segments are dropped, so "/events//holi/"
    and "events/holi" both become "/events/holi".
    """
    segments = [segment for segment in path.split("/") if segment]
    return URLPath("/" + "/".join(segments))


def path_segments(path: str) -> list[str]:
    """Split a path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]
