"""Canonical path construction for every page shape.

The fallback rules, the sitemaps and the structured data all agree on
these paths, so a URL emitted anywhere resolves back to the same page.
"""

from urllib.parse import quote

from citystage.core.types import PageKind, URLPath, Vertical

# Path prefix of each vertical's collection and facet pages
VERTICAL_PREFIXES = {
    Vertical.LOCALITY: "localities",
    Vertical.EVENT: "events",
    Vertical.DEAL: "deals",
}


def entity_path(vertical: Vertical, slug: str, city_slug: str) -> URLPath:
    """Canonical path of a single entity page."""
    if vertical is Vertical.LOCALITY:
        return URLPath(f"/{city_slug}/{quote(slug)}")
    return URLPath(f"/{VERTICAL_PREFIXES[vertical]}/{quote(slug)}")


def listing_path(
    vertical: Vertical,
    kind: PageKind,
    *,
    category: str | None = None,
    locality_slug: str | None = None,
) -> URLPath:
    """Canonical path of a collection or facet page.

    Raises:
        ValueError: If a facet key required by the page kind is missing
    """
    prefix = f"/{VERTICAL_PREFIXES[vertical]}"
    if kind is PageKind.COLLECTION:
        return URLPath(prefix)
    if kind is PageKind.CATEGORY and category:
        return URLPath(f"{prefix}/category/{quote(category)}")
    if kind is PageKind.LOCALITY and locality_slug:
        return URLPath(f"{prefix}/locality/{quote(locality_slug)}")
    if kind is PageKind.CATEGORY_LOCALITY and category and locality_slug:
        return URLPath(f"{prefix}/category/{quote(category)}/locality/{quote(locality_slug)}")
    raise ValueError(f"Cannot build {kind} path for {vertical} without its facet keys")
