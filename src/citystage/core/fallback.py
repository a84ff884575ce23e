"""Path-shape rules for paths the registry does not know yet.

New content becomes reachable before the registry sync job catches up by
inferring the vertical from the path itself. Rules are evaluated in order
and the first match wins; rules of different verticals must never be able
to match the same path, which is checked when the resolver is built.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from citystage.core.normalize import is_slug
from citystage.core.types import PageKind, Vertical, path_segments

SLUG = "{slug}"
CATEGORY = "{category}"
CAPTURES = (SLUG, CATEGORY)


@dataclass(frozen=True)
class PageTarget:
    """What a path points at: a vertical plus the keys needed to fetch it."""

    vertical: Vertical
    kind: PageKind = PageKind.ENTITY
    slug: str | None = None
    category: str | None = None
    entity_id: str | None = None
    alias: bool = False


@dataclass(frozen=True)
class FallbackRule:
    """Segment template mapped to a vertical and page kind.

    Template segments are literals or the captures ``{slug}`` and
    ``{category}``. Captures only match slug-shaped segments.
    """

    template: tuple[str, ...]
    vertical: Vertical
    kind: PageKind
    alias: bool = False

    @classmethod
    def parse(
        cls,
        pattern: str,
        vertical: Vertical,
        kind: PageKind = PageKind.ENTITY,
        *,
        alias: bool = False,
    ) -> FallbackRule:
        """Build a rule from a pattern like "/events/category/{category}"."""
        return cls(template=tuple(path_segments(pattern)), vertical=vertical, kind=kind, alias=alias)

    @property
    def pattern(self) -> str:
        return "/" + "/".join(self.template)

    def match(self, segments: list[str]) -> PageTarget | None:
        if len(segments) != len(self.template):
            return None

        captured: dict[str, str] = {}
        for expected, actual in zip(self.template, segments, strict=True):
            if expected in CAPTURES:
                if not is_slug(actual):
                    return None
                captured[expected] = actual
            elif expected != actual:
                return None

        return PageTarget(
            vertical=self.vertical,
            kind=self.kind,
            slug=captured.get(SLUG),
            category=captured.get(CATEGORY),
            alias=self.alias,
        )

    def overlaps(self, other: FallbackRule) -> bool:
        """Check whether some path could match both rules."""
        if len(self.template) != len(other.template):
            return False
        for left, right in zip(self.template, other.template, strict=True):
            if not _segments_overlap(left, right):
                return False
        return True


def _segments_overlap(left: str, right: str) -> bool:
    if left in CAPTURES and right in CAPTURES:
        return True
    if left in CAPTURES:
        return is_slug(right)
    if right in CAPTURES:
        return is_slug(left)
    return left == right


def default_rules(city_slug: str) -> list[FallbackRule]:
    """Routing rules for the public URL scheme.

    Locality pages live under the city token ("/jaipur/malviya-nagar");
    "/localities/{slug}" is kept as an alias that redirects there.
    """
    return [
        FallbackRule.parse(f"/{city_slug}/{SLUG}", Vertical.LOCALITY),
        FallbackRule.parse("/localities", Vertical.LOCALITY, PageKind.COLLECTION),
        FallbackRule.parse(f"/localities/{SLUG}", Vertical.LOCALITY, alias=True),
        *_facet_rules("events", Vertical.EVENT),
        *_facet_rules("deals", Vertical.DEAL),
    ]


def _facet_rules(prefix: str, vertical: Vertical) -> list[FallbackRule]:
    return [
        FallbackRule.parse(f"/{prefix}", vertical, PageKind.COLLECTION),
        FallbackRule.parse(f"/{prefix}/{SLUG}", vertical),
        FallbackRule.parse(f"/{prefix}/category/{CATEGORY}", vertical, PageKind.CATEGORY),
        FallbackRule.parse(f"/{prefix}/locality/{SLUG}", vertical, PageKind.LOCALITY),
        FallbackRule.parse(
            f"/{prefix}/category/{CATEGORY}/locality/{SLUG}",
            vertical,
            PageKind.CATEGORY_LOCALITY,
        ),
    ]


def find_conflicts(rules: Iterable[FallbackRule]) -> list[tuple[FallbackRule, FallbackRule]]:
    """Return pairs of rules of different verticals that share a path."""
    ordered = list(rules)
    conflicts: list[tuple[FallbackRule, FallbackRule]] = []
    for i, rule in enumerate(ordered):
        for other in ordered[i + 1 :]:
            if rule.vertical != other.vertical and rule.overlaps(other):
                conflicts.append((rule, other))
    return conflicts


class FallbackResolver:
    """Ordered path-shape inference of the vertical behind a path."""

    def __init__(self, rules: list[FallbackRule]) -> None:
        """Initialize resolver.

        Args:
            rules: Rules in evaluation order

        Raises:
            ValueError: If two rules of different verticals can match the same path
        """
        conflicts = find_conflicts(rules)
        if conflicts:
            described = ", ".join(f"{a.pattern} ({a.vertical}) vs {b.pattern} ({b.vertical})" for a, b in conflicts)
            raise ValueError(f"Ambiguous fallback rules: {described}")
        self._rules = list(rules)

    @classmethod
    def for_city(cls, city_slug: str) -> FallbackResolver:
        """Build a resolver with the default rules for a city token."""
        if not is_slug(city_slug):
            raise ValueError(f"City token must be a slug: {city_slug!r}")
        return cls(default_rules(city_slug))

    @property
    def rules(self) -> list[FallbackRule]:
        return list(self._rules)

    def infer_vertical(self, path: str) -> PageTarget | None:
        """Infer the page target for a path.

        Args:
            path: URL path (e.g., "/events/holi-fest")

        Returns:
            PageTarget from the first matching rule, None when no rule matches
        """
        segments = path_segments(path)
        for rule in self._rules:
            target = rule.match(segments)
            if target is not None:
                return target
        return None
