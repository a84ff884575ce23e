"""Minimal HTML documents for resolved pages.

Only the head matters to crawlers: title, description, canonical link,
robots directive and JSON-LD scripts. The body is a plain outline with
breadcrumbs, the page heading and related links.
"""

import html
import json
from typing import Any

from citystage.core.entities import DealEntity, EventEntity, ListingPage, LocalityEntity
from citystage.core.resolver import ResolvedPage
from citystage.core.urls import entity_path


def esc(text: str) -> str:
    return html.escape(text, quote=True)


def json_ld_script(data: dict[str, Any]) -> str:
    # "</" would close the script element early
    payload = json.dumps(data, ensure_ascii=False).replace("</", "<\\/")
    return f'<script type="application/ld+json">{payload}</script>'


def _heading(resolved: ResolvedPage) -> str:
    page = resolved.page
    if isinstance(page, LocalityEntity):
        return page.name
    if isinstance(page, EventEntity | DealEntity):
        return page.title
    return resolved.breadcrumbs[-1].title if resolved.breadcrumbs else resolved.metadata.title


def _item_links(page: ListingPage, city_slug: str) -> list[str]:
    lines = []
    for item in page.items:
        label = item.name if isinstance(item, LocalityEntity) else item.title
        href = entity_path(page.vertical, item.slug, city_slug)
        lines.append(f'<li><a href="{esc(href)}">{esc(label)}</a></li>')
    return lines


def render_page(resolved: ResolvedPage, *, site_name: str, city_slug: str) -> str:
    """Render a resolved page as a complete HTML document."""
    meta = resolved.metadata
    head = [
        '<meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f"<title>{esc(meta.title)}</title>",
        f'<meta name="description" content="{esc(meta.description)}">',
        f'<meta name="robots" content="{esc(meta.robots.directive)}">',
        f'<link rel="canonical" href="{esc(meta.canonical)}">',
        f'<meta property="og:title" content="{esc(meta.title)}">',
        f'<meta property="og:description" content="{esc(meta.description)}">',
        f'<meta property="og:url" content="{esc(meta.canonical)}">',
        f'<meta property="og:site_name" content="{esc(site_name)}">',
    ]
    head.extend(json_ld_script(data) for data in resolved.structured_data)

    crumbs = " › ".join(
        f'<a href="{esc(item.path)}">{esc(item.title)}</a>' for item in resolved.breadcrumbs
    )
    body = [
        f'<nav aria-label="breadcrumb"><a href="/">Home</a> › {crumbs}</nav>' if crumbs else "",
        f"<h1>{esc(_heading(resolved))}</h1>",
        f"<p>{esc(meta.description)}</p>",
    ]
    if isinstance(resolved.page, ListingPage):
        items = _item_links(resolved.page, city_slug)
        body.append(f"<ul>{''.join(items)}</ul>" if items else "<p>Nothing listed yet.</p>")
    if resolved.links:
        related = "".join(
            f'<li><a href="{esc(href)}">{esc(name.capitalize())}</a></li>' for name, href in resolved.links.items()
        )
        body.append(f"<ul>{related}</ul>")

    return (
        "<!doctype html>\n"
        '<html lang="en">\n'
        f"<head>\n{chr(10).join(head)}\n</head>\n"
        f"<body>\n<main>\n{chr(10).join(part for part in body if part)}\n</main>\n</body>\n"
        "</html>\n"
    )


def render_error(status: int, message: str, *, site_name: str) -> str:
    """Generic error document; never carries internal detail."""
    title = f"{message} | {site_name}"
    return (
        "<!doctype html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        '<meta name="robots" content="noindex, nofollow">\n'
        f"<title>{esc(title)}</title>\n"
        "</head>\n"
        f"<body>\n<main>\n<h1>{status} {esc(message)}</h1>\n"
        '<p><a href="/">Back to home</a></p>\n'
        "</main>\n</body>\n"
        "</html>\n"
    )
