"""Page endpoints.

Serves resolved pages as HTML documents (the public catch-all route) and
as JSON with metadata, breadcrumbs and structured data.
"""

import logging
from datetime import UTC
from email.utils import format_datetime
from hashlib import md5

from aiohttp import web

from citystage.app_keys import config_key, services_key
from citystage.core.document import render_error, render_page
from citystage.core.errors import NotFound, UpstreamTimeout, UpstreamUnavailable
from citystage.core.resolver import ResolvedPage

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=600"


def create_pages_routes() -> list[web.RouteDef]:
    return [
        web.get("/api/pages/{path:.*}", get_page),
    ]


async def get_page(request: web.Request) -> web.Response:
    path = request.match_info["path"]
    services = request.app[services_key]

    try:
        resolved = await services.resolver.resolve(path)
    except (NotFound, UpstreamTimeout):
        return web.json_response({"error": "Page not found", "path": path}, status=404)
    except UpstreamUnavailable as e:
        logger.error(f"Cannot resolve /{path}: {e}")
        return web.json_response({"error": "Service unavailable"}, status=503)

    if resolved.redirect_to is not None:
        raise web.HTTPMovedPermanently(location=f"/api/pages{resolved.redirect_to}")

    return _cached_response(request, resolved, web.json_response(resolved.to_dict()))


async def serve_page(request: web.Request) -> web.Response:
    """Serve the HTML document for any public path."""
    path = request.match_info["path"]
    config = request.app[config_key]
    services = request.app[services_key]

    try:
        resolved = await services.resolver.resolve(path)
    except (NotFound, UpstreamTimeout):
        return _error_page(404, "Page not found", config.site.name)
    except UpstreamUnavailable as e:
        logger.error(f"Cannot resolve /{path}: {e}")
        return _error_page(503, "Service temporarily unavailable", config.site.name)

    if resolved.redirect_to is not None:
        raise web.HTTPMovedPermanently(location=resolved.redirect_to)

    document = render_page(resolved, site_name=config.site.name, city_slug=config.site.city_slug)
    return _cached_response(request, resolved, web.Response(text=document, content_type="text/html"))


def _cached_response(request: web.Request, resolved: ResolvedPage, response: web.Response) -> web.Response:
    etag = _compute_etag(response.body)
    if request.headers.get("If-None-Match") == etag:
        return web.Response(status=304, headers={"ETag": etag})

    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = CACHE_CONTROL
    last_modified = resolved.last_modified
    if last_modified is not None and last_modified.tzinfo is not None:
        response.headers["Last-Modified"] = format_datetime(last_modified.astimezone(UTC), usegmt=True)
    return response


def _error_page(status: int, message: str, site_name: str) -> web.Response:
    return web.Response(
        status=status,
        text=render_error(status, message, site_name=site_name),
        content_type="text/html",
    )


def _compute_etag(content: bytes) -> str:
    # First 16 hex chars (64 bits) are enough to detect changes
    content_hash = md5(content, usedforsecurity=False).hexdigest()[:16]
    return f'"{content_hash}"'
