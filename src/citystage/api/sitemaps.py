"""Sitemap and robots.txt endpoints.

Sitemaps always answer 200 with well-formed XML; degraded fetches show up
as comments inside the document rather than as error statuses.
"""

from aiohttp import web

from citystage.api.pages import CACHE_CONTROL
from citystage.app_keys import config_key, services_key
from citystage.core.sitemap import (
    SITEMAP_FILES,
    render_robots,
    render_sitemap_index,
    render_urlset,
)

# "localities" -> Vertical.LOCALITY, from "sitemap-localities.xml"
SITEMAP_NAMES = {
    name.removeprefix("sitemap-").removesuffix(".xml"): vertical for vertical, name in SITEMAP_FILES.items()
}


def create_sitemap_routes() -> list[web.RouteDef]:
    return [
        web.get("/robots.txt", get_robots),
        web.get("/sitemap.xml", get_sitemap_index),
        web.get("/sitemap-{name:[a-z]+}.xml", get_vertical_sitemap),
    ]


async def get_robots(request: web.Request) -> web.Response:
    config = request.app[config_key]
    return web.Response(
        text=render_robots(config.site, config.robots.disallow),
        content_type="text/plain",
        headers={"Cache-Control": CACHE_CONTROL},
    )


async def get_sitemap_index(request: web.Request) -> web.Response:
    sitemaps = request.app[services_key].sitemaps
    return _xml_response(render_sitemap_index(sitemaps.build_sitemap_index()))


async def get_vertical_sitemap(request: web.Request) -> web.Response:
    vertical = SITEMAP_NAMES.get(request.match_info["name"])
    if vertical is None:
        raise web.HTTPNotFound()

    sitemaps = request.app[services_key].sitemaps
    result = await sitemaps.build_sitemap(vertical)
    return _xml_response(render_urlset(result))


def _xml_response(document: str) -> web.Response:
    return web.Response(
        text=document,
        content_type="application/xml",
        headers={"Cache-Control": CACHE_CONTROL},
    )
