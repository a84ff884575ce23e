"""aiohttp server for Citystage.

Application factory and route registration.
"""

import logging

import httpx
from aiohttp import web

from citystage.api.pages import create_pages_routes, serve_page
from citystage.api.sitemaps import create_sitemap_routes
from citystage.app_keys import config_key, http_client_key, owns_http_client_key, services_key
from citystage.config import Config
from citystage.services import build_services

logger = logging.getLogger(__name__)


def create_app(config: Config, *, http_client: httpx.AsyncClient | None = None) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        http_client: Client for store reads; when omitted, one is opened on
                     startup and closed on cleanup

    Returns:
        Configured aiohttp application
    """
    app = web.Application()
    app[config_key] = config
    app[owns_http_client_key] = http_client is None
    if http_client is not None:
        app[http_client_key] = http_client

    app.on_startup.append(_open_store)
    app.on_cleanup.append(_close_store)

    # Fixed routes first; the page catch-all must be last
    app.router.add_routes(create_sitemap_routes())
    app.router.add_routes(create_pages_routes())
    app.router.add_get("/{path:.*}", serve_page)

    return app


async def _open_store(app: web.Application) -> None:
    """Open the shared store client and build services on startup."""
    config = app[config_key]
    if app[owns_http_client_key]:
        app[http_client_key] = httpx.AsyncClient()
    if config.store.url is None:
        logger.warning("No store URL configured; every page will be unavailable")
    app[services_key] = build_services(config, app[http_client_key])


async def _close_store(app: web.Application) -> None:
    """Close the store client on cleanup when the app opened it."""
    if app[owns_http_client_key] and http_client_key in app:
        await app[http_client_key].aclose()


def run_server(config: Config) -> None:
    """Run the server.

    Args:
        config: Application configuration
    """
    app = create_app(config)
    web.run_app(app, host=config.server.host, port=config.server.port)
