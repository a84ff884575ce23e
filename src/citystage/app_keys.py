"""Application keys for type-safe app configuration access."""

import httpx
from aiohttp import web

from citystage.config import Config
from citystage.services import Services

config_key = web.AppKey("config", Config)
http_client_key = web.AppKey("http_client", httpx.AsyncClient)
owns_http_client_key = web.AppKey("owns_http_client", bool)
services_key = web.AppKey("services", Services)
