"""CLI interface for Citystage.

Command-line tool for serving, resolving and mapping the city directory.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
import httpx

from citystage.config import Config
from citystage.core.errors import NotFound, UpstreamUnavailable
from citystage.core.sitemap import render_sitemap_index, render_urlset
from citystage.core.types import Vertical
from citystage.services import build_services

SITEMAP_CHOICES = {
    "localities": Vertical.LOCALITY,
    "events": Vertical.EVENT,
    "deals": Vertical.DEAL,
}

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover citystage.toml)",
)
store_url_option = click.option(
    "--store-url",
    default=None,
    help="Content store REST URL (overrides config)",
)
store_key_option = click.option(
    "--store-key",
    envvar="CITYSTAGE_STORE_KEY",
    default=None,
    help="Content store API key (overrides config; env: CITYSTAGE_STORE_KEY)",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output (debug logging)",
)


@click.group()
def cli() -> None:
    """Citystage - City directory pages with search-ready metadata."""


@cli.command()
@config_option
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--origin",
    default=None,
    help="Public site origin used in canonical URLs (overrides config)",
)
@store_url_option
@store_key_option
@verbose_option
def serve(
    config_path: Path | None,
    host: str | None,
    port: int | None,
    origin: str | None,
    store_url: str | None,
    store_key: str | None,
    verbose: bool,
) -> None:
    """Start the directory server."""
    from citystage.server import run_server

    _setup_logging(verbose)
    config = _load_config(config_path, host=host, port=port, origin=origin, store_url=store_url, store_key=store_key)

    click.echo(f"Starting server on {config.server.host}:{config.server.port}")
    click.echo(f"Site origin: {config.site.origin}")
    if config.store.url:
        click.echo(f"Content store: {config.store.url}")
    else:
        click.echo("Content store: not configured (pages will be unavailable)")

    run_server(config)


@cli.command()
@click.argument("path")
@config_option
@store_url_option
@store_key_option
@verbose_option
def resolve(
    path: str,
    config_path: Path | None,
    store_url: str | None,
    store_key: str | None,
    verbose: bool,
) -> None:
    """Resolve PATH and print its metadata as JSON."""
    _setup_logging(verbose)
    config = _load_config(config_path, store_url=store_url, store_key=store_key)

    try:
        data = asyncio.run(_resolve(config, path))
    except NotFound:
        click.echo(click.style(f"Not found: {path}", fg="red"), err=True)
        sys.exit(1)
    except UpstreamUnavailable as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@cli.command()
@click.argument("vertical", type=click.Choice(list(SITEMAP_CHOICES)), required=False)
@config_option
@store_url_option
@store_key_option
@verbose_option
def sitemap(
    vertical: str | None,
    config_path: Path | None,
    store_url: str | None,
    store_key: str | None,
    verbose: bool,
) -> None:
    """Print the sitemap index, or the sitemap of VERTICAL."""
    _setup_logging(verbose)
    config = _load_config(config_path, store_url=store_url, store_key=store_key)
    click.echo(asyncio.run(_sitemap(config, vertical)), nl=False)


async def _resolve(config: Config, path: str) -> dict:
    async with httpx.AsyncClient() as client:
        services = build_services(config, client)
        resolved = await services.resolver.resolve(path)
    data = resolved.to_dict()
    if resolved.redirect_to is not None:
        data["redirect"] = resolved.redirect_to
    return data


async def _sitemap(config: Config, vertical: str | None) -> str:
    async with httpx.AsyncClient() as client:
        services = build_services(config, client)
        if vertical is None:
            return render_sitemap_index(services.sitemaps.build_sitemap_index())
        return render_urlset(await services.sitemaps.build_sitemap(SITEMAP_CHOICES[vertical]))


def _load_config(config_path: Path | None, **overrides: str | int | None) -> Config:
    """Load configuration and apply CLI overrides, exiting on invalid config."""
    try:
        return Config.load(config_path).with_overrides(**overrides)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


if __name__ == "__main__":
    cli()
