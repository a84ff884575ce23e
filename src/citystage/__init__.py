"""Citystage - path resolution, SEO metadata and sitemaps for a city directory."""

__version__ = "0.1.0"
