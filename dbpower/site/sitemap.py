"""
sitemap.xml rendering for the public marketing site.
"""

from pathlib import Path
from xml.etree import ElementTree as ET

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
CHANGEFREQ_VALUES = {"always", "hourly", "daily", "weekly", "monthly", "yearly", "never"}


def route_url(site_url: str, route: str) -> str:
    """Join a route onto the site URL with exactly one slash."""
    return f"{site_url.rstrip('/')}/{route.lstrip('/')}"


def build_sitemap(
    site_url: str,
    routes: list[str],
    changefreq: str = "weekly",
    priority: float = 0.8,
) -> str:
    """Render a sitemaps.org `urlset` document for `routes`."""
    if changefreq not in CHANGEFREQ_VALUES:
        raise ValueError(f"Invalid changefreq: {changefreq}")
    if not 0.0 <= priority <= 1.0:
        raise ValueError(f"Priority must be between 0.0 and 1.0, got {priority}")

    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for route in dict.fromkeys(routes):
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = route_url(site_url, route)
        ET.SubElement(url, "changefreq").text = changefreq
        ET.SubElement(url, "priority").text = f"{priority:.1f}"

    body = ET.tostring(urlset, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def write_sitemap(path: Path, site_url: str, routes: list[str], **options) -> Path:
    """Write the sitemap to `path`, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(build_sitemap(site_url, routes, **options), encoding="utf-8")
    return path
