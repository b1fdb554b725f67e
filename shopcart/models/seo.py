"""
Sitemap and robots.txt rendering for the storefront.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional
from xml.etree import ElementTree as ET

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

# path, changefreq, priority
STATIC_PAGES = [
    ("", "daily", 1.0),
    ("/shop", "daily", 0.9),
    ("/category", "weekly", 0.8),
    ("/brands", "weekly", 0.7),
    ("/deal", "daily", 0.8),
    ("/blog", "weekly", 0.6),
]

PRIVATE_PATHS = ["/api/", "/admin/", "/employee/", "/user/", "/dashboard/", "/studio/"]


@dataclass
class SitemapEntry:
    url: str
    last_modified: str
    change_frequency: str
    priority: float


def _slug_entries(
    site_url: str, prefix: str, docs: Iterable[Mapping[str, Any]], freq: str, priority: float, now: str
) -> List[SitemapEntry]:
    return [
        SitemapEntry(f"{site_url}/{prefix}/{doc['slug']}", doc.get("_updatedAt") or now, freq, priority)
        for doc in docs
        if doc.get("slug")
    ]


def build_sitemap_entries(
    site_url: str,
    products: Iterable[Mapping[str, Any]],
    categories: Iterable[Mapping[str, Any]],
    brands: Iterable[Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> List[SitemapEntry]:
    site_url = site_url.rstrip("/")
    stamp = (now or datetime.utcnow()).isoformat() + "Z"

    entries = [SitemapEntry(f"{site_url}{path}", stamp, freq, prio) for path, freq, prio in STATIC_PAGES]
    entries += _slug_entries(site_url, "product", products, "weekly", 0.7, stamp)
    entries += _slug_entries(site_url, "category", categories, "weekly", 0.8, stamp)
    entries += _slug_entries(site_url, "brands", brands, "monthly", 0.6, stamp)
    return entries


def render_sitemap(entries: Iterable[SitemapEntry]) -> str:
    urlset = ET.Element("urlset", xmlns=SITEMAP_NS)
    for entry in entries:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = entry.url
        ET.SubElement(url, "lastmod").text = entry.last_modified
        ET.SubElement(url, "changefreq").text = entry.change_frequency
        ET.SubElement(url, "priority").text = f"{entry.priority:.1f}"
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(urlset, encoding="unicode")


def render_robots(site_url: str) -> str:
    """``*`` and ``Googlebot`` groups; only ``*`` also blocks ``/_next/``."""
    groups = [
        ("*", PRIVATE_PATHS + ["/_next/", "/checkout/"]),
        ("Googlebot", PRIVATE_PATHS + ["/checkout/"]),
    ]
    lines = []
    for agent, disallowed in groups:
        lines.append(f"User-Agent: {agent}")
        lines.append("Allow: /")
        lines.extend(f"Disallow: {path}" for path in disallowed)
        lines.append("")
    lines.append(f"Sitemap: {site_url.rstrip('/')}/sitemap.xml")
    return "\n".join(lines) + "\n"
