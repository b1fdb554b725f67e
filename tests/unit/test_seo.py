"""
Tests for sitemap and robots.txt rendering.
"""

from datetime import datetime
from xml.etree import ElementTree as ET

from shopcart.models.seo import (
    SITEMAP_NS,
    STATIC_PAGES,
    build_sitemap_entries,
    render_robots,
    render_sitemap,
)

NOW = datetime(2026, 3, 15, 9, 30)


def test_static_and_document_entries():
    entries = build_sitemap_entries(
        "https://shop.test/",
        products=[{"slug": "desk-lamp", "_updatedAt": "2026-03-01T00:00:00Z"}, {"slug": None}],
        categories=[{"slug": "lighting"}],
        brands=[{"slug": "acme"}],
        now=NOW,
    )

    urls = [e.url for e in entries]
    assert urls[: len(STATIC_PAGES)] == [
        "https://shop.test",
        "https://shop.test/shop",
        "https://shop.test/category",
        "https://shop.test/brands",
        "https://shop.test/deal",
        "https://shop.test/blog",
    ]
    assert urls[len(STATIC_PAGES):] == [
        "https://shop.test/product/desk-lamp",
        "https://shop.test/category/lighting",
        "https://shop.test/brands/acme",
    ]

    product = entries[len(STATIC_PAGES)]
    assert product.last_modified == "2026-03-01T00:00:00Z"
    assert product.change_frequency == "weekly"
    assert product.priority == 0.7
    assert entries[-2].last_modified == "2026-03-15T09:30:00Z"


def test_render_sitemap_is_valid_xml():
    entries = build_sitemap_entries("https://shop.test", [{"slug": "mug"}], [], [], now=NOW)

    xml = render_sitemap(entries)
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')

    root = ET.fromstring(xml.split("\n", 1)[1])
    urls = root.findall(f"{{{SITEMAP_NS}}}url")
    assert len(urls) == len(STATIC_PAGES) + 1
    assert urls[0].find(f"{{{SITEMAP_NS}}}priority").text == "1.0"
    assert urls[-1].find(f"{{{SITEMAP_NS}}}loc").text == "https://shop.test/product/mug"


def test_robots():
    robots = render_robots("https://shop.test/")
    groups = robots.split("\n\n")

    assert groups[0].startswith("User-Agent: *\nAllow: /\n")
    assert "Disallow: /_next/" in groups[0]
    assert "Disallow: /checkout/" in groups[0]
    assert groups[1].startswith("User-Agent: Googlebot\nAllow: /\n")
    assert "Disallow: /_next/" not in groups[1]
    assert "Disallow: /admin/" in groups[1]
    assert robots.rstrip().endswith("Sitemap: https://shop.test/sitemap.xml")
