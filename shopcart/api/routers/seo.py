"""
SEO routes: sitemap.xml and robots.txt.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response

from ..config import get_settings
from ..dependencies import get_sanity_client
from ...clients import SanityClient
from ...models.seo import build_sitemap_entries, render_robots, render_sitemap

logger = logging.getLogger(__name__)

router = APIRouter(tags=["SEO"])

SLUGS_QUERY = '*[_type == $type && defined(slug.current)]{ "slug": slug.current, _updatedAt }'


@router.get("/sitemap.xml", include_in_schema=False)
async def sitemap(sanity: SanityClient = Depends(get_sanity_client)) -> Response:
    products, categories, brands = await asyncio.gather(
        sanity.fetch(SLUGS_QUERY, {"type": "product"}),
        sanity.fetch(SLUGS_QUERY, {"type": "category"}),
        sanity.fetch(SLUGS_QUERY, {"type": "brand"}),
    )
    entries = build_sitemap_entries(
        get_settings().site_url, products or [], categories or [], brands or []
    )
    return Response(content=render_sitemap(entries), media_type="application/xml")


@router.get("/robots.txt", include_in_schema=False)
async def robots() -> PlainTextResponse:
    return PlainTextResponse(render_robots(get_settings().site_url))
