"""Tell the site frontend which cached taxonomy pages went stale."""

import logging
from collections.abc import Iterable

import httpx

from storefront.core.config import get_settings
from storefront.services.taxonomy.kinds import TaxonomyKind

logger = logging.getLogger(__name__)


def taxonomy_cache_tags(kind: TaxonomyKind, slugs: Iterable[str]) -> list[str]:
    plural = "categories" if kind.key == "product" else f"{kind.key}-categories"
    singular = "category" if kind.key == "product" else f"{kind.key}-category"
    tags = [plural, "sitemaps"]
    for slug in slugs:
        tag = f"{singular}:{slug}"
        if slug and tag not in tags:
            tags.append(tag)
    return tags


async def revalidate_taxonomy(kind: TaxonomyKind, slugs: Iterable[str]) -> bool:
    """Post the stale tags to the revalidation hook, if one is configured.

    Failures are logged and reported as ``False``; they never fail the write
    that triggered them.
    """
    settings = get_settings()
    if not settings.revalidate_url:
        return False

    unique_slugs = [slug for slug in dict.fromkeys(slugs) if slug]
    payload = {
        "kind": kind.key,
        "slugs": unique_slugs,
        "tags": taxonomy_cache_tags(kind, unique_slugs),
    }
    headers = {}
    if settings.revalidate_secret:
        headers["Authorization"] = f"Bearer {settings.revalidate_secret}"

    timeout = httpx.Timeout(settings.revalidate_timeout_seconds)
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(settings.revalidate_url, json=payload, headers=headers)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Cache revalidation for %s %s failed: %s", kind.key, unique_slugs, exc)
        return False
    return True
