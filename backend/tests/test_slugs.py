import pytest

from storefront.services.taxonomy.slugs import (
    SLUG_MAX_LENGTH,
    generate_slug,
    generate_unique_slug,
    is_valid_slug,
)


def test_generate_slug_strips_diacritics_and_symbols() -> None:
    assert generate_slug("Hårborttagning") == "harborttagning"
    assert generate_slug("CO₂ fraktionerad laser") == "co2-fraktionerad-laser"
    assert generate_slug("Hudföryngring / Hudåtstramning") == "hudforyngring-hudatstramning"
    assert generate_slug("  Lasers™ — Pro  ") == "lasers-pro"


def test_generate_slug_handles_empty_and_symbol_only_input() -> None:
    assert generate_slug("") == ""
    assert generate_slug("!!!") == ""


def test_generate_slug_caps_length_without_trailing_hyphen() -> None:
    slug = generate_slug("word " * 60)
    assert len(slug) <= SLUG_MAX_LENGTH
    assert not slug.endswith("-")


def test_is_valid_slug() -> None:
    assert is_valid_slug("lasers-1") is True
    assert is_valid_slug("lasers--1") is False
    assert is_valid_slug("-lasers") is False
    assert is_valid_slug("") is False


@pytest.mark.asyncio
async def test_generate_unique_slug_appends_counter() -> None:
    taken = {"lasers", "lasers-1"}

    async def exists(slug: str) -> bool:
        return slug in taken

    assert await generate_unique_slug("lasers", exists) == "lasers-2"
    assert await generate_unique_slug("optics", exists) == "optics"


@pytest.mark.asyncio
async def test_generate_unique_slug_falls_back_to_timestamp() -> None:
    async def always_taken(slug: str) -> bool:
        return True

    slug = await generate_unique_slug("lasers", always_taken, max_attempts=3)
    prefix, _, suffix = slug.rpartition("-")
    assert prefix == "lasers"
    assert suffix.isdigit() and len(suffix) >= 13


@pytest.mark.asyncio
async def test_generate_unique_slug_keeps_long_slugs_within_limit() -> None:
    base = "a" * SLUG_MAX_LENGTH
    taken = {base}

    async def exists(slug: str) -> bool:
        return slug in taken

    slug = await generate_unique_slug(base, exists)
    assert len(slug) <= SLUG_MAX_LENGTH
    assert slug.endswith("-1")
