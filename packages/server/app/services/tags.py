"""
Tag list parsing and assignment.

A tag list arrives as "ruby, rails, go" (or a list). Names are trimmed,
lowercased and stripped to [a-z0-9]; duplicates and empties are dropped and
the list is capped at max_tags, keeping the first ones given.
"""

from __future__ import annotations

import re
from typing import Iterable, Union

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.listing import ClassifiedListing, ListingTag
from app.models.tag import Tag

log = structlog.get_logger()

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_tag(name: str) -> str:
    return _NON_ALNUM.sub("", name.strip().lower())


def parse_tag_list(raw: Union[str, Iterable[str], None], max_tags: int) -> list[str]:
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else list(raw)
    names: list[str] = []
    for part in parts:
        name = normalize_tag(part)
        if name and name not in names:
            names.append(name)
    return names[:max_tags]


def format_tag_list(names: Iterable[str]) -> str:
    return ", ".join(names)


def split_cached_tag_list(cached: str) -> list[str]:
    return [name for name in (part.strip() for part in cached.split(",")) if name]


async def find_or_create_tags(session: AsyncSession, names: list[str]) -> list[Tag]:
    """Return Tag rows for names (in the given order), creating missing ones."""
    if not names:
        return []
    result = await session.execute(select(Tag).where(Tag.name.in_(names)))
    by_name = {tag.name: tag for tag in result.scalars().all()}
    created = []
    for name in names:
        if name not in by_name:
            tag = Tag(name=name)
            session.add(tag)
            by_name[name] = tag
            created.append(name)
    if created:
        await session.flush()
        log.info("tags.created", names=created)
    return [by_name[name] for name in names]


async def apply_tags(
    session: AsyncSession, listing: ClassifiedListing, names: list[str]
) -> None:
    """Replace the listing's tags with names and refresh cached_tag_list."""
    tags = await find_or_create_tags(session, names)
    await session.execute(delete(ListingTag).where(ListingTag.listing_id == listing.id))
    for tag in tags:
        session.add(ListingTag(listing_id=listing.id, tag_id=tag.id))
    listing.cached_tag_list = format_tag_list(names)
    session.add(listing)
    await session.flush()
