"""
Locator resolution: turn a Locator into a RangeProxy.

One independent async function per locator variant.  Each stages its
queries against the session and never mutates the document.
"""

import logging
import re
from typing import Any, List, Optional

from ..errors import InvalidLocatorError, NotFoundError, OutOfRangeError
from ..models import (
    BookmarkLocator, ContentControlLocator, HeadingLocator, ParagraphLocator,
    SectionLocator, parse_locator,
)
from ..session.base import DocumentSession
from ..session.proxies import RangeLocation, RangeProxy

logger = logging.getLogger(__name__)

_HEADING_STYLE = re.compile(r"^\s*(?:heading|标题)\s*(\d*)\s*$", re.IGNORECASE)


def heading_level(style: Optional[str]) -> Optional[int]:
    """Level of a heading style, 0 for an unnumbered heading, else None."""
    if not style:
        return None
    match = _HEADING_STYLE.match(style)
    if not match:
        return None
    return int(match.group(1)) if match.group(1) else 0


def _pick(items: List[Any], index: int, what: str, **details) -> Any:
    if index < 0 or index >= len(items):
        raise OutOfRangeError(
            f"{what} index {index} is out of range ({len(items)} available)",
            index=index, count=len(items), **details)
    return items[index]


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------

async def resolve_bookmark(session: DocumentSession,
                           locator: BookmarkLocator) -> RangeProxy:
    if not locator.name:
        raise InvalidLocatorError("Bookmark name must not be empty")
    rng = session.document.get_bookmark_range_or_null(locator.name)
    rng.load("is_null_object")
    await session.flush()
    if rng.is_null_object:
        raise NotFoundError(f"Bookmark '{locator.name}' not found",
                            name=locator.name)
    return rng


async def resolve_heading(session: DocumentSession,
                          locator: HeadingLocator) -> RangeProxy:
    if locator.level is not None and not 1 <= locator.level <= 9:
        raise InvalidLocatorError(
            f"Heading level must be between 1 and 9, got {locator.level}",
            level=locator.level)
    paragraphs = session.document.body.paragraphs.load("items")
    await session.flush()
    for para in paragraphs.items:
        para.load("style", "text")
    await session.flush()

    matches = []
    for para in paragraphs.items:
        level = heading_level(para.style)
        if level is None:
            continue
        if locator.level is not None and level != locator.level:
            continue
        if locator.text is not None and locator.text not in para.text.strip():
            continue
        matches.append(para)

    criteria = {k: v for k, v in (("text", locator.text),
                                  ("level", locator.level)) if v is not None}
    if not matches:
        raise NotFoundError("No heading matches the locator", **criteria)
    return _pick(matches, locator.index, "Heading", **criteria).get_range(
        RangeLocation.WHOLE)


async def resolve_paragraph(session: DocumentSession,
                            locator: ParagraphLocator) -> RangeProxy:
    paragraphs = session.document.body.paragraphs.load("items")
    await session.flush()
    items = paragraphs.items
    count = len(items)
    start = locator.start_index
    end = locator.end_index
    if start < 0 or start >= count:
        raise OutOfRangeError(
            f"start_index {start} is out of range ({count} paragraphs)",
            start_index=start, count=count)
    if end is None:
        return items[start].get_range(RangeLocation.WHOLE)
    if end < 0 or end >= count:
        raise OutOfRangeError(
            f"end_index {end} is out of range ({count} paragraphs)",
            end_index=end, count=count)
    if end < start:
        raise InvalidLocatorError(
            f"end_index {end} is before start_index {start}",
            start_index=start, end_index=end)
    first = items[start].get_range(RangeLocation.START)
    return first.expand_to(items[end].get_range(RangeLocation.END))


async def resolve_section(session: DocumentSession,
                          locator: SectionLocator) -> RangeProxy:
    sections = session.document.sections.load("items")
    await session.flush()
    section = _pick(sections.items, locator.index, "Section")
    return section.body.get_range(RangeLocation.WHOLE)


async def resolve_content_control(session: DocumentSession,
                                  locator: ContentControlLocator) -> RangeProxy:
    controls = session.document.content_controls.load("items")
    await session.flush()
    for control in controls.items:
        control.load("title", "tag")
    await session.flush()

    # every supplied condition must hold
    matches = [c for c in controls.items
               if (locator.title is None or c.title == locator.title)
               and (locator.tag is None or c.tag == locator.tag)]
    criteria = {k: v for k, v in (("title", locator.title),
                                  ("tag", locator.tag)) if v is not None}
    if not matches:
        raise NotFoundError("No content control matches the locator", **criteria)
    return _pick(matches, locator.index, "Content control", **criteria).get_range(
        RangeLocation.WHOLE)


_RESOLVERS = {
    "bookmark": resolve_bookmark,
    "heading": resolve_heading,
    "paragraph": resolve_paragraph,
    "section": resolve_section,
    "content_control": resolve_content_control,
}


async def resolve(session: DocumentSession, locator: Any) -> RangeProxy:
    """Resolve a locator model (or raw dict) to a range.

    Raises NotFoundError, OutOfRangeError or InvalidLocatorError.
    """
    locator = parse_locator(locator)
    handler = _RESOLVERS.get(getattr(locator, "type", None))
    if handler is None:
        raise InvalidLocatorError(
            f"Unknown locator type '{getattr(locator, 'type', None)}'")
    logger.debug("Resolving %s locator", locator.type)
    return await handler(session, locator)
