"""
Range mutation path: replace or insert text and replace images.

Targets are a resolved RangeProxy, a structural locator, or one of the
mutation-only pseudo-locators (search, selection, image index/search).
When several places change in one call, the mutations are queued in
reverse document order so earlier edits never shift positions that are
still to be processed, and all of them go out in a single flush.
"""

import base64
import binascii
import logging
import re
from typing import Any, List, Optional

from ..errors import (
    ArgumentValidationError, NotFoundError, OutOfRangeError, WordToolsError,
)
from ..models import (
    ImageIndexLocator, ImageProperties, ImageSearchLocator, MutationResult,
    SearchLocator, SelectionLocator, TextFormat, is_structural,
    parse_image_target, parse_options, parse_text_target,
)
from ..session.base import DocumentSession
from ..session.proxies import InlinePictureProxy, InsertLocation, RangeProxy
from .branches import BranchResults
from .resolver import resolve

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:[^;,]*;base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

INSERT_LOCATIONS = (InsertLocation.START, InsertLocation.END,
                    InsertLocation.BEFORE, InsertLocation.AFTER)


def _apply_format(rng: RangeProxy, fmt: Optional[TextFormat]):
    patch = fmt.font_patch() if fmt is not None else {}
    if patch:
        rng.font.set(**patch)


def normalize_image_data(data: str) -> str:
    """Strip a data: URL prefix and check the payload is base64."""
    data = _WHITESPACE.sub("", _DATA_URL.sub("", data.strip()))
    if not data:
        raise ArgumentValidationError("Image data is empty")
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise ArgumentValidationError("Image data is not valid base64")
    return data


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

async def _text_targets(session: DocumentSession, target: Any,
                        replace_all: bool) -> List[RangeProxy]:
    if isinstance(target, RangeProxy):
        return [target]
    if isinstance(target, SearchLocator):
        results = session.document.body.search(
            target.text, match_case=target.match_case,
            match_whole_word=target.match_whole_word,
            match_wildcards=target.match_wildcards).load("items")
        await session.flush()
        if not results.items:
            raise NotFoundError(f"No matches for '{target.text}'",
                                text=target.text)
        return results.items if replace_all else results.items[:1]
    if isinstance(target, SelectionLocator):
        selection = session.document.get_selection().load("is_empty")
        await session.flush()
        if selection.is_empty:
            raise NotFoundError("Nothing is selected")
        return [selection]
    return [await resolve(session, target)]


async def _mutate_text(session, target, text, location, fmt, replace_all) -> int:
    if not isinstance(target, RangeProxy):
        target = parse_text_target(target)
    if isinstance(target, SearchLocator) and not target.text:
        raise ArgumentValidationError("Search text must not be empty")
    fmt = parse_options(TextFormat, fmt)

    ranges = await _text_targets(session, target, replace_all)
    for rng in reversed(ranges):
        inserted = rng.insert_text(text, location)
        _apply_format(inserted, fmt)
    await session.flush()
    return len(ranges)


async def mutate_text(session: DocumentSession, target: Any, new_text: str,
                      format: Optional[TextFormat] = None,
                      replace_all: bool = False) -> MutationResult:
    """Replace the text at *target*, optionally patching its format."""
    try:
        count = await _mutate_text(session, target, new_text,
                                   InsertLocation.REPLACE, format, replace_all)
    except WordToolsError as e:
        logger.info("Text replacement failed: %s", e.message)
        return MutationResult.failed(e)
    logger.info("Replaced text in %d place(s)", count)
    return MutationResult(count=count, success=True)


async def insert_text(session: DocumentSession, target: Any, text: str,
                      location: str = InsertLocation.END,
                      format: Optional[TextFormat] = None) -> MutationResult:
    """Insert text at the start or end of *target* without replacing it."""
    try:
        if location not in INSERT_LOCATIONS:
            raise ArgumentValidationError(
                f"location must be one of {', '.join(INSERT_LOCATIONS)}",
                location=location)
        if not text:
            raise ArgumentValidationError("Text to insert must not be empty")
        count = await _mutate_text(session, target, text, location, format,
                                   replace_all=False)
    except WordToolsError as e:
        logger.info("Text insertion failed: %s", e.message)
        return MutationResult.failed(e)
    return MutationResult(count=count, success=True)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _matches(picture: InlinePictureProxy, criteria: ImageSearchLocator) -> bool:
    if criteria.alt_text is not None and \
            criteria.alt_text not in (picture.alt_text_description or ""):
        return False
    if criteria.min_width is not None and picture.width < criteria.min_width:
        return False
    if criteria.max_width is not None and picture.width > criteria.max_width:
        return False
    if criteria.min_height is not None and picture.height < criteria.min_height:
        return False
    if criteria.max_height is not None and picture.height > criteria.max_height:
        return False
    return True


async def _pictures_in(session: DocumentSession, rng: RangeProxy,
                       replace_all: bool) -> List[InlinePictureProxy]:
    pictures = rng.inline_pictures.load("items")
    await session.flush()
    if not pictures.items:
        raise NotFoundError("No images found in the target range")
    return pictures.items if replace_all else pictures.items[:1]


async def _image_targets(session: DocumentSession, target: Any,
                         replace_all: bool, has_data: bool,
                         branches: BranchResults):
    """Pictures to change, or the selection range to insert over."""
    if isinstance(target, RangeProxy):
        return await _pictures_in(session, target, replace_all)
    if isinstance(target, ImageIndexLocator):
        pictures = session.document.body.inline_pictures.load("items")
        await session.flush()
        items = pictures.items
        if target.index < 0 or target.index >= len(items):
            raise OutOfRangeError(
                f"Image index {target.index} is out of range "
                f"({len(items)} images)", index=target.index, count=len(items))
        return [items[target.index]]
    if isinstance(target, ImageSearchLocator):
        pictures = session.document.body.inline_pictures.load("items")
        await session.flush()
        for picture in pictures.items:
            picture.load("width", "height", "alt_text_description", isolated=True)
        await session.flush()
        matches = [p for p in pictures.items
                   if branches.capture(f"img-{p.key}", lambda p=p: _matches(p, target))]
        if not matches:
            raise NotFoundError("No images match the search criteria")
        return matches if replace_all else matches[:1]
    if isinstance(target, SelectionLocator):
        selection = session.document.get_selection()
        if has_data:
            return selection
        return await _pictures_in(session, selection, replace_all=False)
    if is_structural(target):
        return await _pictures_in(session, await resolve(session, target),
                                  replace_all)
    raise ArgumentValidationError(
        f"Unsupported image target '{getattr(target, 'type', target)}'")


async def mutate_image(session: DocumentSession, target: Any,
                       image_data: Optional[str] = None,
                       properties: Optional[ImageProperties] = None,
                       replace_all: bool = False) -> MutationResult:
    """Replace image content and/or patch image properties at *target*.

    Rejects a call that supplies neither image data nor any property
    before touching the session.
    """
    try:
        properties = parse_options(ImageProperties, properties)
        patch = properties.picture_patch() if properties is not None else {}
        if image_data is None and not patch:
            raise ArgumentValidationError(
                "Either image_data or properties must be provided")
        if image_data is not None:
            image_data = normalize_image_data(image_data)
        if not isinstance(target, RangeProxy):
            target = parse_image_target(target)

        branches = BranchResults()
        found = await _image_targets(session, target, replace_all,
                                     has_data=image_data is not None,
                                     branches=branches)
        if isinstance(found, RangeProxy):
            # selection: drop the new picture over whatever is selected
            picture = found.insert_inline_picture(image_data, InsertLocation.REPLACE)
            if patch:
                picture.set(**patch)
            count = 1
        else:
            for picture in reversed(found):
                if image_data is not None:
                    picture = picture.get_range().insert_inline_picture(
                        image_data, InsertLocation.REPLACE)
                if patch:
                    picture.set(**patch)
            count = len(found)
        await session.flush()
    except WordToolsError as e:
        logger.info("Image replacement failed: %s", e.message)
        return MutationResult.failed(e)
    logger.info("Updated %d image(s)", count)
    return MutationResult(count=count, success=True,
                          warnings=branches.warnings() or None)
