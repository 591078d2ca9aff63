"""
Header and footer content, per section.
"""

import logging
from typing import Dict, List, Optional, Tuple

from ..errors import BranchUnavailableError, OutOfRangeError
from ..models import (
    ContentTree, DocumentHeaderFooterInfo, HeaderFooterItem, HeaderFooterMetadata,
    ReadOptions, SectionHeaderFooterInfo,
)
from ..session.base import DocumentSession
from ..session.proxies import BodyProxy, HeaderFooterType
from .reader import read_many, truncate

logger = logging.getLogger(__name__)

# reported name -> host header/footer type
KINDS = (
    ("firstPage", HeaderFooterType.FIRST_PAGE),
    ("oddPages", HeaderFooterType.PRIMARY),
    ("evenPages", HeaderFooterType.EVEN_PAGES),
)


async def read_headers_footers(session: DocumentSession,
                               section_index: Optional[int] = None,
                               include_elements: bool = False,
                               options: Optional[ReadOptions] = None
                               ) -> DocumentHeaderFooterInfo:
    """Headers and footers of every section, or of one section."""
    options = options or ReadOptions()
    sections = session.document.sections.load("items")
    await session.flush()
    items = sections.items
    if section_index is None:
        chosen = list(enumerate(items))
    elif 0 <= section_index < len(items):
        chosen = [(section_index, items[section_index])]
    else:
        raise OutOfRangeError(
            f"Section index {section_index} is out of range "
            f"({len(items)} sections)", index=section_index, count=len(items))

    bodies: List[Tuple[int, bool, str, BodyProxy]] = []
    for index, section in chosen:
        section.load("different_first_page", "odd_and_even_pages", isolated=True)
        for footer in (False, True):
            for label, kind in KINDS:
                body = section.get_footer(kind) if footer else section.get_header(kind)
                bodies.append((index, footer, label, body.load("text", isolated=True)))
    await session.flush()

    def text_of(body: BodyProxy) -> Optional[str]:
        try:
            return body.text
        except BranchUnavailableError:
            return None

    trees: Dict[int, ContentTree] = {}
    if include_elements:
        existing = [body for _, _, _, body in bodies if (text_of(body) or "").strip()]
        if existing:
            for body, tree in zip(existing, await read_many(
                    session, [b.get_range() for b in existing], options)):
                trees[id(body)] = tree

    infos = []
    for index, section in chosen:
        try:
            first_page = section.different_first_page
            odd_even = section.odd_and_even_pages
        except BranchUnavailableError:
            first_page = odd_even = None
        info = SectionHeaderFooterInfo(section_index=index,
                                       different_first_page=first_page,
                                       different_odd_and_even=odd_even)
        for i, footer, label, body in bodies:
            if i != index:
                continue
            text = text_of(body)
            item = HeaderFooterItem(
                type=label,
                exists=bool(text and text.strip()),
                text=truncate(text, options.max_text_length),
                content=trees.get(id(body)),
                error=body.unavailable_reason)
            (info.footers if footer else info.headers).append(item)
        infos.append(info)

    total_headers = sum(1 for info in infos for h in info.headers if h.exists)
    total_footers = sum(1 for info in infos for f in info.footers if f.exists)
    logger.debug("Read headers/footers of %d section(s)", len(infos))
    return DocumentHeaderFooterInfo(
        total_sections=len(items),
        sections=infos,
        metadata=HeaderFooterMetadata(
            has_any_header=total_headers > 0,
            has_any_footer=total_footers > 0,
            total_headers=total_headers,
            total_footers=total_footers))
