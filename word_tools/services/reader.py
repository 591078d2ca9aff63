"""
Range read path: staged extraction of a ContentTree.

Stage 0 loads the range text and enumerates its collections.  An empty
range stops there.  Stage 1 loads every element shallowly; tables with
detailed metadata go two levels deeper (rows, then cells).  Per-element
loads are isolated so one unreadable element only drops its own fields.
"""

import logging
from typing import Dict, List, Optional

from ..models import (
    ContentControlElement, ContentMetadata, ContentTree, InlinePictureElement,
    ParagraphElement, ReadOptions, TableCellInfo, TableElement,
)
from ..session.base import DocumentSession
from ..session.proxies import Collection, RangeProxy
from .branches import BranchResults

logger = logging.getLogger(__name__)

ELLIPSIS = "..."

PARAGRAPH_DETAILS = ("style", "alignment", "first_line_indent", "left_indent",
                     "right_indent", "line_spacing", "space_after",
                     "space_before", "is_list_item")
PICTURE_PROPERTIES = ("width", "height", "alt_text_title",
                      "alt_text_description", "hyperlink")
CONTROL_PROPERTIES = ("title", "tag", "type", "cannot_delete", "cannot_edit",
                      "placeholder_text")


def truncate(text: Optional[str], max_length: Optional[int]) -> Optional[str]:
    """Shorten *text* to *max_length* characters plus an ellipsis."""
    if text is None or not max_length or len(text) <= max_length:
        return text
    return text[:max_length] + ELLIPSIS


class _RangeRead:
    """Bookkeeping for one range while its stages are flushed."""

    def __init__(self, rng: RangeProxy, options: ReadOptions):
        self.rng = rng
        self.options = options
        self.rows: Dict[str, Collection] = {}
        self.cells: Dict[str, Dict[str, Collection]] = {}

    @property
    def wants_cells(self) -> bool:
        return (self.options.include_tables and self.options.include_text
                and self.options.detailed_metadata)

    def queue_top(self):
        self.rng.load("text", "is_empty")
        self.paragraphs = self.rng.paragraphs.load("items")
        self.tables = self.rng.tables.load("items")
        self.controls = self.rng.content_controls.load("items")
        self.pictures = self.rng.inline_pictures.load("items")

    @property
    def empty(self) -> bool:
        return self.rng.is_empty

    def queue_elements(self):
        opts = self.options
        names = []
        if opts.include_text:
            names.append("text")
        if opts.detailed_metadata:
            names.extend(PARAGRAPH_DETAILS)
        if names:
            for para in self.paragraphs.items:
                para.load(*names, isolated=True)
        if opts.include_tables:
            for table in self.tables.items:
                table.load("row_count", "column_count", isolated=True)
                if self.wants_cells:
                    self.rows[table.key] = table.rows.load("items", isolated=True)
        if opts.include_content_controls:
            names = list(CONTROL_PROPERTIES)
            if opts.include_text:
                names.append("text")
            for control in self.controls.items:
                control.load(*names, isolated=True)
        if opts.include_images:
            for picture in self.pictures.items:
                picture.load(*PICTURE_PROPERTIES, isolated=True)

    def queue_rows(self):
        for table_key, rows in self.rows.items():
            if rows.unavailable_reason is not None:
                continue
            self.cells[table_key] = {
                row.key: row.cells.load("items", isolated=True)
                for row in rows.items}

    def queue_cells(self):
        for per_row in self.cells.values():
            for cells in per_row.values():
                if cells.unavailable_reason is not None:
                    continue
                for cell in cells.items:
                    cell.load("value", "width", "row_index", "column_index",
                              isolated=True)

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def build(self, locator_type: Optional[str]) -> ContentTree:
        opts = self.options
        if self.empty:
            return ContentTree(
                text="" if opts.include_text else None,
                metadata=ContentMetadata(is_empty=True, character_count=0,
                                         locator_type=locator_type))

        branches = BranchResults()
        elements = []
        for para in self.paragraphs.items:
            elements.append(self._paragraph(para, branches))
        if opts.include_tables:
            for table in self.tables.items:
                elements.append(self._table(table, branches))
        if opts.include_content_controls:
            for control in self.controls.items:
                elements.append(self._control(control, branches))
        if opts.include_images:
            for picture in self.pictures.items:
                elements.append(self._picture(picture, branches))

        text = self.rng.text
        return ContentTree(
            text=truncate(text, opts.max_text_length) if opts.include_text else None,
            elements=elements,
            metadata=ContentMetadata(
                is_empty=False,
                character_count=len(text),
                paragraph_count=len(self.paragraphs.items),
                table_count=len(self.tables.items),
                image_count=len(self.pictures.items),
                content_control_count=len(self.controls.items),
                locator_type=locator_type),
            warnings=branches.warnings())

    def _paragraph(self, para, branches: BranchResults) -> ParagraphElement:
        element_id = f"para-{para.key}"
        opts = self.options

        def build():
            fields = {}
            if opts.include_text:
                fields["text"] = truncate(para.text, opts.max_text_length)
            if opts.detailed_metadata:
                for name in PARAGRAPH_DETAILS:
                    fields[name] = getattr(para, name)
            return ParagraphElement(id=element_id, **fields)

        return branches.capture(element_id, build) or ParagraphElement(id=element_id)

    def _table(self, table, branches: BranchResults) -> TableElement:
        element_id = f"table-{table.key}"
        element = branches.capture(element_id, lambda: TableElement(
            id=element_id, row_count=table.row_count,
            column_count=table.column_count))
        if element is None:
            return TableElement(id=element_id)
        if self.wants_cells:
            cells = branches.capture(f"{element_id}-cells",
                                     lambda: self._cells(table.key))
            if cells is not None:
                element.cells = cells
        return element

    def _cells(self, table_key) -> List[List[TableCellInfo]]:
        grid = []
        for row in self.rows[table_key].items:
            grid.append([
                TableCellInfo(row_index=cell.row_index,
                              column_index=cell.column_index,
                              text=truncate(cell.value, self.options.max_text_length),
                              width=cell.width)
                for cell in self.cells[table_key][row.key].items])
        return grid

    def _control(self, control, branches: BranchResults) -> ContentControlElement:
        element_id = f"ctrl-{control.key}"
        opts = self.options

        def build():
            return ContentControlElement(
                id=element_id,
                text=truncate(control.text, opts.max_text_length) if opts.include_text else None,
                title=control.title,
                tag=control.tag,
                control_type=control.type,
                cannot_delete=control.cannot_delete,
                cannot_edit=control.cannot_edit,
                placeholder_text=control.placeholder_text)

        return branches.capture(element_id, build) or ContentControlElement(id=element_id)

    def _picture(self, picture, branches: BranchResults) -> InlinePictureElement:
        element_id = f"img-{picture.key}"

        def build():
            return InlinePictureElement(
                id=element_id,
                width=picture.width,
                height=picture.height,
                alt_text=picture.alt_text_description,
                alt_text_title=picture.alt_text_title,
                hyperlink=picture.hyperlink)

        return branches.capture(element_id, build) or InlinePictureElement(id=element_id)


async def read_many(session: DocumentSession, ranges: List[RangeProxy],
                    options: Optional[ReadOptions] = None,
                    locator_type: Optional[str] = None) -> List[ContentTree]:
    """Read several ranges, sharing every stage's flush between them."""
    options = options or ReadOptions()
    reads = [_RangeRead(rng, options) for rng in ranges]
    for read in reads:
        read.queue_top()
    await session.flush()

    active = [read for read in reads if not read.empty]
    if active:
        for read in active:
            read.queue_elements()
        await session.flush()
        if any(read.wants_cells for read in active):
            for read in active:
                read.queue_rows()
            await session.flush()
            for read in active:
                read.queue_cells()
            await session.flush()
    logger.debug("Read %d ranges in %d round trips", len(reads),
                 session.round_trips)
    return [read.build(locator_type) for read in reads]


async def read_content(session: DocumentSession, rng: RangeProxy,
                       options: Optional[ReadOptions] = None,
                       locator_type: Optional[str] = None) -> ContentTree:
    """Extract the structured content of one range."""
    trees = await read_many(session, [rng], options, locator_type)
    return trees[0]
