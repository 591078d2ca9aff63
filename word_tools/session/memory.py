"""
In-process document host.

MemoryHost executes batches in the session wire format against a
MemoryDocument; MemorySession plugs it into the DocumentSession API.
Each batch is transactional: if any non-isolated entry fails, the
document is restored to its state before the batch.
"""

import logging
from typing import Any, Dict, List

from ..errors import host_error
from .base import DocumentSession
from .document import (
    HostFault, MemoryDocument, Paragraph, Span, Table, invalid, stale,
)
from .proxies import freeze, thaw

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Host-side objects addressed by refs
# ---------------------------------------------------------------------------

class _Node:
    label = "object"

    def __init__(self, batch: "_Batch"):
        self.batch = batch
        self.doc: MemoryDocument = batch.document

    def get(self, name: str) -> Any:
        getter = getattr(self, "prop_" + name, None)
        if getter is None:
            raise invalid(f"{self.label} has no property '{name}'")
        return getter()

    def step(self, name: str, args) -> "_Node":
        method = getattr(self, "step_" + name, None)
        if method is None:
            raise invalid(f"Cannot navigate to '{name}' from {self.label}")
        return method(*args)

    def call(self, method: str, args: Dict[str, Any]):
        fn = getattr(self, "call_" + method, None)
        if fn is None:
            raise invalid(f"{self.label} has no method '{method}'")
        return fn(**args)


class _CollectionNode(_Node):
    label = "collection"

    def __init__(self, batch, keys, item):
        super().__init__(batch)
        self._keys = keys
        self._item = item

    def prop_items(self):
        return [thaw(key) for key in self._keys()]

    def prop_count(self):
        return len(self._keys())

    def step_item(self, key):
        return self._item(freeze(key))


class _SpanNode(_Node):
    """Anything that covers a span: ranges, bodies, paragraphs, controls."""

    def span(self) -> Span:
        raise NotImplementedError

    def prop_text(self):
        return self.doc.span_text(self.span())

    def prop_is_empty(self):
        return self.span().collapsed

    def prop_is_null_object(self):
        return False

    def step_paragraphs(self):
        return _CollectionNode(
            self.batch,
            lambda: [p.id for p in self.doc.span_paragraphs(self.span())],
            self.batch.paragraph)

    def step_tables(self):
        return _CollectionNode(
            self.batch,
            lambda: [t.id for t in self.doc.span_tables(self.span())],
            self.batch.table)

    def step_content_controls(self):
        return _CollectionNode(
            self.batch,
            lambda: [c.id for c in self.doc.span_controls(self.span())],
            self.batch.control)

    def step_inline_pictures(self):
        return _CollectionNode(
            self.batch,
            lambda: [p.id for p in self.doc.span_pictures(self.span())],
            self.batch.picture)

    def step_search(self, text, match_case=False, match_whole_word=False,
                    match_wildcards=False):
        return _CollectionNode(
            self.batch,
            lambda: self.doc.search(self.span(), text, match_case,
                                    match_whole_word, match_wildcards),
            lambda key: _RangeNode(self.batch, self.doc.span_from_key(key)))

    def step_get_range(self, location="Whole"):
        span = self.span()
        if location in ("Whole", "Content"):
            return _RangeNode(self.batch, span)
        if location == "Start":
            return _RangeNode(self.batch, span.collapse())
        if location == "End":
            return _RangeNode(self.batch, span.collapse(to_end=True))
        raise invalid(f"Unsupported range location '{location}'")

    def step_expand_to(self, ref):
        other = self.batch.resolve(ref)
        if not isinstance(other, _SpanNode):
            raise invalid("expand_to needs a range")
        mine, theirs = self.span(), other.span()
        if mine.story.key != theirs.story.key:
            raise invalid("Cannot expand a range into a different story")
        start = min((mine, theirs), key=lambda s: s.bounds()[0]).start
        end = max((mine, theirs), key=lambda s: s.bounds()[1]).end
        return _RangeNode(self.batch, Span(mine.story, start, end))

    def step_font(self):
        return _FontNode(self.batch, self.span())

    def call_insert_text(self, text, location="Replace"):
        span = self.doc.insert_text(self.span(), text, location)
        return ("span",) + span.key()

    def call_insert_inline_picture(self, data, location="Replace"):
        return ("picture", self.doc.insert_picture(self.span(), data, location))

    def call_delete(self):
        self.doc.delete_span(self.span())


class _RangeNode(_SpanNode):
    label = "Range"

    def __init__(self, batch, span: Span):
        super().__init__(batch)
        self._span = span

    def span(self):
        return self._span


class _NullRangeNode(_Node):
    label = "null Range"

    def get(self, name):
        return True if name == "is_null_object" else None

    def step(self, name, args):
        raise HostFault("ItemNotFound", "The requested item does not exist")

    def call(self, method, args):
        raise HostFault("ItemNotFound", "The requested item does not exist")


class _FontNode(_Node):
    label = "Font"

    def __init__(self, batch, span: Span):
        super().__init__(batch)
        self._span = span

    def call_set(self, properties):
        self.doc.apply_font(self._span, properties)


class _BodyNode(_SpanNode):
    label = "Body"

    def __init__(self, batch, story, section=None):
        super().__init__(batch)
        self.story = story
        self.section = section

    def span(self):
        if self.story.is_empty:
            raise HostFault("ItemNotFound", f"{self.story.type} has no content")
        if self.section is not None:
            return self.doc.section_span(self.section)
        return self.story.full_span()

    def prop_text(self):
        return "" if self.story.is_empty else super().prop_text()

    def prop_is_empty(self):
        return self.story.is_empty or super().prop_is_empty()

    def prop_type(self):
        return self.story.type


class _SectionNode(_Node):
    label = "Section"

    def __init__(self, batch, section):
        super().__init__(batch)
        self.section = section

    def prop_different_first_page(self):
        return self.section.different_first_page

    def prop_odd_and_even_pages(self):
        return self.section.odd_and_even_pages

    def step_body(self):
        return _BodyNode(self.batch, self.doc.main_story(), self.section)

    def step_header(self, kind="primary"):
        return _BodyNode(self.batch,
                         self.doc.header_footer_story(self.section, kind))

    def step_footer(self, kind="primary"):
        return _BodyNode(self.batch,
                         self.doc.header_footer_story(self.section, kind, footer=True))


class _ParagraphNode(_SpanNode):
    label = "Paragraph"
    _ATTRS = ("style", "alignment", "first_line_indent", "left_indent",
              "right_indent", "line_spacing", "space_after", "space_before",
              "is_list_item")

    def __init__(self, batch, story, paragraph: Paragraph):
        super().__init__(batch)
        self.story = story
        self.paragraph = paragraph

    def span(self):
        return Span(self.story, (self.paragraph.id, 0),
                    (self.paragraph.id, len(self.paragraph)))

    def get(self, name):
        if name in self._ATTRS:
            return getattr(self.paragraph, name)
        return super().get(name)


class _TableNode(_Node):
    label = "Table"

    def __init__(self, batch, table: Table):
        super().__init__(batch)
        self.table = table

    def prop_row_count(self):
        return len(self.table.rows)

    def prop_column_count(self):
        return self.table.column_count

    def prop_values(self):
        return [[cell.value for cell in row.cells] for row in self.table.rows]

    def step_rows(self):
        return _CollectionNode(
            self.batch, lambda: [row.id for row in self.table.rows],
            self._row)

    def _row(self, key):
        for index, row in enumerate(self.table.rows):
            if row.id == key:
                return _RowNode(self.batch, row, index)
        raise stale(f"Table row '{key}' no longer exists")


class _RowNode(_Node):
    label = "TableRow"

    def __init__(self, batch, row, index):
        super().__init__(batch)
        self.row = row
        self.index = index

    def prop_cell_count(self):
        return len(self.row.cells)

    def prop_values(self):
        return [cell.value for cell in self.row.cells]

    def step_cells(self):
        return _CollectionNode(
            self.batch, lambda: [cell.id for cell in self.row.cells],
            self._cell)

    def _cell(self, key):
        for index, cell in enumerate(self.row.cells):
            if cell.id == key:
                return _CellNode(self.batch, cell, self.index, index)
        raise stale(f"Table cell '{key}' no longer exists")


class _CellNode(_Node):
    label = "TableCell"

    def __init__(self, batch, cell, row_index, column_index):
        super().__init__(batch)
        self.cell = cell
        self.row_index = row_index
        self.column_index = column_index

    def prop_value(self):
        return self.cell.value

    def prop_width(self):
        return self.cell.width

    def prop_row_index(self):
        return self.row_index

    def prop_column_index(self):
        return self.column_index


class _ControlNode(_SpanNode):
    label = "ContentControl"
    _ATTRS = ("title", "tag", "type", "cannot_delete", "cannot_edit",
              "placeholder_text")

    def __init__(self, batch, control):
        super().__init__(batch)
        self.control = control

    def span(self):
        return self.doc.anchor_span(self.control.anchor)

    def get(self, name):
        if name in self._ATTRS:
            return getattr(self.control, name)
        return super().get(name)


class _PictureNode(_Node):
    label = "InlinePicture"
    _ATTRS = ("width", "height", "alt_text_title", "alt_text_description",
              "hyperlink", "lock_aspect_ratio")

    def __init__(self, batch, picture_id: str):
        super().__init__(batch)
        self.picture_id = picture_id

    def _locate(self):
        return self.doc.find_picture(self.picture_id)

    def get(self, name):
        picture = self._locate()[3]
        if picture.corrupt:
            raise HostFault("GeneralException",
                            f"Picture '{picture.id}' could not be read")
        if name in self._ATTRS:
            return getattr(picture, name)
        return super().get(name)

    def step_get_range(self, location="Whole"):
        story, para, offset, _ = self._locate()
        span = Span(story, (para.id, offset), (para.id, offset + 1))
        return _RangeNode(self.batch, span).step_get_range(location)

    def call_set(self, properties):
        self.doc.set_picture(self._locate()[3], properties)

    def call_delete(self):
        self.doc.delete_picture(self.picture_id)


class _DocumentNode(_Node):
    label = "Document"

    def step_body(self):
        return _BodyNode(self.batch, self.doc.main_story())

    def step_sections(self):
        return _CollectionNode(
            self.batch, lambda: [s.id for s in self.doc.sections],
            lambda key: _SectionNode(self.batch, self.doc.section(key)))

    def step_content_controls(self):
        return self.step_body().step_content_controls()

    def step_bookmark(self, name):
        anchor = self.doc.bookmarks.get(name)
        if anchor is None:
            return _NullRangeNode(self.batch)
        return _RangeNode(self.batch, self.doc.anchor_span(anchor))

    def step_selection(self):
        return _RangeNode(self.batch, self.doc.selection_span())

    def step_handle(self, handle):
        target = self.batch.handles.get(handle)
        if target is None:
            raise invalid(f"Unknown result handle {handle}")
        if target[0] == "span":
            return _RangeNode(self.batch, self.doc.span_from_key(target[1:]))
        return _PictureNode(self.batch, target[1])


# ---------------------------------------------------------------------------
# Batch execution
# ---------------------------------------------------------------------------

class _Batch:
    def __init__(self, document: MemoryDocument, handles: Dict[int, tuple]):
        self.document = document
        self.handles = handles

    def resolve(self, ref) -> _Node:
        node: _Node = _DocumentNode(self)
        for step in ref:
            name, args = step[0], step[1:]
            node = node.step(name, args)
        return node

    def paragraph(self, key) -> _ParagraphNode:
        story, paragraph = self.document.paragraph(key)
        return _ParagraphNode(self, story, paragraph)

    def table(self, key) -> _TableNode:
        _, block = self.document.find_block(key)
        if not isinstance(block, Table):
            raise stale(f"Object '{key}' is not a table")
        return _TableNode(self, block)

    def control(self, key) -> _ControlNode:
        return _ControlNode(self, self.document.find_control(key))

    def picture(self, key) -> _PictureNode:
        self.document.find_picture(key)
        return _PictureNode(self, key)

    def run(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        op = entry.get("op")
        if op == "load":
            try:
                node = self.resolve(entry["ref"])
                values = {name: node.get(name) for name in entry["properties"]}
            except HostFault as fault:
                if entry.get("isolated") and fault.kind != "StaleReference":
                    logger.debug("Isolated load failed: %s", fault.message)
                    return {"unavailable": fault.message}
                raise
            return {"values": values}
        if op == "call":
            node = self.resolve(entry["ref"])
            result = node.call(entry["method"], entry.get("args") or {})
            if entry.get("handle") is not None:
                if result is None:
                    raise invalid(f"'{entry['method']}' returns no object")
                self.handles[entry["handle"]] = result
            return {}
        raise invalid(f"Unknown batch operation {op!r}")


class MemoryHost:
    """Executes wire-format batches against one MemoryDocument."""

    def __init__(self, document: MemoryDocument):
        self.document = document

    def execute(self, entries: List[Dict[str, Any]],
                handles: Dict[int, tuple]) -> List[Dict[str, Any]]:
        saved = self.document.snapshot()
        saved_handles = dict(handles)
        batch = _Batch(self.document, handles)
        try:
            return [batch.run(entry) for entry in entries]
        except HostFault:
            self.document.restore(saved)
            handles.clear()
            handles.update(saved_handles)
            raise


class MemorySession(DocumentSession):
    """Session bound to an in-memory document."""

    def __init__(self, document: MemoryDocument):
        super().__init__()
        self._host = MemoryHost(document)
        self._host_handles: Dict[int, tuple] = {}

    @property
    def host_document(self) -> MemoryDocument:
        return self._host.document

    async def _execute(self, entries):
        try:
            return self._host.execute(entries, self._host_handles)
        except HostFault as fault:
            logger.info("Batch of %d entries rejected: %s", len(entries),
                        fault.message)
            raise host_error(fault.kind, fault.message) from fault
