"""
MemoryDocument: a small word-processing document model.

Sections hold blocks (paragraphs and tables).  A paragraph is a list of
inlines: text runs with a font, and inline pictures that occupy one
position each.  Bookmarks and content controls are anchored to whole
paragraphs.  The main story is the concatenation of every section body;
headers and footers are stories of their own.

Positions are ``(paragraph_id, offset)``.  Text of a multi-paragraph span
joins paragraphs with ``"\\n"``.
"""

import base64
import binascii
import copy
import json
import re
import struct
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

OBJECT_CHAR = "\ufffc"

Position = Tuple[str, int]


class HostFault(Exception):
    """A failure reported by the host for one batch entry."""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


def stale(message: str) -> HostFault:
    return HostFault("StaleReference", message)


def invalid(message: str) -> HostFault:
    return HostFault("InvalidArgument", message)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

@dataclass
class Font:
    name: str = "Calibri"
    size: float = 11.0
    bold: bool = False
    italic: bool = False
    underline: str = "None"
    color: str = "#000000"
    highlight_color: Optional[str] = None
    strike_through: bool = False
    superscript: bool = False
    subscript: bool = False


FONT_FIELDS = frozenset(f.name for f in fields(Font))


@dataclass
class TextRun:
    text: str
    font: Font = field(default_factory=Font)

    def __len__(self):
        return len(self.text)


@dataclass
class Picture:
    id: str
    data: str = ""
    width: float = 100.0
    height: float = 100.0
    alt_text_title: str = ""
    alt_text_description: str = ""
    hyperlink: Optional[str] = None
    lock_aspect_ratio: bool = True
    # simulates an embedded object the host cannot read
    corrupt: bool = False

    def __len__(self):
        return 1


PICTURE_FIELDS = frozenset(("width", "height", "alt_text_title",
                            "alt_text_description", "hyperlink",
                            "lock_aspect_ratio"))

Inline = Union[TextRun, Picture]


@dataclass
class Paragraph:
    id: str
    inlines: List[Inline] = field(default_factory=list)
    style: str = "Normal"
    alignment: str = "Left"
    first_line_indent: float = 0.0
    left_indent: float = 0.0
    right_indent: float = 0.0
    line_spacing: float = 15.0
    space_after: float = 8.0
    space_before: float = 0.0
    is_list_item: bool = False

    def __len__(self):
        return sum(len(item) for item in self.inlines)

    @property
    def content(self) -> str:
        """Text with one object character per picture."""
        return "".join(item.text if isinstance(item, TextRun) else OBJECT_CHAR
                       for item in self.inlines)

    @property
    def text(self) -> str:
        return self.text_between(0, len(self))

    def text_between(self, start: int, end: int) -> str:
        return self.content[start:end].replace(OBJECT_CHAR, "")

    def pictures(self) -> Iterator[Tuple[int, Picture]]:
        pos = 0
        for item in self.inlines:
            if isinstance(item, Picture):
                yield pos, item
            pos += len(item)

    def split_at(self, offset: int) -> int:
        """Ensure an inline boundary at *offset*; return the inline index there."""
        pos = 0
        for i, item in enumerate(self.inlines):
            if pos == offset:
                return i
            end = pos + len(item)
            if offset < end:
                cut = offset - pos
                head = TextRun(item.text[:cut], copy.copy(item.font))
                tail = TextRun(item.text[cut:], copy.copy(item.font))
                self.inlines[i:i + 1] = [head, tail]
                return i + 1
            pos = end
        return len(self.inlines)

    def remove(self, start: int, end: int):
        i = self.split_at(start)
        j = self.split_at(end)
        del self.inlines[i:j]

    def insert(self, offset: int, items: List[Inline]):
        i = self.split_at(offset)
        self.inlines[i:i] = items

    def cut(self, offset: int) -> List[Inline]:
        i = self.split_at(offset)
        tail = self.inlines[i:]
        del self.inlines[i:]
        return tail

    def font_at(self, offset: int) -> Font:
        """Font of the character at *offset*, else the one before it."""
        pos = 0
        before = None
        for item in self.inlines:
            end = pos + len(item)
            if isinstance(item, TextRun) and item.text:
                if pos <= offset < end:
                    return copy.copy(item.font)
                if end <= offset:
                    before = item.font
            pos = end
        return copy.copy(before) if before is not None else Font()


@dataclass
class TableCell:
    id: str
    value: str = ""
    width: float = 100.0


@dataclass
class TableRow:
    id: str
    cells: List[TableCell] = field(default_factory=list)


@dataclass
class Table:
    id: str
    rows: List[TableRow] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return max((len(row.cells) for row in self.rows), default=0)

    @property
    def text(self) -> str:
        return "\n".join("\t".join(cell.value for cell in row.cells)
                         for row in self.rows)


Block = Union[Paragraph, Table]


@dataclass
class Anchor:
    """A run of whole paragraphs, first to last inclusive."""
    first: str
    last: str


@dataclass
class ContentControl:
    id: str
    anchor: Anchor
    title: str = ""
    tag: str = ""
    type: str = "RichText"
    cannot_delete: bool = False
    cannot_edit: bool = False
    placeholder_text: str = ""


@dataclass
class Section:
    id: str
    blocks: List[Block] = field(default_factory=list)
    headers: Dict[str, List[Block]] = field(default_factory=dict)
    footers: Dict[str, List[Block]] = field(default_factory=dict)
    different_first_page: bool = False
    odd_and_even_pages: bool = False


HEADER_FOOTER_KINDS = ("primary", "firstPage", "evenPages")


# ---------------------------------------------------------------------------
# Stories and spans
# ---------------------------------------------------------------------------

class Story:
    """A flow of blocks, possibly spread over several section containers."""

    def __init__(self, key: Any, type_name: str, containers: List[List[Block]]):
        self.key = key
        self.type = type_name
        self.containers = containers

    def blocks(self) -> List[Block]:
        return [block for container in self.containers for block in container]

    def paragraphs(self) -> List[Paragraph]:
        return [b for b in self.blocks() if isinstance(b, Paragraph)]

    def index_of(self, block_id: str) -> Optional[int]:
        for i, block in enumerate(self.blocks()):
            if block.id == block_id:
                return i
        return None

    def remove(self, block_ids):
        for container in self.containers:
            container[:] = [b for b in container if b.id not in block_ids]

    @property
    def is_empty(self) -> bool:
        return not self.paragraphs()

    def full_span(self) -> "Span":
        paragraphs = self.paragraphs()
        return Span(self, (paragraphs[0].id, 0),
                    (paragraphs[-1].id, len(paragraphs[-1])))


class Span:
    """A contiguous range inside one story."""

    __slots__ = ("story", "start", "end")

    def __init__(self, story: Story, start: Position, end: Position):
        self.story = story
        self.start = start
        self.end = end

    def key(self) -> Tuple[str, int, str, int]:
        return (self.start[0], self.start[1], self.end[0], self.end[1])

    def bounds(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        return ((self.story.index_of(self.start[0]), self.start[1]),
                (self.story.index_of(self.end[0]), self.end[1]))

    @property
    def collapsed(self) -> bool:
        return self.start == self.end

    def collapse(self, to_end: bool = False) -> "Span":
        pos = self.end if to_end else self.start
        return Span(self.story, pos, pos)


def _search_pattern(text: str, match_case: bool, whole_word: bool,
                    wildcards: bool):
    if wildcards:
        body = "".join(".*?" if ch == "*" else "." if ch == "?" else re.escape(ch)
                       for ch in text)
    else:
        body = re.escape(text)
    if whole_word:
        body = rf"(?<!\w){body}(?!\w)"
    return re.compile(body, 0 if match_case else re.IGNORECASE)


def _image_size(raw: bytes) -> Optional[Tuple[float, float]]:
    """Point size of a PNG at 96 dpi, when the header can be read."""
    if raw[:8] == b"\x89PNG\r\n\x1a\n" and len(raw) >= 24:
        width, height = struct.unpack(">II", raw[16:24])
        return width * 0.75, height * 0.75
    return None


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class MemoryDocument:
    """An editable document held in process memory."""

    def __init__(self):
        self.sections: List[Section] = []
        self.bookmarks: Dict[str, Anchor] = {}
        self.content_controls: List[ContentControl] = []
        self.selection: Optional[Tuple[str, int, str, int]] = None
        self._next_id = 1

    def new_id(self, prefix: str) -> str:
        ident = f"{prefix}{self._next_id}"
        self._next_id += 1
        return ident

    # -- snapshots ---------------------------------------------------------

    def snapshot(self):
        return copy.deepcopy((self.sections, self.bookmarks,
                              self.content_controls, self.selection,
                              self._next_id))

    def restore(self, state):
        (self.sections, self.bookmarks, self.content_controls,
         self.selection, self._next_id) = copy.deepcopy(state)

    # -- stories -----------------------------------------------------------

    def main_story(self) -> Story:
        return Story("main", "MainDoc", [s.blocks for s in self.sections])

    def header_footer_story(self, section: Section, kind: str,
                            footer: bool = False) -> Story:
        if kind not in HEADER_FOOTER_KINDS:
            raise invalid(f"Unknown header/footer type '{kind}'")
        store = section.footers if footer else section.headers
        name = ("Footer" if footer else "Header")
        type_name = kind[0].upper() + kind[1:] + name
        container = store.get(kind)
        containers = [container] if container is not None else []
        return Story((section.id, name.lower(), kind), type_name, containers)

    def stories(self) -> Iterator[Story]:
        yield self.main_story()
        for section in self.sections:
            for footer in (False, True):
                store = section.footers if footer else section.headers
                for kind in store:
                    yield self.header_footer_story(section, kind, footer)

    def find_block(self, block_id: str) -> Tuple[Story, Block]:
        for story in self.stories():
            for block in story.blocks():
                if block.id == block_id:
                    return story, block
        raise stale(f"Object '{block_id}' no longer exists in the document")

    def paragraph(self, paragraph_id: str) -> Tuple[Story, Paragraph]:
        story, block = self.find_block(paragraph_id)
        if not isinstance(block, Paragraph):
            raise stale(f"Object '{paragraph_id}' is not a paragraph")
        return story, block

    def section(self, section_id: str) -> Section:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise stale(f"Section '{section_id}' no longer exists")

    def section_span(self, section: Section) -> Span:
        paragraphs = [b for b in section.blocks if isinstance(b, Paragraph)]
        return Span(self.main_story(), (paragraphs[0].id, 0),
                    (paragraphs[-1].id, len(paragraphs[-1])))

    def find_picture(self, picture_id: str) -> Tuple[Story, Paragraph, int, Picture]:
        for story in self.stories():
            for para in story.paragraphs():
                for offset, picture in para.pictures():
                    if picture.id == picture_id:
                        return story, para, offset, picture
        raise stale(f"Picture '{picture_id}' no longer exists in the document")

    def find_control(self, control_id: str) -> ContentControl:
        for control in self.content_controls:
            if control.id == control_id:
                return control
        raise stale(f"Content control '{control_id}' no longer exists")

    def anchor_span(self, anchor: Anchor) -> Span:
        story, first = self.paragraph(anchor.first)
        _, last = self.paragraph(anchor.last)
        return Span(story, (first.id, 0), (last.id, len(last)))

    def span_from_key(self, key) -> Span:
        start_id, start, end_id, end = key
        story, first = self.paragraph(start_id)
        end_story, last = self.paragraph(end_id)
        if end_story.key != story.key or start > len(first) or end > len(last):
            raise stale(f"Range {list(key)} no longer matches the document")
        span = Span(story, (start_id, start), (end_id, end))
        lo, hi = span.bounds()
        if lo > hi:
            raise stale(f"Range {list(key)} no longer matches the document")
        return span

    def selection_span(self) -> Span:
        if self.selection is not None:
            start_id, start, end_id, end = self.selection
            story, first = self.paragraph(start_id)
            _, last = self.paragraph(end_id)
            return Span(story, (start_id, min(start, len(first))),
                        (end_id, min(end, len(last))))
        return self.main_story().full_span().collapse()

    # -- reading spans -----------------------------------------------------

    def _blocks_in(self, span: Span):
        (si, _), (ei, _) = span.bounds()
        return list(enumerate(span.story.blocks()))[si:ei + 1]

    def span_text(self, span: Span) -> str:
        (si, so), (ei, eo) = span.bounds()
        parts = []
        for i, block in self._blocks_in(span):
            if isinstance(block, Table):
                parts.append(block.text)
                continue
            start = so if i == si else 0
            end = eo if i == ei else len(block)
            parts.append(block.text_between(start, end))
        return "\n".join(parts)

    def span_paragraphs(self, span: Span) -> List[Paragraph]:
        return [b for _, b in self._blocks_in(span) if isinstance(b, Paragraph)]

    def span_tables(self, span: Span) -> List[Table]:
        return [b for _, b in self._blocks_in(span) if isinstance(b, Table)]

    def span_pictures(self, span: Span) -> List[Picture]:
        lo, hi = span.bounds()
        found = []
        for i, block in self._blocks_in(span):
            if isinstance(block, Paragraph):
                for offset, picture in block.pictures():
                    if (i, offset) >= lo and (i, offset + 1) <= hi:
                        found.append(picture)
        return found

    def span_controls(self, span: Span) -> List[ContentControl]:
        (si, _), (ei, _) = span.bounds()
        found = []
        for control in self.content_controls:
            first = span.story.index_of(control.anchor.first)
            last = span.story.index_of(control.anchor.last)
            if first is None or last is None:
                continue
            if first <= ei and last >= si:
                found.append((first, control))
        return [control for _, control in sorted(found, key=lambda fc: fc[0])]

    def search(self, span: Span, text: str, match_case: bool = False,
               match_whole_word: bool = False,
               match_wildcards: bool = False) -> List[Tuple[str, int, str, int]]:
        if not text:
            raise invalid("Search text must not be empty")
        pattern = _search_pattern(text, match_case, match_whole_word,
                                  match_wildcards)
        (si, so), (ei, eo) = span.bounds()
        keys = []
        for i, block in self._blocks_in(span):
            if not isinstance(block, Paragraph):
                continue
            start = so if i == si else 0
            end = eo if i == ei else len(block)
            for match in pattern.finditer(block.content, start, end):
                if match.end() > match.start():
                    keys.append((block.id, match.start(), block.id, match.end()))
        return keys

    # -- editing -----------------------------------------------------------

    def delete_span(self, span: Span) -> Position:
        """Delete the span, merging its end paragraph into its start."""
        if span.collapsed:
            return span.start
        story = span.story
        _, first = self.paragraph(span.start[0])
        _, last = self.paragraph(span.end[0])
        if first is last:
            first.remove(span.start[1], span.end[1])
            return span.start
        tail = last.cut(span.end[1])
        first.remove(span.start[1], len(first))
        first.inlines.extend(tail)
        (si, _), (ei, _) = span.bounds()
        removed = {block.id for block in story.blocks()[si + 1:ei + 1]}
        story.remove(removed)
        self._reanchor(removed, first.id)
        self._normalize()
        return span.start

    def _reanchor(self, removed, survivor: str):
        for name, anchor in list(self.bookmarks.items()):
            if not self._fix_anchor(anchor, removed, survivor):
                del self.bookmarks[name]
        self.content_controls = [
            control for control in self.content_controls
            if self._fix_anchor(control.anchor, removed, survivor)]
        if self.selection is not None and (
                self.selection[0] in removed or self.selection[2] in removed):
            self.selection = None

    @staticmethod
    def _fix_anchor(anchor: Anchor, removed, survivor: str) -> bool:
        if anchor.first in removed and anchor.last in removed:
            return False
        if anchor.first in removed:
            anchor.first = survivor
        if anchor.last in removed:
            anchor.last = survivor
        return True

    def _normalize(self):
        """Drop emptied sections; keep every section bounded by paragraphs."""
        self.sections = [s for s in self.sections if s.blocks]
        for section in self.sections:
            if isinstance(section.blocks[0], Table):
                section.blocks.insert(0, Paragraph(self.new_id("p")))
            if isinstance(section.blocks[-1], Table):
                section.blocks.append(Paragraph(self.new_id("p")))

    def _insertion_point(self, span: Span, location: str) -> Position:
        if location == "Replace":
            return self.delete_span(span)
        if location in ("Start", "Before"):
            return span.start
        if location in ("End", "After"):
            return span.end
        raise invalid(f"Unsupported insert location '{location}'")

    def insert_text(self, span: Span, text: str, location: str) -> Span:
        _, para = self.paragraph(span.start[0])
        font = para.font_at(span.start[1])
        if location in ("End", "After"):
            _, end_para = self.paragraph(span.end[0])
            font = end_para.font_at(max(span.end[1] - 1, 0))
        pid, offset = self._insertion_point(span, location)
        _, para = self.paragraph(pid)
        if text:
            para.insert(offset, [TextRun(text, font)])
        return Span(span.story, (pid, offset), (pid, offset + len(text)))

    def insert_picture(self, span: Span, data: str, location: str) -> str:
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise invalid("Image data is not valid base64")
        pid, offset = self._insertion_point(span, location)
        _, para = self.paragraph(pid)
        width, height = _image_size(raw) or (100.0, 100.0)
        picture = Picture(self.new_id("img"), data=data, width=width,
                          height=height)
        para.insert(offset, [picture])
        return picture.id

    def apply_font(self, span: Span, patch: Dict[str, Any]):
        unknown = set(patch) - FONT_FIELDS
        if unknown:
            raise invalid(f"Unknown font properties: {sorted(unknown)}")
        (si, so), (ei, eo) = span.bounds()
        for i, block in self._blocks_in(span):
            if not isinstance(block, Paragraph):
                continue
            start = block.split_at(so if i == si else 0)
            end = block.split_at(eo if i == ei else len(block))
            for item in block.inlines[start:end]:
                if isinstance(item, TextRun):
                    item.font = replace(item.font, **patch)

    def set_picture(self, picture: Picture, patch: Dict[str, Any]):
        unknown = set(patch) - PICTURE_FIELDS
        if unknown:
            raise invalid(f"Unknown picture properties: {sorted(unknown)}")
        lock = patch.get("lock_aspect_ratio", picture.lock_aspect_ratio)
        if lock and ("width" in patch) != ("height" in patch):
            ratio = picture.height / picture.width if picture.width else 1.0
            if "width" in patch:
                patch = dict(patch, height=patch["width"] * ratio)
            else:
                patch = dict(patch, width=patch["height"] / ratio)
        for name, value in patch.items():
            setattr(picture, name, value)

    def delete_picture(self, picture_id: str):
        _, para, offset, _ = self.find_picture(picture_id)
        para.remove(offset, offset + 1)

    # -- construction ------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryDocument":
        """Build a document from a plain dict (see tests/conftest.py)."""
        doc = cls()
        raw_sections = data.get("sections")
        if raw_sections is None:
            raw_sections = [{"body": data.get("body", [""])}]
        for raw in raw_sections:
            section = Section(
                doc.new_id("s"),
                blocks=doc._blocks(raw.get("body", [""])),
                different_first_page=raw.get("different_first_page", False),
                odd_and_even_pages=raw.get("odd_and_even_pages", False))
            for kind, blocks in raw.get("headers", {}).items():
                section.headers[kind] = doc._blocks(blocks)
            for kind, blocks in raw.get("footers", {}).items():
                section.footers[kind] = doc._blocks(blocks)
            doc.sections.append(section)
        doc._normalize()

        paragraphs = doc.main_story().paragraphs()

        def anchor(entry) -> Anchor:
            if isinstance(entry, int):
                entry = {"paragraph": entry}
            first = entry["paragraph"]
            return Anchor(paragraphs[first].id,
                          paragraphs[entry.get("end_paragraph", first)].id)

        for name, entry in data.get("bookmarks", {}).items():
            doc.bookmarks[name] = anchor(entry)
        for entry in data.get("content_controls", []):
            doc.content_controls.append(ContentControl(
                doc.new_id("cc"), anchor(entry),
                title=entry.get("title", ""), tag=entry.get("tag", ""),
                type=entry.get("type", "RichText"),
                cannot_delete=entry.get("cannot_delete", False),
                cannot_edit=entry.get("cannot_edit", False),
                placeholder_text=entry.get("placeholder_text", "")))
        selection = data.get("selection")
        if selection is not None:
            first = paragraphs[selection["paragraph"]]
            last = paragraphs[selection.get("end_paragraph", selection["paragraph"])]
            doc.selection = (first.id, selection.get("start", 0),
                             last.id, selection.get("end", len(last)))
        return doc

    @classmethod
    def from_file(cls, path: str) -> "MemoryDocument":
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def _blocks(self, raw_blocks) -> List[Block]:
        blocks: List[Block] = []
        for raw in raw_blocks:
            if isinstance(raw, dict) and "table" in raw:
                blocks.append(self._table(raw))
            else:
                blocks.append(self._paragraph(raw))
        return blocks

    def _paragraph(self, raw) -> Paragraph:
        if isinstance(raw, str):
            raw = {"text": raw}
        para = Paragraph(self.new_id("p"))
        for name in ("style", "alignment", "first_line_indent", "left_indent",
                     "right_indent", "line_spacing", "space_after",
                     "space_before", "is_list_item"):
            if name in raw:
                setattr(para, name, raw[name])
        for run in raw.get("runs", [raw.get("text", "")]):
            if isinstance(run, str):
                if run:
                    para.inlines.append(TextRun(run))
            elif "picture" in run:
                entry = dict(run["picture"])
                if "alt_text" in entry:
                    entry["alt_text_description"] = entry.pop("alt_text")
                para.inlines.append(Picture(self.new_id("img"), **entry))
            else:
                font = {k: v for k, v in run.items() if k in FONT_FIELDS}
                para.inlines.append(TextRun(run.get("text", ""), Font(**font)))
        return para

    def _table(self, raw) -> Table:
        table = Table(self.new_id("t"))
        width = raw.get("cell_width", 100.0)
        for values in raw["table"]:
            row = TableRow(self.new_id("r"))
            for value in values:
                row.cells.append(TableCell(self.new_id("c"), str(value), width))
            table.rows.append(row)
        return table

    # -- inspection --------------------------------------------------------

    def paragraph_texts(self) -> List[str]:
        return [p.text for p in self.main_story().paragraphs()]

    @property
    def text(self) -> str:
        story = self.main_story()
        return self.span_text(story.full_span()) if not story.is_empty else ""

    def pictures(self) -> List[Picture]:
        story = self.main_story()
        return [] if story.is_empty else self.span_pictures(story.full_span())

    def paragraph_at(self, index: int) -> Paragraph:
        return self.main_story().paragraphs()[index]
