"""
Client-side proxies for host document objects.

A proxy is only an address (``ref``: a tuple of navigation steps) plus
whatever property values the last flush delivered for it.  Nothing is
fetched implicitly: call ``load()``, then ``await session.flush()``, then
read.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..errors import BranchUnavailableError, PropertyNotLoadedError

Ref = Tuple[Tuple[Any, ...], ...]


class RangeLocation:
    WHOLE = "Whole"
    START = "Start"
    END = "End"
    CONTENT = "Content"


class InsertLocation:
    REPLACE = "Replace"
    START = "Start"
    END = "End"
    BEFORE = "Before"
    AFTER = "After"


class HeaderFooterType:
    PRIMARY = "primary"
    FIRST_PAGE = "firstPage"
    EVEN_PAGES = "evenPages"


def freeze(value: Any) -> Any:
    """Turn nested lists into tuples so keys can live inside a ref."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze, for the JSON wire format."""
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value


class loaded:
    """Descriptor for a property that must be loaded before it is read."""

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, owner=None):
        if obj is None:
            return self
        return obj._read(self.name)


class ClientObject:
    """Base proxy: an address in the host document plus loaded values."""

    def __init__(self, session, ref: Ref = ()):
        self._session = session
        self._ref: Ref = tuple(ref)
        self._values: Dict[str, Any] = {}
        self._unavailable: Optional[str] = None

    def __repr__(self):
        return f"<{type(self).__name__} {self._ref!r}>"

    @property
    def ref(self) -> Ref:
        return self._ref

    @property
    def session(self):
        return self._session

    @property
    def key(self) -> Any:
        """Host key of a collection item, or None."""
        if self._ref and self._ref[-1][0] == "item":
            return self._ref[-1][1]
        return None

    @property
    def unavailable_reason(self) -> Optional[str]:
        return self._unavailable

    def load(self, *names: str, isolated: bool = False):
        """Queue properties for the next flush. Returns self."""
        self._session.load(self, *names, isolated=isolated)
        return self

    def is_loaded(self, name: str) -> bool:
        return name in self._values

    def _read(self, name: str) -> Any:
        if self._unavailable is not None:
            raise BranchUnavailableError(self._unavailable, property=name)
        if name not in self._values:
            raise PropertyNotLoadedError(
                f"Property '{name}' of {type(self).__name__} was read before "
                f"being loaded and flushed", property=name)
        return self._values[name]

    def _accept(self, values: Dict[str, Any]):
        self._unavailable = None
        self._values.update(values)

    def _mark_unavailable(self, reason: str):
        self._unavailable = reason

    def _child(self, cls, *step):
        return cls(self._session, self._ref + (freeze(step),))

    def _collection(self, item_class, *step) -> "Collection":
        return Collection(self._session, self._ref + (freeze(step),),
                          item_class)

    def _call(self, method: str, result_class=None, **args):
        return self._session.queue_call(self, method, args, result_class)


class Collection(ClientObject):
    """A host collection; ``items`` yields item proxies after a flush."""

    def __init__(self, session, ref: Ref, item_class):
        super().__init__(session, ref)
        self.item_class = item_class

    count = loaded()

    @property
    def items(self) -> List[Any]:
        return self._read("items")

    def _accept(self, values: Dict[str, Any]):
        values = dict(values)
        if "items" in values:
            values["items"] = [
                self.item_class(self._session,
                                self._ref + (("item", freeze(key)),))
                for key in values["items"]]
        super()._accept(values)


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------

class FontProxy(ClientObject):
    name = loaded()
    size = loaded()
    bold = loaded()
    italic = loaded()
    underline = loaded()
    color = loaded()
    highlight_color = loaded()
    strike_through = loaded()
    superscript = loaded()
    subscript = loaded()

    def set(self, **properties):
        """Queue a sparse font patch."""
        self._call("set", properties=properties)


class RangeProxy(ClientObject):
    """A contiguous span of the document."""

    text = loaded()
    is_empty = loaded()
    is_null_object = loaded()

    @property
    def paragraphs(self) -> Collection:
        return self._collection(ParagraphProxy, "paragraphs")

    @property
    def tables(self) -> Collection:
        return self._collection(TableProxy, "tables")

    @property
    def content_controls(self) -> Collection:
        return self._collection(ContentControlProxy, "content_controls")

    @property
    def inline_pictures(self) -> Collection:
        return self._collection(InlinePictureProxy, "inline_pictures")

    @property
    def font(self) -> FontProxy:
        return self._child(FontProxy, "font")

    def get_range(self, location: str = RangeLocation.WHOLE) -> "RangeProxy":
        return self._child(RangeProxy, "get_range", location)

    def expand_to(self, other: "RangeProxy") -> "RangeProxy":
        return self._child(RangeProxy, "expand_to", other.ref)

    def search(self, text: str, match_case: bool = False,
               match_whole_word: bool = False,
               match_wildcards: bool = False) -> Collection:
        return self._collection(RangeProxy, "search", text, match_case,
                                match_whole_word, match_wildcards)

    def insert_text(self, text: str,
                    location: str = InsertLocation.REPLACE) -> "RangeProxy":
        return self._call("insert_text", RangeProxy, text=text,
                          location=location)

    def insert_inline_picture(self, base64_data: str,
                              location: str = InsertLocation.REPLACE
                              ) -> "InlinePictureProxy":
        return self._call("insert_inline_picture", InlinePictureProxy,
                          data=base64_data, location=location)

    def delete(self):
        self._call("delete")


# ---------------------------------------------------------------------------
# Document structure
# ---------------------------------------------------------------------------

class BodyProxy(RangeProxy):
    """A story: the main body, a section body, or a header/footer."""

    type = loaded()


class SectionProxy(ClientObject):
    different_first_page = loaded()
    odd_and_even_pages = loaded()

    @property
    def body(self) -> BodyProxy:
        return self._child(BodyProxy, "body")

    def get_header(self, kind: str = HeaderFooterType.PRIMARY) -> BodyProxy:
        return self._child(BodyProxy, "header", kind)

    def get_footer(self, kind: str = HeaderFooterType.PRIMARY) -> BodyProxy:
        return self._child(BodyProxy, "footer", kind)


class ParagraphProxy(ClientObject):
    text = loaded()
    style = loaded()
    alignment = loaded()
    first_line_indent = loaded()
    left_indent = loaded()
    right_indent = loaded()
    line_spacing = loaded()
    space_after = loaded()
    space_before = loaded()
    is_list_item = loaded()

    @property
    def inline_pictures(self) -> Collection:
        return self._collection(InlinePictureProxy, "inline_pictures")

    def get_range(self, location: str = RangeLocation.WHOLE) -> RangeProxy:
        return self._child(RangeProxy, "get_range", location)


class TableCellProxy(ClientObject):
    value = loaded()
    width = loaded()
    row_index = loaded()
    column_index = loaded()


class TableRowProxy(ClientObject):
    cell_count = loaded()
    values = loaded()

    @property
    def cells(self) -> Collection:
        return self._collection(TableCellProxy, "cells")


class TableProxy(ClientObject):
    row_count = loaded()
    column_count = loaded()
    values = loaded()

    @property
    def rows(self) -> Collection:
        return self._collection(TableRowProxy, "rows")


class ContentControlProxy(ClientObject):
    text = loaded()
    title = loaded()
    tag = loaded()
    type = loaded()
    cannot_delete = loaded()
    cannot_edit = loaded()
    placeholder_text = loaded()

    def get_range(self, location: str = RangeLocation.WHOLE) -> RangeProxy:
        return self._child(RangeProxy, "get_range", location)


class InlinePictureProxy(ClientObject):
    width = loaded()
    height = loaded()
    alt_text_title = loaded()
    alt_text_description = loaded()
    hyperlink = loaded()
    lock_aspect_ratio = loaded()

    def get_range(self, location: str = RangeLocation.WHOLE) -> RangeProxy:
        return self._child(RangeProxy, "get_range", location)

    def set(self, **properties):
        """Queue a sparse property patch."""
        self._call("set", properties=properties)

    def delete(self):
        self._call("delete")


class DocumentProxy(ClientObject):
    """Root of the proxy tree."""

    @property
    def body(self) -> BodyProxy:
        return self._child(BodyProxy, "body")

    @property
    def sections(self) -> Collection:
        return self._collection(SectionProxy, "sections")

    @property
    def content_controls(self) -> Collection:
        return self._collection(ContentControlProxy, "content_controls")

    def get_bookmark_range_or_null(self, name: str) -> RangeProxy:
        """Range of a bookmark; ``is_null_object`` is True if missing."""
        return self._child(RangeProxy, "bookmark", name)

    def get_selection(self) -> RangeProxy:
        return self._child(RangeProxy, "selection")
