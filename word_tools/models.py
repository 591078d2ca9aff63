"""
Pydantic models for locators, options and structured tool responses.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ArgumentValidationError, InvalidLocatorError


class _Input(BaseModel):
    """Caller-constructed, immutable input; accepts camelCase aliases."""
    model_config = ConfigDict(frozen=True, populate_by_name=True,
                              alias_generator=to_camel, extra="forbid")


class _Output(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Locators
# ---------------------------------------------------------------------------

class BookmarkLocator(_Input):
    """A named bookmark."""
    type: Literal["bookmark"] = "bookmark"
    name: str = Field(description="Bookmark name")


class HeadingLocator(_Input):
    """The Nth heading matching optional text and level filters."""
    type: Literal["heading"] = "heading"
    text: Optional[str] = Field(default=None,
                                description="Substring the heading text must contain")
    level: Optional[int] = Field(default=None, description="Heading level 1-9")
    index: int = Field(default=0, description="Zero-based index among matches")


class ParagraphLocator(_Input):
    """One paragraph, or a run of paragraphs, by zero-based index."""
    type: Literal["paragraph"] = "paragraph"
    start_index: int = Field(description="First paragraph index")
    end_index: Optional[int] = Field(default=None,
                                     description="Last paragraph index (inclusive)")


class SectionLocator(_Input):
    """The body of a document section."""
    type: Literal["section"] = "section"
    index: int = Field(description="Zero-based section index")


class ContentControlLocator(_Input):
    """The Nth content control whose title and tag match."""
    type: Literal["content_control"] = "content_control"
    title: Optional[str] = Field(default=None, description="Exact control title")
    tag: Optional[str] = Field(default=None, description="Exact control tag")
    index: int = Field(default=0, description="Zero-based index among matches")


class SearchLocator(_Input):
    """Text search across the document body (mutation only)."""
    type: Literal["search"] = "search"
    text: str = Field(description="Text to search for")
    match_case: bool = False
    match_whole_word: bool = False
    match_wildcards: bool = Field(default=False,
                                  description="Treat ? and * as wildcards")


class SelectionLocator(_Input):
    """The current selection in the host (mutation only)."""
    type: Literal["selection"] = "selection"


class ImageIndexLocator(_Input):
    """The Nth inline picture of the document body."""
    type: Literal["image_index"] = "image_index"
    index: int = Field(description="Zero-based picture index")


class ImageSearchLocator(_Input):
    """Inline pictures filtered by alt text and size bounds."""
    type: Literal["image_search"] = "image_search"
    alt_text: Optional[str] = Field(default=None,
                                    description="Substring of the picture's alt text")
    min_width: Optional[float] = None
    max_width: Optional[float] = None
    min_height: Optional[float] = None
    max_height: Optional[float] = None


_STRUCTURAL = (BookmarkLocator, HeadingLocator, ParagraphLocator,
               SectionLocator, ContentControlLocator)

RangeLocator = Annotated[
    Union[BookmarkLocator, HeadingLocator, ParagraphLocator,
          SectionLocator, ContentControlLocator],
    Field(discriminator="type"),
]

TextTarget = Annotated[
    Union[BookmarkLocator, HeadingLocator, ParagraphLocator,
          SectionLocator, ContentControlLocator,
          SearchLocator, SelectionLocator],
    Field(discriminator="type"),
]

ImageTarget = Annotated[
    Union[BookmarkLocator, HeadingLocator, ParagraphLocator,
          SectionLocator, ContentControlLocator,
          SelectionLocator, ImageIndexLocator, ImageSearchLocator],
    Field(discriminator="type"),
]

_range_adapter = TypeAdapter(RangeLocator)
_text_adapter = TypeAdapter(TextTarget)
_image_adapter = TypeAdapter(ImageTarget)

# Accept the camelCase spelling of the content control tag.
_TYPE_ALIASES = {"contentControl": "content_control",
                 "imageIndex": "image_index",
                 "imageSearch": "image_search"}


def is_structural(locator: Any) -> bool:
    return isinstance(locator, _STRUCTURAL)


def _parse(adapter: TypeAdapter, data: Any):
    if isinstance(data, BaseModel):
        return data
    if isinstance(data, dict) and data.get("type") in _TYPE_ALIASES:
        data = dict(data, type=_TYPE_ALIASES[data["type"]])
    try:
        return adapter.validate_python(data)
    except PydanticValidationError as e:
        raise InvalidLocatorError(f"Invalid locator: {_summarize(e)}",
                                  locator=data if isinstance(data, dict) else repr(data))


def parse_locator(data: Any) -> RangeLocator:
    """Parse a raw dict into one of the five structural locators."""
    return _parse(_range_adapter, data)


def parse_text_target(data: Any) -> TextTarget:
    return _parse(_text_adapter, data)


def parse_image_target(data: Any) -> ImageTarget:
    return _parse(_image_adapter, data)


def _summarize(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        where = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{where}: {item.get('msg')}" if where else item.get("msg", ""))
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Options and patches
# ---------------------------------------------------------------------------

class ReadOptions(_Input):
    """What the read path should extract from a range."""
    include_text: bool = True
    include_images: bool = True
    include_tables: bool = True
    include_content_controls: bool = True
    detailed_metadata: bool = Field(
        default=False,
        description="Include paragraph formatting and table cell contents")
    max_text_length: Optional[int] = Field(
        default=None, gt=0,
        description="Truncate every text field to this many characters")


# TextFormat field -> font property on the host
_FONT_FIELDS = {
    "font_name": "name",
    "font_size": "size",
    "bold": "bold",
    "italic": "italic",
    "underline": "underline",
    "color": "color",
    "highlight_color": "highlight_color",
    "strike_through": "strike_through",
    "superscript": "superscript",
    "subscript": "subscript",
}


class TextFormat(_Input):
    """Sparse character format patch; unset fields are left alone."""
    font_name: Optional[str] = None
    font_size: Optional[float] = Field(default=None, gt=0)
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[str] = Field(default=None,
                                     description="None, Single, Double, Dotted, ...")
    color: Optional[str] = Field(default=None, description="e.g. #FF0000")
    highlight_color: Optional[str] = None
    strike_through: Optional[bool] = None
    superscript: Optional[bool] = None
    subscript: Optional[bool] = None

    def font_patch(self) -> Dict[str, Any]:
        return {_FONT_FIELDS[k]: v
                for k, v in self.model_dump(exclude_none=True).items()}


class ImageProperties(_Input):
    """Sparse picture property patch."""
    width: Optional[float] = Field(default=None, gt=0, description="Width in points")
    height: Optional[float] = Field(default=None, gt=0, description="Height in points")
    alt_text: Optional[str] = Field(default=None, description="Alternative text")
    hyperlink: Optional[str] = None
    lock_aspect_ratio: Optional[bool] = None

    def picture_patch(self) -> Dict[str, Any]:
        patch = self.model_dump(exclude_none=True)
        if "alt_text" in patch:
            patch["alt_text_description"] = patch.pop("alt_text")
        return patch


def parse_options(model, data: Any):
    """Validate an options/patch dict, raising ArgumentValidationError."""
    if data is None or isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ArgumentValidationError(
            f"Invalid {model.__name__}: {_summarize(e)}")


# ---------------------------------------------------------------------------
# Content tree
# ---------------------------------------------------------------------------

class ParagraphElement(_Output):
    type: Literal["Paragraph"] = "Paragraph"
    id: str
    text: Optional[str] = None
    style: Optional[str] = None
    alignment: Optional[str] = None
    first_line_indent: Optional[float] = None
    left_indent: Optional[float] = None
    right_indent: Optional[float] = None
    line_spacing: Optional[float] = None
    space_after: Optional[float] = None
    space_before: Optional[float] = None
    is_list_item: Optional[bool] = None


class TableCellInfo(_Output):
    row_index: int
    column_index: int
    text: Optional[str] = None
    width: Optional[float] = None


class TableElement(_Output):
    type: Literal["Table"] = "Table"
    id: str
    row_count: Optional[int] = None
    column_count: Optional[int] = None
    cells: Optional[List[List[TableCellInfo]]] = None


class InlinePictureElement(_Output):
    type: Literal["InlinePicture"] = "InlinePicture"
    id: str
    width: Optional[float] = None
    height: Optional[float] = None
    alt_text: Optional[str] = None
    alt_text_title: Optional[str] = None
    hyperlink: Optional[str] = None


class ContentControlElement(_Output):
    type: Literal["ContentControl"] = "ContentControl"
    id: str
    text: Optional[str] = None
    title: Optional[str] = None
    tag: Optional[str] = None
    control_type: Optional[str] = None
    cannot_delete: Optional[bool] = None
    cannot_edit: Optional[bool] = None
    placeholder_text: Optional[str] = None


ContentElement = Annotated[
    Union[ParagraphElement, TableElement, InlinePictureElement,
          ContentControlElement],
    Field(discriminator="type"),
]


class BranchWarning(_Output):
    """A non-fatal failure of one element; never raised."""
    kind: Literal["PartialFailure"] = "PartialFailure"
    element_id: str
    message: str


class ContentMetadata(_Output):
    is_empty: bool
    character_count: int = Field(description="Length of the untruncated range text")
    paragraph_count: int = 0
    table_count: int = 0
    image_count: int = 0
    content_control_count: int = 0
    locator_type: Optional[str] = None


class ContentTree(_Output):
    """Structured content of one range."""
    text: Optional[str] = None
    elements: List[ContentElement] = Field(default_factory=list)
    metadata: ContentMetadata
    warnings: List[BranchWarning] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Headers and footers
# ---------------------------------------------------------------------------

HeaderFooterKind = Literal["firstPage", "oddPages", "evenPages"]


class HeaderFooterItem(_Output):
    type: HeaderFooterKind
    exists: bool = Field(description="True when the body holds non-blank text")
    text: Optional[str] = None
    content: Optional[ContentTree] = None
    error: Optional[str] = None


class SectionHeaderFooterInfo(_Output):
    section_index: int
    different_first_page: Optional[bool] = None
    different_odd_and_even: Optional[bool] = None
    headers: List[HeaderFooterItem] = Field(default_factory=list)
    footers: List[HeaderFooterItem] = Field(default_factory=list)


class HeaderFooterMetadata(_Output):
    has_any_header: bool
    has_any_footer: bool
    total_headers: int
    total_footers: int


class DocumentHeaderFooterInfo(_Output):
    total_sections: int
    sections: List[SectionHeaderFooterInfo]
    metadata: HeaderFooterMetadata


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ErrorInfo(_Output):
    kind: str
    message: str
    details: Optional[Dict[str, Any]] = None


class MutationResult(_Output):
    """Outcome of a text or image mutation."""
    count: int = Field(description="Number of places changed")
    success: bool
    error: Optional[ErrorInfo] = None
    warnings: Optional[List[BranchWarning]] = None

    @classmethod
    def failed(cls, error) -> "MutationResult":
        return cls(count=0, success=False, error=ErrorInfo(**error.to_dict()))
