"""
Tests for locator parsing and patch models.
"""

import pytest
from pydantic import ValidationError

from word_tools.errors import ArgumentValidationError, InvalidLocatorError
from word_tools.models import (
    BookmarkLocator, ImageProperties, ParagraphLocator, ReadOptions,
    SearchLocator, TextFormat, parse_image_target, parse_locator,
    parse_options, parse_text_target,
)


def test_parse_each_structural_locator():
    assert parse_locator({"type": "bookmark", "name": "a"}) == BookmarkLocator(name="a")
    assert parse_locator({"type": "paragraph", "startIndex": 1, "endIndex": 2}) == \
        ParagraphLocator(start_index=1, end_index=2)
    assert parse_locator({"type": "heading"}).index == 0
    assert parse_locator({"type": "section", "index": 3}).index == 3
    control = parse_locator({"type": "content_control", "tag": "t"})
    assert (control.title, control.tag, control.index) == (None, "t", 0)


def test_locators_are_immutable():
    locator = BookmarkLocator(name="a")
    with pytest.raises(ValidationError):
        locator.name = "b"


def test_mutation_only_targets_are_not_range_locators():
    with pytest.raises(InvalidLocatorError):
        parse_locator({"type": "search", "text": "x"})
    assert isinstance(parse_text_target({"type": "search", "text": "x"}), SearchLocator)
    with pytest.raises(InvalidLocatorError):
        parse_text_target({"type": "image_index", "index": 0})
    assert parse_image_target({"type": "imageIndex", "index": 2}).index == 2


def test_unknown_fields_are_rejected():
    with pytest.raises(InvalidLocatorError) as exc:
        parse_locator({"type": "bookmark", "name": "a", "colour": "red"})
    assert "colour" in exc.value.message


def test_text_format_patch_is_sparse():
    fmt = TextFormat(font_name="Arial", bold=False, highlight_color="Yellow")
    assert fmt.font_patch() == {"name": "Arial", "bold": False,
                                "highlight_color": "Yellow"}
    assert TextFormat().font_patch() == {}


def test_image_properties_patch_renames_alt_text():
    props = ImageProperties(alt_text="logo", width=10)
    assert props.picture_patch() == {"alt_text_description": "logo", "width": 10}


def test_parse_options():
    assert parse_options(ReadOptions, None) is None
    options = parse_options(ReadOptions, {"maxTextLength": 5})
    assert options.max_text_length == 5
    assert options.include_text is True
    with pytest.raises(ArgumentValidationError):
        parse_options(TextFormat, {"font_size": -1})
