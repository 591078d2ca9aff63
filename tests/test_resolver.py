"""
Tests for locator resolution.
"""

import pytest

from word_tools.errors import InvalidLocatorError, NotFoundError, OutOfRangeError
from word_tools.models import HeadingLocator, ParagraphLocator
from word_tools.services import WordService
from word_tools.services.resolver import heading_level, resolve
from word_tools.session import MemorySession


async def _text(session, locator):
    rng = await resolve(session, locator)
    rng.load("text")
    await session.flush()
    return rng.text


@pytest.mark.parametrize("style,level", [
    ("Heading 1", 1),
    ("heading3", 3),
    ("HEADING 9", 9),
    ("Heading", 0),
    ("Heading 2 ", 2),
    ("Headings", None),
    ("Heading 1 Char", None),
    ("标题 2", 2),
    ("Normal", None),
    ("Title", None),
    (None, None),
])
def test_heading_level(style, level):
    assert heading_level(style) == level


@pytest.mark.asyncio
async def test_second_level_one_heading(session):
    text = await _text(session, HeadingLocator(level=1, index=1))
    assert text == "Results"


@pytest.mark.asyncio
async def test_heading_text_filter_is_case_sensitive_substring(session):
    assert await _text(session, {"type": "heading", "text": "Sco"}) == "Scope"
    with pytest.raises(NotFoundError):
        await resolve(session, {"type": "heading", "text": "scope"})


@pytest.mark.asyncio
async def test_heading_index_past_matches_is_out_of_range(session):
    with pytest.raises(OutOfRangeError) as exc:
        await resolve(session, HeadingLocator(level=1, index=5))
    assert exc.value.details["count"] == 3
    assert exc.value.details["index"] == 5


@pytest.mark.asyncio
async def test_heading_level_outside_one_to_nine_is_invalid(session):
    with pytest.raises(InvalidLocatorError):
        await resolve(session, HeadingLocator(level=12))
    assert session.round_trips == 0


@pytest.mark.asyncio
async def test_paragraph_span_joins_paragraphs(session):
    text = await _text(session, ParagraphLocator(start_index=2, end_index=4))
    assert text == "The cat sat on the mat.\nScope\nLogo: "


@pytest.mark.asyncio
async def test_single_paragraph_accepts_camel_case(session):
    assert await _text(session, {"type": "paragraph", "startIndex": 6}) == "Revenue grew."


@pytest.mark.asyncio
@pytest.mark.parametrize("locator,field", [
    ({"type": "paragraph", "start_index": 9}, "start_index"),
    ({"type": "paragraph", "start_index": -1}, "start_index"),
    ({"type": "paragraph", "start_index": 0, "end_index": 9}, "end_index"),
])
async def test_paragraph_index_out_of_bounds(session, locator, field):
    with pytest.raises(OutOfRangeError) as exc:
        await resolve(session, locator)
    assert exc.value.details["count"] == 9
    assert field in exc.value.details


@pytest.mark.asyncio
async def test_paragraph_end_before_start_is_invalid(session):
    with pytest.raises(InvalidLocatorError):
        await resolve(session, ParagraphLocator(start_index=4, end_index=2))


@pytest.mark.asyncio
async def test_section_body(session):
    assert await _text(session, {"type": "section", "index": 1}) == \
        "Appendix\nExtra material."
    with pytest.raises(OutOfRangeError):
        await resolve(session, {"type": "section", "index": 2})


@pytest.mark.asyncio
async def test_bookmark_spanning_a_table(session):
    text = await _text(session, {"type": "bookmark", "name": "ResultsBlock"})
    assert text == "Results\nMetric\tValue\nRevenue\t10\nRevenue grew."


@pytest.mark.asyncio
async def test_bookmark_lookup_costs_one_round_trip(session):
    await resolve(session, {"type": "bookmark", "name": "Summary"})
    assert session.round_trips == 1


@pytest.mark.asyncio
async def test_missing_bookmark_is_not_found(session):
    with pytest.raises(NotFoundError) as exc:
        await resolve(session, {"type": "bookmark", "name": "Nope"})
    assert exc.value.details == {"name": "Nope"}


@pytest.mark.asyncio
@pytest.mark.parametrize("locator,expected", [
    ({"type": "content_control", "title": "Client", "tag": "client"},
     "The cat sat on the mat."),
    ({"type": "content_control", "title": "Client", "index": 1}, "Appendix"),
    ({"type": "content_control", "tag": "client", "index": 1}, "Extra material."),
    ({"type": "contentControl", "index": 2}, "Extra material."),
])
async def test_content_control_filters_combine(session, locator, expected):
    assert await _text(session, locator) == expected


@pytest.mark.asyncio
async def test_content_control_requires_every_condition(session):
    with pytest.raises(NotFoundError):
        await resolve(session, {"type": "content_control", "title": "Notes",
                                "tag": "other"})


@pytest.mark.asyncio
async def test_unknown_locator_type_is_invalid(session):
    with pytest.raises(InvalidLocatorError):
        await resolve(session, {"type": "page", "index": 1})
    with pytest.raises(InvalidLocatorError):
        await resolve(session, {"type": "section"})


@pytest.mark.asyncio
async def test_resolution_is_idempotent_and_read_only(report):
    before = report.paragraph_texts()
    texts = []
    for _ in range(2):
        texts.append(await _text(MemorySession(report),
                                 HeadingLocator(text="Results")))
    assert texts == ["Results", "Results"]
    assert report.paragraph_texts() == before


@pytest.mark.asyncio
async def test_service_reports_missing_bookmark_as_result(report):
    service = WordService(lambda: MemorySession(report))
    result = await service.resolve_range({"type": "bookmark", "name": "Missing"})
    assert result["success"] is False
    assert result["error"]["kind"] == "NotFound"

    result = await service.resolve_range({"type": "heading", "level": 2})
    assert result == {"success": True, "locator_type": "heading",
                      "text": "Scope", "is_empty": False}
