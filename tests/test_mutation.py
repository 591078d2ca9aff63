"""
Tests for text and image mutations.
"""

import pytest

from word_tools.models import ImageProperties, SearchLocator, TextFormat
from word_tools.services import WordService
from word_tools.services.mutation import (
    insert_text, mutate_image, mutate_text, normalize_image_data,
)
from word_tools.errors import ArgumentValidationError
from word_tools.session import MemorySession

CATS = {"body": [
    "The cat chased another cat.",
    "No felines here.",
    "A cat again, and a catalog.",
]}


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_replace_all_matches_in_one_flush(make_session):
    document, session = make_session(CATS)
    result = await mutate_text(session, SearchLocator(text="cat"), "tiger",
                               replace_all=True)

    assert result.success is True
    assert result.count == 4
    assert document.paragraph_texts() == [
        "The tiger chased another tiger.",
        "No felines here.",
        "A tiger again, and a tigeralog.",
    ]
    # one flush to find the matches, one to apply every replacement
    assert session.round_trips == 2


@pytest.mark.asyncio
async def test_forward_order_would_corrupt_later_matches(make_session):
    document, session = make_session({"body": ["The cat chased another cat."]})
    matches = session.document.body.search("cat").load("items")
    await session.flush()
    for match in matches.items:
        match.insert_text("tiger", "Replace")
    await session.flush()
    assert document.paragraph_texts()[0] != "The tiger chased another tiger."


@pytest.mark.asyncio
async def test_without_replace_all_only_first_match_changes(make_session):
    document, session = make_session(CATS)
    result = await mutate_text(session, {"type": "search", "text": "cat"}, "dog")
    assert result.count == 1
    assert document.paragraph_texts()[0] == "The dog chased another cat."
    assert document.paragraph_texts()[2] == "A cat again, and a catalog."


@pytest.mark.asyncio
async def test_search_options(make_session):
    document, session = make_session(CATS)
    result = await mutate_text(
        session, SearchLocator(text="cat", match_whole_word=True), "dog",
        replace_all=True)
    assert result.count == 3
    assert document.paragraph_texts()[2] == "A dog again, and a catalog."

    result = await mutate_text(
        MemorySession(document), SearchLocator(text="DOG", match_case=True), "x")
    assert result.success is False
    assert result.error.kind == "NotFound"

    result = await mutate_text(
        MemorySession(document), SearchLocator(text="c?t*g", match_wildcards=True),
        "index")
    assert result.count == 1
    assert document.paragraph_texts()[2] == "A dog again, and a index."


@pytest.mark.asyncio
async def test_search_without_matches_fails_with_zero_count(make_session):
    document, session = make_session(CATS)
    result = await mutate_text(session, SearchLocator(text="zebra"), "x",
                               replace_all=True)
    assert result.model_dump(exclude_none=True) == {
        "count": 0, "success": False,
        "error": {"kind": "NotFound", "message": "No matches for 'zebra'",
                  "details": {"text": "zebra"}},
    }
    assert document.paragraph_texts() == CATS["body"]


@pytest.mark.asyncio
async def test_empty_search_text_is_rejected_before_any_flush(make_session):
    _, session = make_session(CATS)
    result = await mutate_text(session, SearchLocator(text=""), "x")
    assert result.error.kind == "ValidationError"
    assert session.round_trips == 0


@pytest.mark.asyncio
async def test_format_patch_only_touches_supplied_fields(make_session):
    document, session = make_session({
        "body": ["Dear customer,", {"runs": [
            {"text": "Signed: NAME", "italic": True, "name": "Georgia"}]}],
        "bookmarks": {"signer": 1},
    })
    fmt = TextFormat(bold=True, color="#FF0000")
    result = await mutate_text(session, {"type": "bookmark", "name": "signer"},
                               "Jane Doe", fmt)

    assert result.success is True and result.count == 1
    (run,) = document.paragraph_at(1).inlines
    assert run.text == "Jane Doe"
    assert run.font.bold is True
    assert run.font.color == "#FF0000"
    # untouched fields keep the replaced text's formatting
    assert run.font.italic is True
    assert run.font.name == "Georgia"
    assert document.paragraph_at(0).inlines[0].font.bold is False


@pytest.mark.asyncio
async def test_replace_resolved_range(session, report):
    rng = session.document.get_bookmark_range_or_null("Summary")
    result = await mutate_text(session, rng, "The dog slept.")
    assert result.count == 1
    assert report.paragraph_texts()[2] == "The dog slept."


@pytest.mark.asyncio
async def test_replace_selection(make_session):
    document, session = make_session({
        "body": ["The cat sat."],
        "selection": {"paragraph": 0, "start": 4, "end": 7},
    })
    result = await mutate_text(session, {"type": "selection"}, "dog")
    assert result.success is True
    assert document.paragraph_texts() == ["The dog sat."]


@pytest.mark.asyncio
async def test_empty_selection_is_not_found(make_session):
    _, session = make_session({"body": ["The cat sat."]})
    result = await mutate_text(session, {"type": "selection"}, "dog")
    assert result.success is False
    assert result.error.kind == "NotFound"


@pytest.mark.asyncio
async def test_stale_range_surfaces_host_message(session):
    paragraphs = session.document.body.paragraphs.load("items")
    await session.flush()
    target = paragraphs.items[2].get_range()
    paragraphs.items[1].get_range("Start").expand_to(
        paragraphs.items[2].get_range("End")).delete()
    await session.flush()

    result = await mutate_text(session, target, "x")
    assert result.success is False
    assert result.count == 0
    assert result.error.kind == "StaleReference"
    assert "no longer exists" in result.error.message


@pytest.mark.asyncio
async def test_insert_text_at_end_of_heading(session, report):
    result = await insert_text(session, {"type": "heading", "text": "Intro"},
                               " (draft)", format={"italic": True})
    assert result.success is True
    assert report.paragraph_texts()[1] == "Introduction (draft)"
    assert report.paragraph_at(1).inlines[-1].font.italic is True


@pytest.mark.asyncio
async def test_insert_text_rejects_unknown_location(session):
    result = await insert_text(session, {"type": "section", "index": 0},
                               "x", location="Middle")
    assert result.error.kind == "ValidationError"
    assert session.round_trips == 0


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_image_needs_data_or_properties(session):
    result = await mutate_image(session, {"type": "image_index", "index": 0})
    assert result.success is False
    assert result.count == 0
    assert result.error.kind == "ValidationError"
    assert session.round_trips == 0
    assert not session.has_pending

    result = await mutate_image(session, {"type": "image_index", "index": 0},
                                properties=ImageProperties())
    assert result.error.kind == "ValidationError"
    assert session.round_trips == 0


@pytest.mark.asyncio
async def test_invalid_image_data_is_rejected_before_any_flush(session):
    result = await mutate_image(session, {"type": "image_index", "index": 0},
                                image_data="not base64!!")
    assert result.error.kind == "ValidationError"
    assert session.round_trips == 0


def test_data_url_prefix_is_stripped(png):
    assert normalize_image_data("data:image/png;base64," + png) == png
    with pytest.raises(ArgumentValidationError):
        normalize_image_data("data:image/png;base64,")


def test_line_wrapped_image_data_is_accepted(png):
    wrapped = "\n".join(png[i:i + 20] for i in range(0, len(png), 20))
    assert normalize_image_data(wrapped + "\r\n") == png
    assert normalize_image_data("data:image/png;base64,\n" + wrapped) == png


@pytest.mark.asyncio
async def test_replace_image_content_and_properties(session, report, png):
    result = await mutate_image(
        session, {"type": "image_index", "index": 0}, image_data=png,
        properties={"width": 30, "alt_text": "new logo"})

    assert result.success is True and result.count == 1
    (picture,) = report.pictures()
    assert picture.data == png
    assert picture.alt_text_description == "new logo"
    assert picture.width == 30
    assert picture.height == 30
    assert report.paragraph_texts()[4] == "Logo: "


@pytest.mark.asyncio
async def test_patch_properties_found_by_alt_text(session, report):
    result = await mutate_image(session, {"type": "image_search", "alt_text": "logo"},
                                properties=ImageProperties(width=100))
    assert result.count == 1
    (picture,) = report.pictures()
    assert (picture.width, picture.height) == (100, 80)


@pytest.mark.asyncio
async def test_image_search_without_match(session):
    result = await mutate_image(session, {"type": "image_search", "min_width": 500},
                                properties={"hyperlink": "https://example.com"})
    assert result.error.kind == "NotFound"


@pytest.mark.asyncio
async def test_unreadable_picture_does_not_block_image_search(make_session):
    document, session = make_session({"body": [{"runs": [
        {"picture": {"corrupt": True, "alt_text": "broken"}},
        " and ", {"picture": {"alt_text": "logo"}},
    ]}]})
    result = await mutate_image(session, {"type": "image_search", "alt_text": "logo"},
                                properties={"alt_text": "new"})

    assert result.success is True
    assert result.count == 1
    (warning,) = result.warnings
    assert warning.kind == "PartialFailure"
    assert "could not be read" in warning.message
    assert [p.alt_text_description for p in document.pictures()] == ["broken", "new"]


@pytest.mark.asyncio
async def test_image_index_out_of_range(session):
    result = await mutate_image(session, {"type": "image_index", "index": 3},
                                properties={"alt_text": "x"})
    assert result.error.kind == "OutOfRange"
    assert result.error.details == {"index": 3, "count": 1}


@pytest.mark.asyncio
async def test_replace_every_image_in_a_range(make_session, png):
    document, session = make_session({"body": [
        {"runs": ["a", {"picture": {"alt_text": "one"}},
                  "b", {"picture": {"alt_text": "two"}}, "c"]},
        {"runs": [{"picture": {"alt_text": "outside"}}]},
    ]})
    result = await mutate_image(session, {"type": "paragraph", "start_index": 0},
                                image_data=png, replace_all=True)
    assert result.count == 2
    pictures = document.pictures()
    assert [p.data for p in pictures] == [png, png, ""]
    assert pictures[2].alt_text_description == "outside"
    assert document.paragraph_texts()[0] == "abc"


@pytest.mark.asyncio
async def test_range_without_images_is_not_found(session):
    result = await mutate_image(session, {"type": "paragraph", "start_index": 0},
                                properties={"alt_text": "x"})
    assert result.error.kind == "NotFound"


@pytest.mark.asyncio
async def test_insert_image_over_selection(make_session, png):
    document, session = make_session({
        "body": ["Put it HERE please."],
        "selection": {"paragraph": 0, "start": 7, "end": 11},
    })
    result = await mutate_image(session, {"type": "selection"}, image_data=png,
                                properties={"alt_text": "inserted"})
    assert result.success is True
    assert document.paragraph_texts() == ["Put it  please."]
    (picture,) = document.pictures()
    assert picture.alt_text_description == "inserted"


@pytest.mark.asyncio
async def test_service_returns_mutation_dicts(report):
    service = WordService(lambda: MemorySession(report))
    result = await service.replace_text({"type": "search", "text": "mat"}, "rug")
    assert result == {"count": 1, "success": True}
    result = await service.replace_image({"type": "image_index", "index": 0})
    assert result["success"] is False
    assert result["error"]["kind"] == "ValidationError"
