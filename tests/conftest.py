"""
Shared fixtures: small in-memory documents and sessions over them.
"""

import copy

import pytest

from word_tools import host
from word_tools.session import MemoryDocument, MemorySession

# 1x1 transparent PNG
PNG_1X1 = ("iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAC"
           "hwGA60e6kgAAAABJRU5ErkJggg==")

# Main-story paragraphs (tables are not paragraphs):
#   0 Quarterly Report      5 Results
#   1 Introduction          6 Revenue grew.     (after the table)
#   2 The cat sat ...       7 Appendix          (section 2)
#   3 Scope                 8 Extra material.
#   4 Logo: <picture>
REPORT = {
    "sections": [
        {
            "body": [
                {"text": "Quarterly Report", "style": "Title"},
                {"text": "Introduction", "style": "Heading 1"},
                "The cat sat on the mat.",
                {"text": "Scope", "style": "Heading 2"},
                {"runs": ["Logo: ", {"picture": {"width": 50, "height": 40,
                                                 "alt_text": "company logo"}}]},
                {"text": "Results", "style": "Heading 1"},
                {"table": [["Metric", "Value"], ["Revenue", "10"]]},
                "Revenue grew.",
            ],
            "headers": {"primary": ["Acme Corp"]},
            "footers": {"primary": ["Confidential"], "firstPage": ["  "]},
            "different_first_page": True,
        },
        {
            "body": [
                {"text": "Appendix", "style": "Heading 1"},
                "Extra material.",
            ],
        },
    ],
    "bookmarks": {
        "Summary": 2,
        "ResultsBlock": {"paragraph": 5, "end_paragraph": 6},
    },
    "content_controls": [
        {"paragraph": 2, "title": "Client", "tag": "client"},
        {"paragraph": 7, "title": "Client", "tag": "other"},
        {"paragraph": 8, "title": "Notes", "tag": "client",
         "cannot_delete": True},
    ],
}


@pytest.fixture(autouse=True)
def _fresh_host_cache():
    host.reset_host_cache()
    yield
    host.reset_host_cache()


@pytest.fixture
def report():
    return MemoryDocument.from_dict(copy.deepcopy(REPORT))


@pytest.fixture
def session(report):
    return MemorySession(report)


@pytest.fixture
def make_session():
    """Build a document from a dict and open a session on it."""
    def _make(data):
        document = MemoryDocument.from_dict(data)
        return document, MemorySession(document)
    return _make


@pytest.fixture
def png():
    return PNG_1X1
