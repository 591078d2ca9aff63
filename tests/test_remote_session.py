"""
Tests for the HTTP session, using httpx.MockTransport.

The mock host runs the in-memory host behind the batch endpoint, so the
same resolver and mutation code is exercised over the JSON wire format.
"""

import json

import httpx
import pytest

from word_tools.errors import StaleReferenceError, SyncError
from word_tools.services.mutation import mutate_text
from word_tools.services.reader import read_content
from word_tools.services.resolver import resolve
from word_tools.session import RemoteSession
from word_tools.session.document import HostFault
from word_tools.session.memory import MemoryHost

BASE_URL = "http://host.test"


def memory_transport(document, seen=None):
    host = MemoryHost(document)
    handles = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        payload = json.loads(request.content)
        if seen is not None:
            seen.append(payload)
        try:
            results = host.execute(payload["entries"],
                                   handles.setdefault(payload["session"], {}))
        except HostFault as fault:
            return httpx.Response(200, json={"error": {"kind": fault.kind,
                                                       "message": fault.message}})
        return httpx.Response(200, json={"results": results})

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_resolve_and_read_over_http(report):
    seen = []
    session = RemoteSession(BASE_URL, transport=memory_transport(report, seen))
    rng = await resolve(session, {"type": "heading", "level": 1, "index": 1})
    tree = await read_content(session, rng)

    assert tree.text == "Results"
    assert len(seen) == session.round_trips == 4
    first = seen[0]["entries"][0]
    assert first == {"op": "load", "ref": [["body"], ["paragraphs"]],
                     "properties": ["items"], "isolated": False}


@pytest.mark.asyncio
async def test_replace_all_over_http(report):
    session = RemoteSession(BASE_URL, transport=memory_transport(report))
    result = await mutate_text(session, {"type": "search", "text": "e"}, "E",
                               replace_all=True)
    assert result.success is True
    assert report.paragraph_texts()[3] == "ScopE"


@pytest.mark.asyncio
async def test_host_error_kind_is_mapped():
    def handler(request):
        if request.url.path == "/health":
            return httpx.Response(200)
        return httpx.Response(200, json={"error": {
            "kind": "StaleReference", "message": "Paragraph was deleted"}})

    session = RemoteSession(BASE_URL, transport=httpx.MockTransport(handler))
    session.document.body.load("text")
    with pytest.raises(StaleReferenceError) as exc:
        await session.flush()
    assert exc.value.message == "Paragraph was deleted"


@pytest.mark.asyncio
async def test_http_failure_is_a_sync_failure():
    def handler(request):
        if request.url.path == "/health":
            return httpx.Response(200)
        return httpx.Response(500, text="boom")

    session = RemoteSession(BASE_URL, transport=httpx.MockTransport(handler))
    paragraphs = session.document.body.paragraphs.load("items")
    with pytest.raises(SyncError) as exc:
        await session.flush()
    assert exc.value.kind == "SyncFailure"
    assert "boom" in exc.value.message
    assert not paragraphs.is_loaded("items")


@pytest.mark.asyncio
async def test_unreachable_host():
    def handler(request):
        return httpx.Response(503)

    session = RemoteSession(BASE_URL, transport=httpx.MockTransport(handler))
    session.document.body.load("text")
    with pytest.raises(SyncError) as exc:
        await session.flush()
    assert "not available" in exc.value.message


@pytest.mark.asyncio
async def test_result_count_mismatch_is_rejected():
    def handler(request):
        if request.url.path == "/health":
            return httpx.Response(200)
        return httpx.Response(200, json={"results": []})

    session = RemoteSession(BASE_URL, transport=httpx.MockTransport(handler))
    session.document.body.load("text")
    with pytest.raises(SyncError):
        await session.flush()
