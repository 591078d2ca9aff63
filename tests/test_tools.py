"""
Tests for MCP tool registration.
"""

import pytest
from mcp.server.fastmcp import FastMCP

from word_tools.services import WordService
from word_tools.session import MemorySession
from word_tools.tools import register_all


@pytest.mark.asyncio
async def test_all_tools_are_registered(report):
    mcp = FastMCP("test")
    register_all(mcp, WordService(lambda: MemorySession(report)))
    names = {tool.name for tool in await mcp.list_tools()}
    assert names == {
        "resolve_range", "get_range_content", "get_header_footer_content",
        "replace_text", "insert_text", "replace_image",
    }


@pytest.mark.asyncio
async def test_tool_schema_exposes_locator_argument(report):
    mcp = FastMCP("test")
    register_all(mcp, WordService(lambda: MemorySession(report)))
    tools = {tool.name: tool for tool in await mcp.list_tools()}
    schema = tools["get_range_content"].inputSchema
    assert schema["required"] == ["locator"]
    assert "max_text_length" in schema["properties"]
