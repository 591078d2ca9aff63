"""
Register all MCP tools on the given server instance.
"""

from ..services import WordService
from . import edit_tools, range_tools


def register_all(mcp, service: WordService):
    range_tools.register(mcp, service)
    edit_tools.register(mcp, service)
