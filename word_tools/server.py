"""
Word Tools MCP: orchestrator.

Creates the FastMCP instance, picks the session backend, registers all
tools and exposes ``main()`` as the entry point.
"""

import logging
import os
import sys

from mcp.server.fastmcp import FastMCP

from . import __version__
from .services import WordService
from .session import get_session_factory
from .tools import register_all

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# FastMCP instance + service
# ---------------------------------------------------------------------------

mcp = FastMCP("Word Tools")
service = WordService(get_session_factory())

# ---------------------------------------------------------------------------
# Register all tools
# ---------------------------------------------------------------------------

register_all(mcp, service)

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the Word Tools MCP server."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if arg in ("--help", "-h"):
            print("Word Tools MCP")
            print("=" * 30)
            print("Usage:")
            print("  word-tools-mcp            # Start MCP server (stdio)")
            print("  word-tools-mcp --help     # Show this help")
            print()
            print("Environment:")
            print("  WORD_TOOLS_BACKEND        remote (default) or memory")
            print("  WORD_TOOLS_HOST_URL       Host bridge URL")
            print("  WORD_TOOLS_DOCUMENT       JSON document for the memory backend")
            return
        if arg == "--version":
            print(f"Word Tools MCP v{__version__}")
            return

    # stdout carries the MCP protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=os.environ.get("WORD_TOOLS_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("Starting Word Tools MCP...", file=sys.stderr)
    print("Running in MCP protocol mode (stdio)", file=sys.stderr)

    try:
        mcp.run()
    except KeyboardInterrupt:
        print("\nWord Tools MCP stopped", file=sys.stderr)
    except Exception as e:
        logger.error("Server error", exc_info=True)
        print(f"\nServer error: {e}", file=sys.stderr)
        sys.exit(1)
