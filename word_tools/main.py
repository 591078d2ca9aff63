#!/usr/bin/env python3
"""
Main entry point for the Word Tools MCP server
"""

from word_tools.server import main

if __name__ == "__main__":
    main()
