"""
Word Tools

Locator resolution, staged range reads and batched mutations for a
word-processing document host, published as Model Context Protocol
tools.
"""

__version__ = "0.1.0"
__all__ = ["main"]


def main():
    from .server import main as run
    run()
