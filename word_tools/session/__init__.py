"""
Session factory: returns a callable that opens a DocumentSession for the
configured backend.
"""

import logging
import os
from typing import Callable

from .base import DocumentSession
from .document import MemoryDocument
from .memory import MemorySession
from .remote import RemoteSession

logger = logging.getLogger(__name__)

__all__ = ["DocumentSession", "MemoryDocument", "MemorySession",
           "RemoteSession", "get_session_factory"]


def get_session_factory() -> Callable[[], DocumentSession]:
    """Return a factory for RemoteSession (default) or MemorySession.

    Set WORD_TOOLS_BACKEND=memory to work on an in-process document,
    optionally loaded from the JSON file named by WORD_TOOLS_DOCUMENT.
    """
    backend = os.environ.get("WORD_TOOLS_BACKEND", "remote").lower()
    if backend == "memory":
        path = os.environ.get("WORD_TOOLS_DOCUMENT")
        document = MemoryDocument.from_file(path) if path else MemoryDocument.from_dict({})
        logger.info("Using in-memory document%s", f" from {path}" if path else "")
        return lambda: MemorySession(document)
    if backend != "remote":
        raise ValueError(f"Unknown WORD_TOOLS_BACKEND '{backend}'")
    return RemoteSession
