"""
WordService: facade over the resolver, reader and mutation services.

Instantiated once by the MCP server and injected into every tool.  Each
call opens its own session, parses raw input into models and turns typed
errors into ``{"success": False, "error": {...}}`` results.
"""

import logging
from typing import Any, Callable, Dict, Optional

from ..errors import WordToolsError
from ..models import ReadOptions, parse_locator, parse_options
from ..session.base import DocumentSession
from . import mutation
from .headers import read_headers_footers
from .reader import read_content, read_many
from .resolver import resolve

logger = logging.getLogger(__name__)

__all__ = ["WordService", "resolve", "read_content", "read_many",
           "read_headers_footers"]


def _failure(error: WordToolsError) -> Dict[str, Any]:
    return {"success": False, "error": error.to_dict()}


class WordService:
    """One entry point per tool; sessions are per call."""

    def __init__(self, session_factory: Callable[[], DocumentSession]):
        self._session_factory = session_factory

    def open_session(self) -> DocumentSession:
        return self._session_factory()

    async def resolve_range(self, locator: Any) -> Dict[str, Any]:
        """Resolve a locator and report the text it covers."""
        try:
            locator = parse_locator(locator)
            async with self.open_session() as session:
                rng = await resolve(session, locator)
                rng.load("text", "is_empty")
                await session.flush()
                return {"success": True, "locator_type": locator.type,
                        "text": rng.text, "is_empty": rng.is_empty}
        except WordToolsError as e:
            logger.info("resolve_range failed: %s", e.message)
            return _failure(e)

    async def get_range_content(self, locator: Any,
                                options: Any = None) -> Dict[str, Any]:
        try:
            locator = parse_locator(locator)
            options = parse_options(ReadOptions, options) or ReadOptions()
            async with self.open_session() as session:
                rng = await resolve(session, locator)
                tree = await read_content(session, rng, options,
                                          locator_type=locator.type)
            return {"success": True,
                    "content": tree.model_dump(exclude_none=True)}
        except WordToolsError as e:
            logger.info("get_range_content failed: %s", e.message)
            return _failure(e)

    async def get_header_footer_content(self, section_index: Optional[int] = None,
                                        include_elements: bool = False,
                                        options: Any = None) -> Dict[str, Any]:
        try:
            options = parse_options(ReadOptions, options) or ReadOptions()
            async with self.open_session() as session:
                info = await read_headers_footers(session, section_index,
                                                  include_elements, options)
            return {"success": True, **info.model_dump(exclude_none=True)}
        except WordToolsError as e:
            logger.info("get_header_footer_content failed: %s", e.message)
            return _failure(e)

    async def replace_text(self, target: Any, new_text: str,
                           format: Any = None,
                           replace_all: bool = False) -> Dict[str, Any]:
        async with self.open_session() as session:
            result = await mutation.mutate_text(session, target, new_text,
                                                format, replace_all)
        return result.model_dump(exclude_none=True)

    async def insert_text(self, target: Any, text: str, location: str = "End",
                          format: Any = None) -> Dict[str, Any]:
        async with self.open_session() as session:
            result = await mutation.insert_text(session, target, text,
                                                location, format)
        return result.model_dump(exclude_none=True)

    async def replace_image(self, target: Any, image_data: Optional[str] = None,
                            properties: Any = None,
                            replace_all: bool = False) -> Dict[str, Any]:
        async with self.open_session() as session:
            result = await mutation.mutate_image(session, target, image_data,
                                                 properties, replace_all)
        return result.model_dump(exclude_none=True)
