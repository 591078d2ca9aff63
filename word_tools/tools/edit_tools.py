"""
Edit tools: replace or insert text and replace images.
"""

from typing import Any, Dict, Optional

from ..services import WordService


def register(mcp, service: WordService):

    @mcp.tool()
    async def replace_text(target: Dict[str, Any], new_text: str,
                           format: Optional[Dict[str, Any]] = None,
                           replace_all: bool = False) -> Dict[str, Any]:
        """Replace text at a locator, a search match, or the selection.

        Target examples: {"type": "bookmark", "name": "x"},
        {"type": "search", "text": "draft", "match_case": true},
        {"type": "selection"}. With a search target, replace_all
        replaces every match instead of the first.

        Args:
            target: Locator, search or selection dict
            new_text: Replacement text
            format: Optional patch (font_name, font_size, bold, italic,
                underline, color, highlight_color, strike_through,
                superscript, subscript); unset fields are left alone
            replace_all: Replace every match (default: first only)
        """
        return await service.replace_text(target, new_text, format, replace_all)

    @mcp.tool()
    async def insert_text(target: Dict[str, Any], text: str,
                          location: str = "End",
                          format: Optional[Dict[str, Any]] = None
                          ) -> Dict[str, Any]:
        """Insert text at the start or end of a located range.

        Args:
            target: Locator or selection dict
            text: Text to insert
            location: Start, End, Before or After (default: End)
            format: Optional format patch, as for replace_text
        """
        return await service.insert_text(target, text, location, format)

    @mcp.tool()
    async def replace_image(target: Dict[str, Any],
                            image_data: Optional[str] = None,
                            properties: Optional[Dict[str, Any]] = None,
                            replace_all: bool = False) -> Dict[str, Any]:
        """Replace an image's content and/or update its properties.

        Target examples: {"type": "image_index", "index": 0},
        {"type": "image_search", "alt_text": "logo"},
        {"type": "section", "index": 1}, {"type": "selection"}.
        At least one of image_data or properties is required.

        Args:
            target: Image target or locator dict
            image_data: New image as base64 (a data: URL prefix is accepted)
            properties: Optional patch (width, height, alt_text, hyperlink,
                lock_aspect_ratio)
            replace_all: Change every matching image (default: first only)
        """
        return await service.replace_image(target, image_data, properties,
                                           replace_all)
