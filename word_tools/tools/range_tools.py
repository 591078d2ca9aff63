"""
Range tools: locate a part of the document and read what is in it.

Locators are dicts with a ``type`` field:
  {"type": "bookmark", "name": "Signature"}
  {"type": "heading", "text": "Intro", "level": 1, "index": 0}
  {"type": "paragraph", "start_index": 2, "end_index": 5}
  {"type": "section", "index": 0}
  {"type": "content_control", "title": "Client", "tag": "client"}
"""

from typing import Any, Dict, Optional

from ..services import WordService


def register(mcp, service: WordService):

    @mcp.tool()
    async def resolve_range(locator: Dict[str, Any]) -> Dict[str, Any]:
        """Check that a locator points somewhere and return the text there.

        Args:
            locator: Locator dict (bookmark, heading, paragraph, section,
                content_control)
        """
        return await service.resolve_range(locator)

    @mcp.tool()
    async def get_range_content(locator: Dict[str, Any],
                                include_text: bool = True,
                                include_images: bool = True,
                                include_tables: bool = True,
                                include_content_controls: bool = True,
                                detailed_metadata: bool = False,
                                max_text_length: Optional[int] = None
                                ) -> Dict[str, Any]:
        """Get the structured content of a located range.

        Returns the range text, one element per paragraph, table, inline
        picture and content control, and counts. Elements that cannot be
        read are listed under warnings instead of failing the call.

        Args:
            locator: Locator dict (see resolve_range)
            include_text: Include text of the range and its elements
            include_images: Include inline pictures
            include_tables: Include tables
            include_content_controls: Include content controls
            detailed_metadata: Add paragraph formatting and table cells
            max_text_length: Truncate each text field to this length
        """
        options = {
            "include_text": include_text,
            "include_images": include_images,
            "include_tables": include_tables,
            "include_content_controls": include_content_controls,
            "detailed_metadata": detailed_metadata,
            "max_text_length": max_text_length,
        }
        return await service.get_range_content(locator, options)

    @mcp.tool()
    async def get_header_footer_content(section_index: Optional[int] = None,
                                        include_elements: bool = False,
                                        max_text_length: Optional[int] = None
                                        ) -> Dict[str, Any]:
        """Get the headers and footers of every section (or of one).

        Args:
            section_index: Zero-based section (optional, all sections)
            include_elements: Also return the structured content of each
                non-empty header/footer
            max_text_length: Truncate each text field to this length
        """
        return await service.get_header_footer_content(
            section_index, include_elements,
            {"max_text_length": max_text_length})
