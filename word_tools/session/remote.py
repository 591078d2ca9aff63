"""
Session that ships batches to the document host over HTTP.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

import httpx

from .. import host
from ..errors import SyncError, host_error
from .base import DocumentSession

logger = logging.getLogger(__name__)


class RemoteSession(DocumentSession):
    """One host-side session; result handles live on the host."""

    def __init__(self, base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__()
        self.session_id = uuid.uuid4().hex
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    async def _execute(self, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        payload = {"session": self.session_id, "entries": entries}
        data = await host.post_batch(payload, base_url=self._base_url,
                                     timeout=self._timeout,
                                     transport=self._transport)
        error = data.get("error")
        if error:
            raise host_error(error.get("kind"), error.get("message"))
        results = data.get("results")
        if not isinstance(results, list):
            raise SyncError("Host response has no results list")
        return results
