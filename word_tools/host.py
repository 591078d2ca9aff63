"""
HTTP client for the document host bridge (the add-in side that owns the
live document).
"""

import logging
import os
import time
from typing import Any, Dict, Optional

import httpx

from .errors import SyncError, host_error

logger = logging.getLogger(__name__)

HOST_API_URL = os.environ.get("WORD_TOOLS_HOST_URL", "http://localhost:8766")
HOST_TIMEOUT = float(os.environ.get("WORD_TOOLS_HOST_TIMEOUT", "60"))

_host_available: Optional[bool] = None
_host_check_time: float = 0.0
_HOST_CHECK_INTERVAL = 30.0


def reset_host_cache():
    """Forget the cached health check result."""
    global _host_available, _host_check_time
    _host_available = None
    _host_check_time = 0.0


async def check_host_available(base_url: Optional[str] = None,
                               transport: Optional[httpx.AsyncBaseTransport] = None
                               ) -> bool:
    """Check if the host batch API is reachable (cached)."""
    global _host_available, _host_check_time
    now = time.time()
    if _host_available is not None and (now - _host_check_time) < _HOST_CHECK_INTERVAL:
        return _host_available
    try:
        async with httpx.AsyncClient(timeout=3.0, transport=transport) as client:
            resp = await client.get(f"{base_url or HOST_API_URL}/health")
            _host_available = resp.status_code == 200
    except httpx.HTTPError as e:
        logger.debug("Host health check failed: %s", e)
        _host_available = False
    _host_check_time = now
    return _host_available


def _error_from_response(response: httpx.Response) -> SyncError:
    try:
        error = response.json().get("error")
    except ValueError:
        error = None
    if isinstance(error, dict):
        return host_error(error.get("kind"), error.get("message"))
    return SyncError(f"Host API error ({response.status_code}): {response.text}",
                     status_code=response.status_code)


async def post_batch(payload: Dict[str, Any], base_url: Optional[str] = None,
                     timeout: Optional[float] = None,
                     transport: Optional[httpx.AsyncBaseTransport] = None
                     ) -> Dict[str, Any]:
    """Send one batch to the host and return its decoded response."""
    url = base_url or HOST_API_URL
    if not await check_host_available(url, transport):
        raise SyncError(
            "Document host not available. Open the document with the "
            f"Word Tools add-in running (HTTP API on {url}).")
    try:
        async with httpx.AsyncClient(timeout=timeout or HOST_TIMEOUT,
                                     transport=transport) as client:
            resp = await client.post(f"{url}/batch", json=payload)
            resp.raise_for_status()
            return resp.json()
    except httpx.ConnectError:
        reset_host_cache()
        raise SyncError("Lost connection to document host.")
    except httpx.TimeoutException:
        raise SyncError("Host batch call timed out.")
    except httpx.HTTPStatusError as e:
        raise _error_from_response(e.response)
