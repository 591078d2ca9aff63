"""
DocumentSession: the staged load/flush gateway to a document host.

``load()`` and ``queue_call()`` only record work.  ``flush()`` ships the
recorded batch to the host in one round trip and, only if the whole
batch succeeded, writes the returned values into the proxies.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..errors import SyncError
from .proxies import ClientObject, DocumentProxy, thaw

logger = logging.getLogger(__name__)


class _PendingLoad:
    __slots__ = ("obj", "properties", "isolated")

    def __init__(self, obj: ClientObject, isolated: bool):
        self.obj = obj
        self.properties: List[str] = []
        self.isolated = isolated

    def to_wire(self) -> Dict[str, Any]:
        return {"op": "load", "ref": thaw(self.obj.ref),
                "properties": list(self.properties),
                "isolated": self.isolated}

    def accept(self, result: Dict[str, Any]):
        if "unavailable" in result:
            self.obj._mark_unavailable(str(result["unavailable"]))
        else:
            self.obj._accept(result.get("values") or {})


class _PendingCall:
    __slots__ = ("obj", "method", "args", "handle")

    def __init__(self, obj: ClientObject, method: str, args: Dict[str, Any],
                 handle: Optional[int]):
        self.obj = obj
        self.method = method
        self.args = args
        self.handle = handle

    def to_wire(self) -> Dict[str, Any]:
        return {"op": "call", "ref": thaw(self.obj.ref),
                "method": self.method, "args": thaw_args(self.args),
                "handle": self.handle}

    def accept(self, result: Dict[str, Any]):
        pass


def thaw_args(args: Dict[str, Any]) -> Dict[str, Any]:
    return {k: thaw(v) for k, v in args.items()}


def split_names(names) -> List[str]:
    """Accept both load("a", "b") and load("a,b")."""
    out: List[str] = []
    for name in names:
        for part in name.replace(",", " ").split():
            if part not in out:
                out.append(part)
    return out


class DocumentSession(ABC):
    """Abstract batched session; subclasses only implement ``_execute``."""

    def __init__(self):
        self.document = DocumentProxy(self)
        self._log: List[Any] = []
        self._loads: Dict[int, _PendingLoad] = {}
        self._handles = itertools.count(1)
        self._flush_lock = asyncio.Lock()
        self.round_trips = 0

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def load(self, obj: ClientObject, *names: str, isolated: bool = False):
        """Queue properties of *obj*.

        Merges with an earlier queue of the same object unless a call was
        queued in between.
        """
        pending = self._loads.get(id(obj))
        if pending is None:
            pending = _PendingLoad(obj, isolated)
            self._loads[id(obj)] = pending
            self._log.append(pending)
        else:
            # isolation only holds if every queue of the object asked for it
            pending.isolated = pending.isolated and isolated
        for name in split_names(names):
            if name not in pending.properties:
                pending.properties.append(name)
        return obj

    def queue_call(self, obj: ClientObject, method: str,
                   args: Dict[str, Any], result_class=None):
        """Queue a host method call; returns the result proxy, if any."""
        handle = None
        result = None
        if result_class is not None:
            handle = next(self._handles)
            result = result_class(self, (("handle", handle),))
        self._log.append(_PendingCall(obj, method, args, handle))
        # later loads must observe this call, so they get entries of their own
        self._loads = {}
        return result

    @property
    def has_pending(self) -> bool:
        return bool(self._log)

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    async def flush(self):
        """Execute everything queued so far as one all-or-nothing batch."""
        async with self._flush_lock:
            log, self._log, self._loads = self._log, [], {}
            if not log:
                return
            self.round_trips += 1
            logger.debug("Flushing %d queued entries (round trip %d)",
                         len(log), self.round_trips)
            results = await self._execute([entry.to_wire() for entry in log])
            if len(results) != len(log):
                raise SyncError(
                    f"Host returned {len(results)} results for "
                    f"{len(log)} queued entries")
            for entry, result in zip(log, results):
                entry.accept(result or {})

    @abstractmethod
    async def _execute(self, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Run one batch on the host; raise SyncError if it failed."""

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()
