"""
Partial-result accumulator for independent branches of one batch.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..errors import BranchUnavailableError
from ..models import BranchWarning

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Unavailable:
    """Marker stored in a slot whose branch failed on the host."""

    __slots__ = ("reason",)

    def __init__(self, reason: str):
        self.reason = reason

    def __repr__(self):
        return f"Unavailable({self.reason!r})"


class BranchResults:
    """Slots keyed by element id, filled after the flush that feeds them.

    A branch whose loads came back unavailable gets an ``Unavailable``
    marker and a PartialFailure warning; every other slot is unaffected.
    """

    def __init__(self):
        self._slots: Dict[str, Any] = {}

    def capture(self, key: str, build: Callable[[], T]) -> Optional[T]:
        try:
            value = build()
        except BranchUnavailableError as e:
            logger.warning("Element %s unavailable: %s", key, e.message)
            self._slots[key] = Unavailable(e.message)
            return None
        self._slots[key] = value
        return value

    def warnings(self) -> List[BranchWarning]:
        return [BranchWarning(element_id=key, message=slot.reason)
                for key, slot in self._slots.items()
                if isinstance(slot, Unavailable)]
