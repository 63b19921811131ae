"""
Event queue for the sweep.

Site events are known up front and kept as a pre-sorted list; circle events
arrive during the sweep and live in a binary heap. Circle events are never
removed from the heap: cancelling one marks its token invalid and the entry
is discarded when it reaches the top.

Events are ordered by y, then x, then kind (site before circle), then
insertion order, so the sweep is fully deterministic.
"""

import heapq
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple, Union

import numpy as np

from ..errors import InvariantViolationError

SITE = 0
CIRCLE = 1


@dataclass(frozen=True)
class SiteEvent:
    """The sweep line reaches a site."""
    y: float
    x: float
    site: int

    kind = SITE


@dataclass(frozen=True)
class CircleEvent:
    """An arc is squeezed out of the beachline at ``y``."""
    y: float
    x: float
    arc: int
    center: Tuple[float, float]
    token: int

    kind = CIRCLE


Event = Union[SiteEvent, CircleEvent]


class EventQueue:
    """Priority queue of pending site and circle events."""

    def __init__(self):
        self._sites: List[SiteEvent] = []
        self._next_site = 0
        self._circles: List[Tuple[float, float, int, CircleEvent]] = []
        self._cancelled: Set[int] = set()
        self._next_token = 0
        self.popped = 0
        self.discarded = 0

    @classmethod
    def from_sites(cls, sites: np.ndarray) -> "EventQueue":
        """
        Build a queue holding one site event per row of ``sites``.

        Args:
            sites: Array of [x, y] site coordinates

        Returns:
            Queue with sites sorted by (y, x, index)
        """
        queue = cls()
        order = np.lexsort((np.arange(len(sites)), sites[:, 0], sites[:, 1]))
        for site in order:
            queue.push_site(int(site), float(sites[site, 0]), float(sites[site, 1]))
        return queue

    def push_site(self, site: int, x: float, y: float) -> None:
        """Append a site event; sites must be pushed in sweep order."""
        event = SiteEvent(y, x, site)
        if self._sites and _key(event) < _key(self._sites[-1]):
            raise InvariantViolationError("Site events must be pushed in sweep order")
        self._sites.append(event)

    def push_circle(self, arc: int, center: Tuple[float, float], y: float) -> int:
        """
        Schedule a circle event.

        Args:
            arc: Index of the arc that disappears
            center: Circumcenter, the future Voronoi vertex
            y: Sweep position at which the event fires

        Returns:
            Validity token to pass to ``invalidate``
        """
        token = self._next_token
        self._next_token += 1
        event = CircleEvent(y, center[0], arc, center, token)
        heapq.heappush(self._circles, (y, center[0], token, event))
        return token

    def invalidate(self, token: Optional[int]) -> None:
        """Cancel a pending circle event. ``None`` is ignored."""
        if token is not None:
            self._cancelled.add(token)

    def is_valid(self, token: int) -> bool:
        return token not in self._cancelled

    def _drop_cancelled(self) -> None:
        circles = self._circles
        while circles and circles[0][2] in self._cancelled:
            _, _, token, _ = heapq.heappop(circles)
            self._cancelled.discard(token)
            self.discarded += 1

    def is_empty(self) -> bool:
        self._drop_cancelled()
        return self._next_site >= len(self._sites) and not self._circles

    def pop_min(self) -> Event:
        """
        Remove and return the next valid event.

        Raises:
            IndexError: If no valid event is left
        """
        self._drop_cancelled()

        site = self._sites[self._next_site] if self._next_site < len(self._sites) else None
        circle = self._circles[0][3] if self._circles else None

        if site is None and circle is None:
            raise IndexError("pop from an empty event queue")

        if circle is None or (site is not None and _key(site) <= _key(circle)):
            self._next_site += 1
            event = site
        else:
            heapq.heappop(self._circles)
            event = circle

        self.popped += 1
        return event

    def __len__(self) -> int:
        pending_circles = sum(1 for entry in self._circles if entry[2] not in self._cancelled)
        return len(self._sites) - self._next_site + pending_circles


def _key(event: Event) -> Tuple[float, float, int]:
    return (event.y, event.x, event.kind)
