"""
Beachline of Fortune's sweep.

The beachline is the x-ordered sequence of parabolic arcs closest to the
sweep line. Arcs are stored in an arena (a list indexed by arc id) and
organised as a red-black tree keyed by their position in the sequence.
No key is stored: the order between arcs is implied by the breakpoints,
which move with the sweep line and are recomputed on every lookup.

Every arc is also threaded to its in-order neighbours (``prev``/``next``)
so neighbour access during events is O(1).
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

import structlog

from ..errors import InvariantViolationError
from .dcel import DiagramBuilder
from .events import EventQueue
from .geometry import EPSILON, Point, breakpoint_x, circle_event

logger = structlog.get_logger()

# Index of the sentinel leaf shared by every node
NIL = 0


@dataclass
class Arc:
    """A beachline node: one parabola fragment of ``site``."""
    site: int
    left_half_edge: Optional[int] = None   # traced by the left breakpoint
    right_half_edge: Optional[int] = None  # traced by the right breakpoint
    event: Optional[int] = None            # token of the pending circle event
    parent: int = NIL
    left: int = NIL
    right: int = NIL
    prev: int = NIL
    next: int = NIL
    red: bool = True
    alive: bool = True


class Beachline:
    """Ordered arcs plus the event and edge bookkeeping that goes with them.

    Args:
        sites: Site coordinates, indexed like the faces of ``builder``
        builder: Edge list receiving the traced edges
        queue: Event queue receiving circle events
        eps: Geometric tolerance
    """

    def __init__(self, sites: List[Point], builder: DiagramBuilder, queue: EventQueue,
                 eps: float = EPSILON):
        self.sites = sites
        self.builder = builder
        self.queue = queue
        self.eps = eps
        self.arcs: List[Arc] = [Arc(site=-1, red=False, alive=False)]
        self.root = NIL
        self.size = 0

    def __len__(self) -> int:
        return self.size

    def is_empty(self) -> bool:
        return self.root == NIL

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def leftmost(self) -> int:
        return self._minimum(self.root) if self.root != NIL else NIL

    def arcs_in_order(self) -> Iterator[int]:
        arc = self.leftmost()
        while arc != NIL:
            yield arc
            arc = self.arcs[arc].next

    def site_sequence(self) -> List[int]:
        """Sites of the arcs from left to right."""
        return [self.arcs[arc].site for arc in self.arcs_in_order()]

    def breakpoints(self, sweep_y: float) -> List[float]:
        """Breakpoint abscissas from left to right at ``sweep_y``."""
        result = []
        for arc in self.arcs_in_order():
            nxt = self.arcs[arc].next
            if nxt != NIL:
                result.append(self._breakpoint(arc, nxt, sweep_y))
        return result

    def _breakpoint(self, left: int, right: int, sweep_y: float) -> float:
        return breakpoint_x(self.sites[self.arcs[left].site], self.sites[self.arcs[right].site],
                            sweep_y, self.eps)

    def locate(self, x: float, sweep_y: float) -> int:
        """
        Find the arc directly above abscissa ``x``.

        Walks down the tree comparing ``x`` with the breakpoints on both
        sides of each visited arc, evaluated at ``sweep_y``.
        """
        arcs = self.arcs
        node = self.root
        while node != NIL:
            arc = arcs[node]
            if arc.prev != NIL and x < self._breakpoint(arc.prev, node, sweep_y):
                node = arc.left
            elif arc.next != NIL and x > self._breakpoint(node, arc.next, sweep_y):
                node = arc.right
            else:
                return node
        raise InvariantViolationError(f"No arc above x={x} at sweep y={sweep_y}")

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def insert_site(self, site: int, sweep_y: float) -> int:
        """
        Add the arc of a new site to the beachline.

        The arc above the site is split in two around the new arc and a
        twin pair of half-edges starts tracing the new breakpoints. When the
        arc above belongs to a site lying on the sweep line itself (sites
        sharing the first row) the new arc is placed next to it instead.

        Returns:
            Index of the new arc
        """
        if self.root == NIL:
            new = self._new_arc(site)
            self.root = new
            self.arcs[new].red = False
            self.size = 1
            return new

        x = self.sites[site][0]
        above = self.locate(x, sweep_y)
        arc = self.arcs[above]
        self._cancel_event(above)

        above_x, above_y = self.sites[arc.site]
        if abs(above_y - sweep_y) <= self.eps:
            if x > above_x and arc.next == NIL:
                new = self._insert_after(above, self._new_arc(site))
                self._start_trace(above, new)
                self._check_circle(self.arcs[above].prev, above, new, sweep_y)
                return new
            if x < above_x and arc.prev == NIL:
                new = self._insert_before(above, self._new_arc(site))
                self._start_trace(new, above)
                self._check_circle(new, above, self.arcs[above].next, sweep_y)
                return new

        middle = self._insert_after(above, self._new_arc(site))
        right = self._insert_after(middle, self._new_arc(arc.site))
        self.arcs[right].right_half_edge = arc.right_half_edge

        half_edge_left, half_edge_middle = self.builder.start_trace(arc.site, site)
        arc.right_half_edge = half_edge_left
        self.arcs[middle].left_half_edge = half_edge_middle
        self.arcs[middle].right_half_edge = half_edge_middle
        self.arcs[right].left_half_edge = half_edge_left

        self._check_circle(arc.prev, above, middle, sweep_y)
        self._check_circle(middle, right, self.arcs[right].next, sweep_y)
        return middle

    def remove_arc(self, node: int, center: Point, sweep_y: float) -> int:
        """
        Squeeze an arc out of the beachline when its circle event fires.

        Its two breakpoints meet at ``center``, which becomes a vertex; the
        neighbours become adjacent and start tracing a new edge.

        Returns:
            Index of the new vertex
        """
        arc = self.arcs[node]
        left, right = arc.prev, arc.next
        if left == NIL or right == NIL:
            raise InvariantViolationError(f"Circle event for arc {node} at the end of the beachline")

        arc.event = None
        self._cancel_event(left)
        self._cancel_event(right)

        if self.builder.half_edges[arc.left_half_edge].twin != self.arcs[left].right_half_edge:
            raise InvariantViolationError(f"Arc {node} and its left neighbour trace different edges")

        vertex = self.builder.add_vertex(center)
        half_edge_left, half_edge_right = self.builder.finish_trace(
            arc.left_half_edge, arc.right_half_edge, vertex
        )
        self.arcs[left].right_half_edge = half_edge_left
        self.arcs[right].left_half_edge = half_edge_right

        self._delete(node)

        self._check_circle(self.arcs[left].prev, left, right, sweep_y)
        self._check_circle(left, right, self.arcs[right].next, sweep_y)
        return vertex

    def _start_trace(self, left: int, right: int) -> None:
        arcs = self.arcs
        half_edge_left, half_edge_right = self.builder.start_trace(arcs[left].site, arcs[right].site)
        arcs[left].right_half_edge = half_edge_left
        arcs[right].left_half_edge = half_edge_right

    def _check_circle(self, left: int, middle: int, right: int, sweep_y: float) -> None:
        """Schedule the circle event of ``middle`` if its breakpoints converge."""
        if left == NIL or right == NIL:
            return
        arcs = self.arcs
        predicted = circle_event(
            self.sites[arcs[left].site],
            self.sites[arcs[middle].site],
            self.sites[arcs[right].site],
            sweep_y,
            self.eps,
        )
        if predicted is None:
            return
        center, event_y = predicted
        self._cancel_event(middle)
        arcs[middle].event = self.queue.push_circle(middle, center, event_y)
        logger.debug("Circle event scheduled", arc=middle, y=event_y)

    def _cancel_event(self, node: int) -> None:
        arc = self.arcs[node]
        if arc.event is not None:
            self.queue.invalidate(arc.event)
            arc.event = None

    def _new_arc(self, site: int) -> int:
        self.arcs.append(Arc(site=site))
        return len(self.arcs) - 1

    # ------------------------------------------------------------------
    # Red-black tree
    # ------------------------------------------------------------------

    def _minimum(self, node: int) -> int:
        arcs = self.arcs
        while arcs[node].left != NIL:
            node = arcs[node].left
        return node

    def _maximum(self, node: int) -> int:
        arcs = self.arcs
        while arcs[node].right != NIL:
            node = arcs[node].right
        return node

    def _insert_after(self, node: int, new: int) -> int:
        arcs = self.arcs
        if arcs[node].right == NIL:
            arcs[node].right = new
            arcs[new].parent = node
        else:
            successor = self._minimum(arcs[node].right)
            arcs[successor].left = new
            arcs[new].parent = successor

        nxt = arcs[node].next
        arcs[new].prev = node
        arcs[new].next = nxt
        if nxt != NIL:
            arcs[nxt].prev = new
        arcs[node].next = new

        self.size += 1
        self._insert_fixup(new)
        return new

    def _insert_before(self, node: int, new: int) -> int:
        arcs = self.arcs
        if arcs[node].left == NIL:
            arcs[node].left = new
            arcs[new].parent = node
        else:
            predecessor = self._maximum(arcs[node].left)
            arcs[predecessor].right = new
            arcs[new].parent = predecessor

        prv = arcs[node].prev
        arcs[new].next = node
        arcs[new].prev = prv
        if prv != NIL:
            arcs[prv].next = new
        arcs[node].prev = new

        self.size += 1
        self._insert_fixup(new)
        return new

    def _rotate_left(self, x: int) -> None:
        arcs = self.arcs
        y = arcs[x].right
        arcs[x].right = arcs[y].left
        if arcs[y].left != NIL:
            arcs[arcs[y].left].parent = x
        arcs[y].parent = arcs[x].parent
        if arcs[x].parent == NIL:
            self.root = y
        elif x == arcs[arcs[x].parent].left:
            arcs[arcs[x].parent].left = y
        else:
            arcs[arcs[x].parent].right = y
        arcs[y].left = x
        arcs[x].parent = y

    def _rotate_right(self, x: int) -> None:
        arcs = self.arcs
        y = arcs[x].left
        arcs[x].left = arcs[y].right
        if arcs[y].right != NIL:
            arcs[arcs[y].right].parent = x
        arcs[y].parent = arcs[x].parent
        if arcs[x].parent == NIL:
            self.root = y
        elif x == arcs[arcs[x].parent].right:
            arcs[arcs[x].parent].right = y
        else:
            arcs[arcs[x].parent].left = y
        arcs[y].right = x
        arcs[x].parent = y

    def _insert_fixup(self, z: int) -> None:
        arcs = self.arcs
        while arcs[arcs[z].parent].red:
            parent = arcs[z].parent
            grandparent = arcs[parent].parent
            if parent == arcs[grandparent].left:
                uncle = arcs[grandparent].right
                if arcs[uncle].red:
                    arcs[parent].red = False
                    arcs[uncle].red = False
                    arcs[grandparent].red = True
                    z = grandparent
                else:
                    if z == arcs[parent].right:
                        z = parent
                        self._rotate_left(z)
                        parent = arcs[z].parent
                        grandparent = arcs[parent].parent
                    arcs[parent].red = False
                    arcs[grandparent].red = True
                    self._rotate_right(grandparent)
            else:
                uncle = arcs[grandparent].left
                if arcs[uncle].red:
                    arcs[parent].red = False
                    arcs[uncle].red = False
                    arcs[grandparent].red = True
                    z = grandparent
                else:
                    if z == arcs[parent].left:
                        z = parent
                        self._rotate_right(z)
                        parent = arcs[z].parent
                        grandparent = arcs[parent].parent
                    arcs[parent].red = False
                    arcs[grandparent].red = True
                    self._rotate_left(grandparent)
        arcs[self.root].red = False

    def _transplant(self, u: int, v: int) -> None:
        arcs = self.arcs
        parent = arcs[u].parent
        if parent == NIL:
            self.root = v
        elif u == arcs[parent].left:
            arcs[parent].left = v
        else:
            arcs[parent].right = v
        # The sentinel's parent is set on purpose; the fixup walks up from it
        arcs[v].parent = parent

    def _delete(self, z: int) -> None:
        arcs = self.arcs
        y = z
        y_was_red = arcs[y].red
        if arcs[z].left == NIL:
            x = arcs[z].right
            self._transplant(z, x)
        elif arcs[z].right == NIL:
            x = arcs[z].left
            self._transplant(z, x)
        else:
            y = self._minimum(arcs[z].right)
            y_was_red = arcs[y].red
            x = arcs[y].right
            if arcs[y].parent == z:
                arcs[x].parent = y
            else:
                self._transplant(y, x)
                arcs[y].right = arcs[z].right
                arcs[arcs[y].right].parent = y
            self._transplant(z, y)
            arcs[y].left = arcs[z].left
            arcs[arcs[y].left].parent = y
            arcs[y].red = arcs[z].red
        if not y_was_red:
            self._delete_fixup(x)

        prv, nxt = arcs[z].prev, arcs[z].next
        if prv != NIL:
            arcs[prv].next = nxt
        if nxt != NIL:
            arcs[nxt].prev = prv

        removed = arcs[z]
        removed.parent = removed.left = removed.right = NIL
        removed.prev = removed.next = NIL
        removed.alive = False
        arcs[NIL].parent = NIL
        self.size -= 1

    def _delete_fixup(self, x: int) -> None:
        arcs = self.arcs
        while x != self.root and not arcs[x].red:
            parent = arcs[x].parent
            if x == arcs[parent].left:
                w = arcs[parent].right
                if arcs[w].red:
                    arcs[w].red = False
                    arcs[parent].red = True
                    self._rotate_left(parent)
                    w = arcs[parent].right
                if not arcs[arcs[w].left].red and not arcs[arcs[w].right].red:
                    arcs[w].red = True
                    x = parent
                else:
                    if not arcs[arcs[w].right].red:
                        arcs[arcs[w].left].red = False
                        arcs[w].red = True
                        self._rotate_right(w)
                        w = arcs[parent].right
                    arcs[w].red = arcs[parent].red
                    arcs[parent].red = False
                    arcs[arcs[w].right].red = False
                    self._rotate_left(parent)
                    x = self.root
            else:
                w = arcs[parent].left
                if arcs[w].red:
                    arcs[w].red = False
                    arcs[parent].red = True
                    self._rotate_right(parent)
                    w = arcs[parent].left
                if not arcs[arcs[w].right].red and not arcs[arcs[w].left].red:
                    arcs[w].red = True
                    x = parent
                else:
                    if not arcs[arcs[w].left].red:
                        arcs[arcs[w].right].red = False
                        arcs[w].red = True
                        self._rotate_left(w)
                        w = arcs[parent].left
                    arcs[w].red = arcs[parent].red
                    arcs[parent].red = False
                    arcs[arcs[w].left].red = False
                    self._rotate_right(parent)
                    x = self.root
        arcs[x].red = False

    def check_invariants(self) -> None:
        """
        Verify the red-black and threading invariants.

        Raises:
            InvariantViolationError: If the tree is inconsistent
        """
        arcs = self.arcs
        if arcs[NIL].red:
            raise InvariantViolationError("Sentinel turned red")
        if self.root != NIL and arcs[self.root].red:
            raise InvariantViolationError("Root is red")

        def black_height(node: int) -> int:
            if node == NIL:
                return 1
            arc = arcs[node]
            for child in (arc.left, arc.right):
                if child != NIL and arcs[child].parent != node:
                    raise InvariantViolationError(f"Broken parent link below arc {node}")
                if arc.red and arcs[child].red:
                    raise InvariantViolationError(f"Red arc {node} has a red child")
            left_height = black_height(arc.left)
            if left_height != black_height(arc.right):
                raise InvariantViolationError(f"Unequal black heights below arc {node}")
            return left_height + (0 if arc.red else 1)

        black_height(self.root)

        in_order: List[int] = []

        def walk(node: int) -> None:
            if node == NIL:
                return
            walk(arcs[node].left)
            in_order.append(node)
            walk(arcs[node].right)

        walk(self.root)
        if in_order != list(self.arcs_in_order()) or len(in_order) != self.size:
            raise InvariantViolationError("Threaded order disagrees with the tree order")
