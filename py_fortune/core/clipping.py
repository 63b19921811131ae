"""
Bounding of the swept diagram to the unit square.

The sweep leaves unbounded cells: chains of half-edges that start or end at
infinity. Every cell is first closed against a large box enclosing all
sites and vertices, then clipped against the four sides of the unit square
with Sutherland-Hodgman. Every polygon point carries a key naming how it
was made (a swept vertex, a bisector crossing a side, a square corner) so
that two cells sharing an edge produce the very same vertices, and the
clipped polygons can be stitched back into one edge list.
"""

import itertools
import math
from typing import Dict, Hashable, List, Sequence, Tuple

import numpy as np
import structlog

from ..errors import InvariantViolationError
from .dcel import Diagram, DiagramBuilder, Face, HalfEdge, Vertex
from .geometry import EPSILON, Point, box_exit, edge_direction, midpoint, polygon_signed_area

logger = structlog.get_logger()

# Sides of a box, clockwise in a y-up frame (same numbering as ``box_exit``)
LEFT, TOP, RIGHT, BOTTOM = 0, 1, 2, 3
UNIT_SIDES = (LEFT, TOP, RIGHT, BOTTOM)

OUTSIDE, ON, INSIDE = -1, 0, 1

Key = Hashable
Ring = Tuple[List[Key], List[Key]]


def side_distance(point: Point, side: int) -> float:
    """Signed distance to a side of the unit square, positive inside."""
    x, y = point
    if side == LEFT:
        return x
    if side == TOP:
        return 1.0 - y
    if side == RIGHT:
        return 1.0 - x
    return y


def unit_corner(side_a: int, side_b: int) -> Point:
    """Corner of the unit square where two perpendicular sides meet."""
    if side_a % 2 == side_b % 2:
        raise InvariantViolationError(f"Sides {side_a} and {side_b} do not meet")
    x = 0.0 if LEFT in (side_a, side_b) else 1.0
    y = 1.0 if TOP in (side_a, side_b) else 0.0
    return (x, y)


def _snap(point: Point, side: int) -> Point:
    if side == LEFT:
        return (0.0, point[1])
    if side == RIGHT:
        return (1.0, point[1])
    if side == TOP:
        return (point[0], 1.0)
    return (point[0], 0.0)


class DiagramClipper:
    """Turns the sweep's edge list into a bounded ``Diagram``.

    Args:
        builder: Edge list produced by the sweep
        eps: Tolerance for deciding that a point lies on a side
    """

    def __init__(self, builder: DiagramBuilder, eps: float = EPSILON):
        self.builder = builder
        self.eps = eps
        self.points: Dict[Key, Point] = {}
        # Far point half-edge -> (box side, perimeter position)
        self._far: Dict[int, Tuple[int, float]] = {}
        self._transient = itertools.count()

        coords = np.array(
            list(builder.sites) + [vertex.point for vertex in builder.vertices], dtype=float
        ).reshape(-1, 2)
        low = np.minimum(coords.min(axis=0), 0.0) - 1.0
        high = np.maximum(coords.max(axis=0), 1.0) + 1.0
        self.box = (float(low[0]), float(low[1]), float(high[0]), float(high[1]))

        left, bottom, right, top = self.box
        for corner, point in enumerate(((left, bottom), (left, top), (right, top), (right, bottom))):
            self.points[("box", corner)] = point
        for index, vertex in enumerate(builder.vertices):
            self.points[("v", index)] = vertex.point

    def clip(self, face_sites: Sequence[int], site_faces: np.ndarray) -> Diagram:
        """
        Clip every face and stitch the result into a ``Diagram``.

        Args:
            face_sites: Input index of the site of each face
            site_faces: Face of every input point

        Returns:
            Bounded diagram with counter-clockwise faces
        """
        rings = []
        for face in range(len(self.builder.sites)):
            keys, carriers = self._face_ring(face)
            for side in UNIT_SIDES:
                keys, carriers = self._clip_side(keys, carriers, side)
            keys, carriers = self._drop_repeats(keys, carriers)
            if len(keys) < 3:
                raise InvariantViolationError(f"Face {face} vanished while clipping")
            rings.append((keys, carriers))

        diagram = self._assemble(rings, face_sites, site_faces)
        logger.debug(
            "Diagram clipped",
            vertices=diagram.n_vertices,
            edges=diagram.n_edges,
            faces=diagram.n_faces,
        )
        return diagram

    # ------------------------------------------------------------------
    # Closing unbounded faces
    # ------------------------------------------------------------------

    def _pair(self, half_edge: int) -> int:
        return min(half_edge, self.builder.half_edges[half_edge].twin)

    def _sites_of(self, half_edge: int) -> Tuple[Point, Point]:
        edges = self.builder.half_edges
        sites = self.builder.sites
        return sites[edges[half_edge].face], sites[edges[edges[half_edge].twin].face]

    def _far_point(self, half_edge: int) -> Key:
        """Where a half-edge coming from infinity enters the big box."""
        key = ("far", half_edge)
        if key in self.points:
            return key

        site, other = self._sites_of(half_edge)
        destination = self.builder.destination(half_edge)
        if destination is not None:
            base = self.builder.vertices[destination].point
        else:
            base = midpoint(site, other)

        dx, dy = edge_direction(site, other)
        point, side = box_exit(base, (-dx, -dy), *self.box)
        self.points[key] = point
        self._far[half_edge] = (side, self._perimeter(point, side))
        return key

    def _perimeter(self, point: Point, side: int) -> float:
        """Clockwise position along the box boundary, in [0, 4)."""
        left, bottom, right, top = self.box
        x, y = point
        if side == LEFT:
            offset = (y - bottom) / (top - bottom)
        elif side == TOP:
            offset = (x - left) / (right - left)
        elif side == RIGHT:
            offset = (top - y) / (top - bottom)
        else:
            offset = (right - x) / (right - left)
        return side + min(max(offset, 0.0), 1.0)

    def _face_ring(self, face: int) -> Ring:
        """
        Clockwise polygon of a face, closed against the big box.

        Returns:
            ``(keys, carriers)`` where ``carriers[i]`` names the line the
            edge from ``keys[i]`` to ``keys[i + 1]`` lies on
        """
        edges = self.builder.half_edges
        chains, closed = self.builder.face_chains(face)

        if not chains:
            corners = [("box", corner) for corner in range(4)]
            return corners, list(corners)

        if closed:
            chain = chains[0]
            keys = [("v", edges[half_edge].origin) for half_edge in chain]
            carriers = [("e", self._pair(half_edge)) for half_edge in chain]
            return keys, carriers

        ordered = self._order_chains(chains)
        keys, carriers = [], []
        for position, chain in enumerate(ordered):
            keys.append(self._far_point(chain[0]))
            keys.extend(("v", edges[half_edge].origin) for half_edge in chain[1:])
            end = edges[chain[-1]].twin
            keys.append(self._far_point(end))
            carriers.extend(("e", self._pair(half_edge)) for half_edge in chain)

            following = ordered[(position + 1) % len(ordered)]
            corner_keys, corner_carriers = self._walk_box(end, following[0])
            keys.extend(corner_keys)
            carriers.extend(corner_carriers)
        return keys, carriers

    def _order_chains(self, chains: List[List[int]]) -> List[List[int]]:
        """Order open chains clockwise around the box."""
        edges = self.builder.half_edges
        for chain in chains:
            self._far_point(chain[0])
            self._far_point(edges[chain[-1]].twin)

        ordered = [chains[0]]
        rest = list(chains[1:])
        while rest:
            end_position = self._far[edges[ordered[-1][-1]].twin][1]
            rest.sort(key=lambda chain: (self._far[chain[0]][1] - end_position) % 4.0)
            ordered.append(rest.pop(0))
        return ordered

    def _walk_box(self, end: int, start: int) -> Ring:
        """Box corners passed walking clockwise from one far point to the next."""
        side, position = self._far[end]
        target = self._far[start][1]
        if target <= position:
            target += 4.0

        keys = []
        carriers = [("box", side)]
        corner = math.floor(position) + 1
        while corner < target:
            keys.append(("box", corner % 4))
            carriers.append(("box", corner % 4))
            corner += 1
        return keys, carriers

    # ------------------------------------------------------------------
    # Clipping
    # ------------------------------------------------------------------

    def _classify(self, key: Key, side: int) -> int:
        distance = side_distance(self.points[key], side)
        if distance > self.eps:
            return INSIDE
        if distance < -self.eps:
            return OUTSIDE
        return ON

    def _clip_side(self, keys: List[Key], carriers: List[Key], side: int) -> Ring:
        """One Sutherland-Hodgman pass against a side of the unit square."""
        states = [self._classify(key, side) for key in keys]
        out_keys: List[Key] = []
        out_carriers: List[Key] = []
        n = len(keys)

        for i in range(n):
            j = (i + 1) % n
            carrier = carriers[i]
            if states[i] != OUTSIDE:
                out_keys.append(keys[i])
                if states[j] != OUTSIDE:
                    out_carriers.append(carrier)
                elif states[i] == ON:
                    out_carriers.append(("side", side))
                else:
                    out_carriers.append(carrier)
                    out_keys.append(self._crossing(keys[i], keys[j], carrier, side))
                    out_carriers.append(("side", side))
            elif states[j] == INSIDE:
                out_keys.append(self._crossing(keys[i], keys[j], carrier, side))
                out_carriers.append(carrier)

        return out_keys, out_carriers

    def _crossing(self, key_a: Key, key_b: Key, carrier: Key, side: int) -> Key:
        """Key of the point where an edge crosses a side, computing it once."""
        kind = carrier[0]
        if kind == "side":
            first, second = sorted((carrier[1], side))
            key = ("corner", first, second)
            if key not in self.points:
                self.points[key] = unit_corner(first, second)
            return key

        if kind == "e":
            key = ("x", carrier[1], side)
            if key in self.points:
                return key
            point = self._bisector_crossing(carrier[1], side)
        else:
            key = ("bx", next(self._transient))
            point = None

        if point is None:
            point = self._interpolate(self.points[key_a], self.points[key_b], side)
        self.points[key] = point
        return key

    def _bisector_crossing(self, half_edge: int, side: int):
        site, other = self._sites_of(half_edge)
        mx, my = midpoint(site, other)
        dx, dy = edge_direction(site, other)
        if side in (LEFT, RIGHT):
            if dx == 0.0:
                return None
            x = 0.0 if side == LEFT else 1.0
            return (x, my + (x - mx) / dx * dy)
        if dy == 0.0:
            return None
        y = 1.0 if side == TOP else 0.0
        return (mx + (y - my) / dy * dx, y)

    def _interpolate(self, a: Point, b: Point, side: int) -> Point:
        # Interpolate from the endpoint nearer the side; far points can be huge
        da = side_distance(a, side)
        db = side_distance(b, side)
        if abs(da) > abs(db):
            a, b, da, db = b, a, db, da
        t = da / (da - db)
        return _snap((a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1])), side)

    @staticmethod
    def _drop_repeats(keys: List[Key], carriers: List[Key]) -> Ring:
        out_keys, out_carriers = [], []
        n = len(keys)
        for i in range(n):
            if keys[i] == keys[(i + 1) % n] and n > 1:
                continue
            out_keys.append(keys[i])
            out_carriers.append(carriers[i])
        return out_keys, out_carriers

    # ------------------------------------------------------------------
    # Stitching
    # ------------------------------------------------------------------

    def _assemble(self, rings: List[Ring], face_sites: Sequence[int],
                  site_faces: np.ndarray) -> Diagram:
        vertices: List[Vertex] = []
        vertex_ids: Dict[Key, int] = {}
        half_edges: List[HalfEdge] = []
        edge_carriers: List[Key] = []
        directed: Dict[Tuple[int, int], int] = {}
        faces: List[Face] = []

        def vertex_id(key: Key) -> int:
            if key not in vertex_ids:
                x, y = self.points[key]
                vertex_ids[key] = len(vertices)
                vertices.append(Vertex(min(max(x, 0.0), 1.0), min(max(y, 0.0), 1.0)))
            return vertex_ids[key]

        for face, (keys, carriers) in enumerate(rings):
            ids = [vertex_id(key) for key in keys]
            n = len(ids)
            polygon = np.array([self.points[key] for key in keys], dtype=float)
            if polygon_signed_area(polygon) < 0.0:
                boundary = [(ids[(i + 1) % n], ids[i], carriers[i]) for i in reversed(range(n))]
            else:
                boundary = [(ids[i], ids[(i + 1) % n], carriers[i]) for i in range(n)]

            first = len(half_edges)
            for origin, destination, carrier in boundary:
                if (origin, destination) in directed:
                    raise InvariantViolationError(
                        f"Edge {origin}->{destination} bounds more than one face"
                    )
                index = len(half_edges)
                directed[(origin, destination)] = index
                half_edges.append(HalfEdge(origin=origin, face=face))
                edge_carriers.append(carrier)
                if vertices[origin].half_edge is None:
                    vertices[origin].half_edge = index
            for k in range(n):
                current, following = first + k, first + (k + 1) % n
                half_edges[current].next = following
                half_edges[following].prev = current

            x, y = self.builder.sites[face]
            faces.append(Face(site=int(face_sites[face]), x=x, y=y, half_edge=first))

        interior = len(half_edges)
        exterior_from: Dict[int, int] = {}
        for index in range(interior):
            half_edge = half_edges[index]
            if half_edge.twin is not None:
                continue
            destination = half_edges[half_edge.next].origin
            carrier = edge_carriers[index]
            if carrier[0] == "e":
                twin = directed.get((destination, half_edge.origin))
                if twin is None or edge_carriers[twin] != carrier:
                    raise InvariantViolationError(
                        f"Edge {half_edge.origin}->{destination} has no matching twin"
                    )
                half_edge.twin = twin
                half_edges[twin].twin = index
            else:
                if destination in exterior_from:
                    raise InvariantViolationError(f"Boundary passes twice through vertex {destination}")
                exterior = len(half_edges)
                half_edges.append(HalfEdge(origin=destination, twin=index))
                half_edge.twin = exterior
                exterior_from[destination] = exterior

        for exterior in range(interior, len(half_edges)):
            end = half_edges[half_edges[exterior].twin].origin
            following = exterior_from.get(end)
            if following is None:
                raise InvariantViolationError(f"Square boundary is open at vertex {end}")
            half_edges[exterior].next = following
            half_edges[following].prev = exterior

        return Diagram(
            vertices=vertices,
            half_edges=half_edges,
            faces=faces,
            site_faces=np.asarray(site_faces, dtype=np.int64),
        )


def clip_diagram(builder: DiagramBuilder, face_sites: Sequence[int], site_faces: np.ndarray,
                 eps: float = EPSILON) -> Diagram:
    """Bound the swept diagram to the unit square."""
    return DiagramClipper(builder, eps).clip(face_sites, site_faces)
