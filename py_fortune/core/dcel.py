"""
Doubly connected edge list.

Vertices, half-edges and faces live in flat lists and refer to each other
by index, so the cyclic twin/next/prev links never need object references.

``DiagramBuilder`` is the mutable edge list the sweep grows. Its half-edges
keep the face on their right and may have an unknown origin (the point at
infinity) until the clipper closes them. ``Diagram`` is the finished,
clipped result handed to callers.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np

from ..errors import InvariantViolationError
from .geometry import EPSILON, Point, compute_polygon_centroid, polygon_signed_area


@dataclass
class Vertex:
    """A diagram vertex and one half-edge leaving it."""
    x: float
    y: float
    half_edge: Optional[int] = None

    @property
    def point(self) -> Point:
        return (self.x, self.y)


@dataclass
class HalfEdge:
    """One direction of an edge.

    ``origin`` is None while the edge still runs to infinity. ``face`` is
    None for the half-edges outside the unit square.
    """
    origin: Optional[int] = None
    twin: Optional[int] = None
    next: Optional[int] = None
    prev: Optional[int] = None
    face: Optional[int] = None


@dataclass
class Face:
    """The region of one site."""
    site: int               # Index into the input point sequence
    x: float
    y: float
    half_edge: Optional[int] = None

    @property
    def point(self) -> Point:
        return (self.x, self.y)


class DiagramBuilder:
    """Edge list grown incrementally by the sweep.

    Face ``i`` belongs to site ``i`` of the deduplicated site array.
    """

    def __init__(self, sites: List[Point]):
        self.sites = sites
        self.vertices: List[Vertex] = []
        self.half_edges: List[HalfEdge] = []
        # Boundary half-edges of every face in creation order
        self.face_edges: List[List[int]] = [[] for _ in sites]

    def add_vertex(self, point: Point) -> int:
        self.vertices.append(Vertex(point[0], point[1]))
        return len(self.vertices) - 1

    def _add_half_edge(self, face: int) -> int:
        self.half_edges.append(HalfEdge(face=face))
        index = len(self.half_edges) - 1
        self.face_edges[face].append(index)
        return index

    def start_trace(self, face_a: int, face_b: int) -> Tuple[int, int]:
        """
        Create the twin pair for a new breakpoint between two sites.

        Both origins stay undetermined until the breakpoint ends in a vertex.

        Args:
            face_a: Face of the site on the left of the breakpoint
            face_b: Face of the site on the right

        Returns:
            ``(half_edge_a, half_edge_b)`` bounding ``face_a`` and ``face_b``
        """
        half_edge_a = self._add_half_edge(face_a)
        half_edge_b = self._add_half_edge(face_b)
        self.half_edges[half_edge_a].twin = half_edge_b
        self.half_edges[half_edge_b].twin = half_edge_a
        return half_edge_a, half_edge_b

    def set_origin(self, half_edge: int, vertex: int) -> None:
        self.half_edges[half_edge].origin = vertex
        if self.vertices[vertex].half_edge is None:
            self.vertices[vertex].half_edge = half_edge

    def link(self, prev: int, next: int) -> None:
        """Make ``next`` follow ``prev`` around their common face."""
        if self.half_edges[prev].face != self.half_edges[next].face:
            raise InvariantViolationError(f"Cannot link half-edges {prev} and {next} of different faces")
        self.half_edges[prev].next = next
        self.half_edges[next].prev = prev

    def finish_trace(self, left_edge: int, right_edge: int, vertex: int) -> Tuple[int, int]:
        """
        Close the two breakpoints of a squeezed arc at ``vertex``.

        ``left_edge`` and ``right_edge`` are the half-edges the squeezed arc
        traces on its left and right. Their twins bound the neighbouring
        arcs' faces. All four end at ``vertex``, and a new twin pair starts
        there for the breakpoint between the two neighbours.

        Returns:
            ``(half_edge_left, half_edge_right)`` of the new breakpoint,
            bounding the left and right neighbour faces
        """
        edges = self.half_edges
        prev_right = edges[left_edge].twin
        next_left = edges[right_edge].twin

        self.set_origin(prev_right, vertex)
        self.set_origin(right_edge, vertex)
        self.link(left_edge, right_edge)

        new_left, new_right = self.start_trace(edges[prev_right].face, edges[next_left].face)
        self.set_origin(new_right, vertex)
        self.link(new_left, prev_right)
        self.link(next_left, new_right)
        return new_left, new_right

    def destination(self, half_edge: int) -> Optional[int]:
        return self.half_edges[self.half_edges[half_edge].twin].origin

    def face_chains(self, face: int) -> Tuple[List[List[int]], bool]:
        """
        Boundary half-edges of a face in traversal order.

        A bounded face has one closed cycle. An unbounded face has open
        chains, each starting with a half-edge coming from infinity and
        ending with one going to infinity; there are two of them only for
        the strip-shaped faces of collinear sites.

        Returns:
            ``(chains, closed)``
        """
        owned = self.face_edges[face]
        if not owned:
            return [], False

        edges = self.half_edges
        starts = [half_edge for half_edge in owned if edges[half_edge].prev is None]
        closed = not starts
        if closed:
            starts = [owned[0]]

        chains = []
        visited = 0
        for start in starts:
            chain = [start]
            current = edges[start].next
            while current is not None and current != start:
                chain.append(current)
                if visited + len(chain) > len(owned):
                    raise InvariantViolationError(f"Boundary of face {face} does not terminate")
                current = edges[current].next
            if closed and current != start:
                raise InvariantViolationError(f"Boundary of face {face} is neither open nor closed")
            visited += len(chain)
            chains.append(chain)

        if visited != len(owned):
            raise InvariantViolationError(
                f"Boundary of face {face} is split: {visited} of {len(owned)} half-edges reachable"
            )
        return chains, closed


@dataclass
class Diagram:
    """Voronoi diagram of sites in the unit square, clipped to the square."""
    vertices: List[Vertex]
    half_edges: List[HalfEdge]
    faces: List[Face]
    site_faces: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_edges(self) -> int:
        return len(self.half_edges) // 2

    @property
    def n_faces(self) -> int:
        return len(self.faces)

    def destination(self, half_edge: int) -> int:
        return self.half_edges[self.half_edges[half_edge].twin].origin

    def face_half_edges(self, face: int) -> Iterator[int]:
        """Iterate the boundary half-edges of a face, counter-clockwise."""
        start = self.faces[face].half_edge
        current = start
        for _ in range(len(self.half_edges)):
            yield current
            current = self.half_edges[current].next
            if current == start:
                return
        raise InvariantViolationError(f"Boundary of face {face} is not a cycle")

    def face_vertices(self, face: int) -> List[int]:
        return [self.half_edges[half_edge].origin for half_edge in self.face_half_edges(face)]

    def face_polygon(self, face: int) -> np.ndarray:
        """Vertex coordinates of a face as an (k, 2) array."""
        return np.array([self.vertices[v].point for v in self.face_vertices(face)], dtype=float)

    def face_area(self, face: int) -> float:
        return polygon_signed_area(self.face_polygon(face))

    def face_centroid(self, face: int, eps: float = EPSILON) -> np.ndarray:
        return compute_polygon_centroid(self.face_polygon(face), eps)

    def is_face_on_border(self, face: int) -> bool:
        """True if the face touches the boundary of the unit square."""
        for half_edge in self.face_half_edges(face):
            if self.half_edges[self.half_edges[half_edge].twin].face is None:
                return True
        return False

    def face_neighbors(self, face: int) -> List[int]:
        """Faces sharing an edge with ``face``."""
        neighbors = set()
        for half_edge in self.face_half_edges(face):
            other = self.half_edges[self.half_edges[half_edge].twin].face
            if other is not None and other != face:
                neighbors.add(other)
        return sorted(neighbors)

    def edge_vertices(self) -> List[Tuple[int, int]]:
        """One (origin, destination) pair per undirected edge."""
        edges = []
        for index, half_edge in enumerate(self.half_edges):
            if index < half_edge.twin:
                edges.append((half_edge.origin, self.destination(index)))
        return edges

    def vertex_coordinates(self) -> np.ndarray:
        """Vertex positions as a (V, 2) array."""
        if not self.vertices:
            return np.zeros((0, 2))
        return np.array([vertex.point for vertex in self.vertices], dtype=float)

    def site_coordinates(self) -> np.ndarray:
        """Site positions as an (F, 2) array, in face order."""
        return np.array([face.point for face in self.faces], dtype=float)

    def euler_characteristic(self) -> int:
        """Euler characteristic of the clipped diagram as a planar graph.

        Returns ``V - E + F + 1``, where ``E`` is the number of undirected
        edges (half-edges / 2) and the ``+ 1`` counts the unbounded exterior
        beyond the square. ``F`` holds only the site faces, so
        ``V - E + F`` alone is 1 for a valid diagram and this returns 2.
        """
        return self.n_vertices - self.n_edges + self.n_faces + 1
