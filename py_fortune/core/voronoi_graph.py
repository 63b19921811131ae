"""Cell-centric view of a diagram and its dual Delaunay graph."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import cKDTree

from .dcel import Diagram

logger = structlog.get_logger()


@dataclass
class VoronoiGraph:
    """Voronoi graph as per-cell and per-vertex adjacency lists.

    Cell ``i`` is face ``i`` of the diagram it was built from.
    """
    # Points data
    points: np.ndarray               # points[i] = [x, y] site of cell i
    site_cells: np.ndarray           # input point index -> cell ID

    # Cell connectivity data
    cell_neighbors: List[List[int]]  # cell_neighbors[i] = neighbor cell IDs
    cell_vertices: List[List[int]]   # cell_vertices[i] = boundary vertex IDs, counter-clockwise
    cell_border_flags: np.ndarray    # cell_border_flags[i] = 1 if the cell touches the square

    # Vertex data
    vertex_coordinates: np.ndarray   # vertex_coordinates[i] = [x, y]
    vertex_neighbors: List[List[int]]  # vertex_neighbors[i] = adjacent vertex IDs
    vertex_cells: List[List[int]]    # vertex_cells[i] = cells around vertex i

    _tree: Optional[cKDTree] = field(default=None, repr=False, compare=False)

    @property
    def n_cells(self) -> int:
        return len(self.points)

    def site_tree(self) -> cKDTree:
        if self._tree is None:
            self._tree = cKDTree(self.points)
        return self._tree


def build_cell_connectivity(diagram: Diagram) -> Tuple[List[List[int]], np.ndarray]:
    """
    Build cell neighbor lists and border flags.

    Args:
        diagram: Clipped diagram

    Returns:
        Tuple of (cell_neighbors, border_flags)
    """
    cell_neighbors = [[] for _ in range(diagram.n_faces)]
    border_flags = np.zeros(diagram.n_faces, dtype=np.uint8)

    for half_edge in diagram.half_edges:
        face = half_edge.face
        if face is None:
            continue
        other = diagram.half_edges[half_edge.twin].face
        if other is None:
            border_flags[face] = 1
        elif other != face:
            cell_neighbors[face].append(other)

    for i in range(diagram.n_faces):
        # Remove duplicates and sort for consistency
        cell_neighbors[i] = sorted(set(cell_neighbors[i]))

    return cell_neighbors, border_flags


def build_cell_vertices(diagram: Diagram) -> List[List[int]]:
    """Ordered boundary vertices of every cell."""
    return [diagram.face_vertices(face) for face in range(diagram.n_faces)]


def build_vertex_connectivity(diagram: Diagram) -> Tuple[List[List[int]], List[List[int]]]:
    """
    Build vertex connectivity from the edge list.

    Args:
        diagram: Clipped diagram

    Returns:
        Tuple of (vertex_neighbors, vertex_cells)
    """
    n_vertices = diagram.n_vertices
    vertex_neighbors = [[] for _ in range(n_vertices)]
    vertex_cells = [[] for _ in range(n_vertices)]

    for v1, v2 in diagram.edge_vertices():
        vertex_neighbors[v1].append(v2)
        vertex_neighbors[v2].append(v1)

    for half_edge in diagram.half_edges:
        if half_edge.face is not None:
            vertex_cells[half_edge.origin].append(half_edge.face)

    # Clean up duplicates
    for i in range(n_vertices):
        vertex_neighbors[i] = sorted(set(vertex_neighbors[i]))
        vertex_cells[i] = sorted(set(vertex_cells[i]))

    return vertex_neighbors, vertex_cells


def delaunay_edges(diagram: Diagram) -> List[Tuple[int, int]]:
    """
    Dual Delaunay graph of a diagram.

    Two sites are joined when their faces share an edge inside the square.

    Returns:
        Sorted unique ``(face_a, face_b)`` pairs with ``face_a < face_b``
    """
    edges = set()
    for index, half_edge in enumerate(diagram.half_edges):
        twin = diagram.half_edges[half_edge.twin]
        if half_edge.face is None or twin.face is None or index > half_edge.twin:
            continue
        edges.add((min(half_edge.face, twin.face), max(half_edge.face, twin.face)))
    return sorted(edges)


def build_voronoi_graph(diagram: Diagram) -> VoronoiGraph:
    """
    Convert a diagram into a ``VoronoiGraph``.

    Args:
        diagram: Clipped diagram

    Returns:
        Cell-centric graph over the same vertices and faces
    """
    logger.info("Building Voronoi graph", cells=diagram.n_faces, vertices=diagram.n_vertices)

    cell_neighbors, border_flags = build_cell_connectivity(diagram)
    cell_vertices = build_cell_vertices(diagram)
    vertex_neighbors, vertex_cells = build_vertex_connectivity(diagram)

    return VoronoiGraph(
        points=diagram.site_coordinates(),
        site_cells=np.asarray(diagram.site_faces, dtype=np.int64),
        cell_neighbors=cell_neighbors,
        cell_vertices=cell_vertices,
        cell_border_flags=border_flags,
        vertex_coordinates=diagram.vertex_coordinates(),
        vertex_neighbors=vertex_neighbors,
        vertex_cells=vertex_cells,
    )


def find_cell(x: float, y: float, graph: VoronoiGraph) -> int:
    """
    Find the cell index for given coordinates.

    The cell containing a point is the one whose site is nearest to it.

    Args:
        x, y: Coordinates to find
        graph: Voronoi graph

    Returns:
        Cell index containing the point
    """
    _, cell = graph.site_tree().query([x, y])
    return int(cell)
