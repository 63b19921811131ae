"""
Core diagram construction functionality.
"""

from .dcel import Diagram, Face, HalfEdge, Vertex
from .fortune import DiagramOptions, FortuneSweep, generate_diagram
from .relaxation import lloyds_relaxation
from .voronoi_graph import VoronoiGraph, build_voronoi_graph, delaunay_edges, find_cell

__all__ = ['Diagram', 'Face', 'HalfEdge', 'Vertex',
           'DiagramOptions', 'FortuneSweep', 'generate_diagram',
           'lloyds_relaxation',
           'VoronoiGraph', 'build_voronoi_graph', 'delaunay_edges', 'find_cell']
