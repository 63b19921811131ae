"""
Voronoi diagrams of points in the unit square, built with Fortune's sweep.
"""

from .config import Settings, configure_logging, settings
from .core import (
    Diagram,
    DiagramOptions,
    VoronoiGraph,
    build_voronoi_graph,
    delaunay_edges,
    find_cell,
    generate_diagram,
    lloyds_relaxation,
)
from .errors import (
    DegenerateConfigurationError,
    InvalidInputError,
    InvariantViolationError,
    VoronoiError,
)

__version__ = "0.1.0"

__all__ = ['Settings', 'configure_logging', 'settings',
           'Diagram', 'DiagramOptions', 'VoronoiGraph', 'build_voronoi_graph',
           'delaunay_edges', 'find_cell', 'generate_diagram', 'lloyds_relaxation',
           'DegenerateConfigurationError', 'InvalidInputError',
           'InvariantViolationError', 'VoronoiError']
