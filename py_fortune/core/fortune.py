"""
Fortune's sweep over points of the unit square.

``generate_diagram`` is the public entry point: it validates and
deduplicates the input, runs ``FortuneSweep`` to trace the unbounded
diagram, then hands the edge list to the clipper.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import numpy as np
import structlog
from scipy.spatial import cKDTree

from ..config import settings
from ..errors import DegenerateConfigurationError, InvalidInputError, InvariantViolationError
from ..utils.arrays import as_point_array, validate_unit_square
from .beachline import Beachline
from .clipping import clip_diagram
from .dcel import Diagram, DiagramBuilder
from .events import SITE, Event, EventQueue
from .geometry import EPSILON

logger = structlog.get_logger()

DUPLICATE_POLICIES = ("merge", "reject")
MAX_EPSILON = 1e-3


@dataclass
class DiagramOptions:
    """Per-call overrides of the library settings."""
    epsilon: float = field(default_factory=lambda: settings.epsilon)
    duplicate_policy: str = field(default_factory=lambda: settings.duplicate_policy)

    def __post_init__(self):
        if not 0.0 < self.epsilon < MAX_EPSILON:
            raise ValueError(f"epsilon must be in (0, {MAX_EPSILON}), got {self.epsilon}")
        if self.duplicate_policy not in DUPLICATE_POLICIES:
            raise ValueError(
                f"duplicate_policy must be one of {DUPLICATE_POLICIES}, got {self.duplicate_policy!r}"
            )


@dataclass
class SiteSet:
    """Distinct sites ready for the sweep."""
    points: np.ndarray       # (F, 2) site coordinates in face order
    face_sites: np.ndarray   # face -> input index of its site
    site_faces: np.ndarray   # input index -> face

    @property
    def n_merged(self) -> int:
        return len(self.site_faces) - len(self.points)


def find_representatives(points: np.ndarray, eps: float) -> np.ndarray:
    """
    Group points closer than ``eps`` and pick the lowest index of each group.

    Args:
        points: Array of [x, y] coordinates
        eps: Merge distance

    Returns:
        Representative input index for every point
    """
    parent = np.arange(len(points))
    if len(points) < 2:
        return parent

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    pairs = cKDTree(points).query_pairs(r=eps, output_type="ndarray")
    for a, b in pairs:
        root_a, root_b = find(int(a)), find(int(b))
        if root_a != root_b:
            parent[max(root_a, root_b)] = min(root_a, root_b)

    return np.array([find(i) for i in range(len(points))], dtype=np.int64)


def prepare_sites(points: Iterable[Any], options: DiagramOptions) -> SiteSet:
    """
    Validate the input and collapse duplicate points.

    Raises:
        InvalidInputError: Empty, malformed or out-of-range input, or
            duplicates under the ``reject`` policy
        DegenerateConfigurationError: Several points that all coincide
    """
    array = as_point_array(points)
    if len(array) == 0:
        raise InvalidInputError("At least one point is required")
    validate_unit_square(array)

    representatives = find_representatives(array, options.epsilon)
    indices = np.arange(len(array))
    face_sites = np.flatnonzero(representatives == indices)

    if len(array) > 1 and len(face_sites) == 1:
        raise DegenerateConfigurationError(f"All {len(array)} points coincide")

    duplicates = np.flatnonzero(representatives != indices)
    if len(duplicates) and options.duplicate_policy == "reject":
        first = int(duplicates[0])
        raise InvalidInputError(
            f"Points {int(representatives[first])} and {first} are closer than {options.epsilon}"
        )

    site_set = SiteSet(
        points=array[face_sites],
        face_sites=face_sites,
        site_faces=np.searchsorted(face_sites, representatives),
    )
    if site_set.n_merged:
        logger.warning("Merged duplicate points", merged=site_set.n_merged, sites=len(face_sites))
    return site_set


class FortuneSweep:
    """Sweep driver: pops events and dispatches them to the beachline.

    Args:
        sites: (n, 2) array of distinct site coordinates; face ``i`` of the
            result belongs to row ``i``
        eps: Geometric tolerance
    """

    def __init__(self, sites: np.ndarray, eps: float = EPSILON):
        site_list = [(float(x), float(y)) for x, y in sites]
        self.queue = EventQueue.from_sites(sites)
        self.builder = DiagramBuilder(site_list)
        self.beachline = Beachline(site_list, self.builder, self.queue, eps)

    def step(self) -> Event:
        """Process the next valid event and return it."""
        event = self.queue.pop_min()
        if event.kind == SITE:
            self.beachline.insert_site(event.site, event.y)
            return event

        arc = self.beachline.arcs[event.arc]
        if not arc.alive or arc.event != event.token:
            raise InvariantViolationError(f"Stale circle event dispatched for arc {event.arc}")
        self.beachline.remove_arc(event.arc, event.center, event.y)
        return event

    def run(self) -> DiagramBuilder:
        """Drain the event queue and return the traced edge list."""
        while not self.queue.is_empty():
            self.step()

        logger.debug(
            "Sweep finished",
            events=self.queue.popped,
            discarded=self.queue.discarded,
            vertices=len(self.builder.vertices),
            half_edges=len(self.builder.half_edges),
        )
        return self.builder


def generate_diagram(points: Iterable[Any], options: Optional[DiagramOptions] = None) -> Diagram:
    """
    Compute the Voronoi diagram of points in the unit square.

    Args:
        points: (n, 2) array-like, or a sequence of ``{"x": .., "y": ..}``
            mappings or objects with ``x``/``y`` attributes
        options: Tolerance and duplicate handling; defaults from settings

    Returns:
        Diagram clipped to the unit square, one face per distinct point

    Raises:
        InvalidInputError: If the points are not a valid input
        DegenerateConfigurationError: If several points all coincide
    """
    options = options or DiagramOptions()
    site_set = prepare_sites(points, options)

    logger.info(
        "Generating Voronoi diagram",
        sites=len(site_set.points),
        epsilon=options.epsilon,
        duplicates=options.duplicate_policy,
    )

    builder = FortuneSweep(site_set.points, options.epsilon).run()
    diagram = clip_diagram(builder, site_set.face_sites, site_set.site_faces, options.epsilon)

    if diagram.euler_characteristic() != 2:
        raise InvariantViolationError(
            f"Euler characteristic is {diagram.euler_characteristic()}, expected 2"
        )

    logger.info(
        "Voronoi diagram generated",
        vertices=diagram.n_vertices,
        half_edges=len(diagram.half_edges),
        faces=diagram.n_faces,
    )
    return diagram
