"""Lloyd's relaxation over clipped Voronoi faces."""

from typing import Any, Iterable, Optional

import numpy as np
import structlog

from .fortune import DiagramOptions, generate_diagram

logger = structlog.get_logger()


def lloyds_relaxation(points: Iterable[Any], iterations: int = 1,
                      options: Optional[DiagramOptions] = None) -> np.ndarray:
    """Apply Lloyd's relaxation to improve point distribution.

    Moves each site to the centroid of its Voronoi face, clipped to the
    unit square, ``iterations`` times. Duplicate points are merged on the
    first pass, so the result may hold fewer rows than the input.

    Args:
        points: Points to relax
        iterations: Number of relaxation passes
        options: Options forwarded to ``generate_diagram``

    Returns:
        Relaxed site coordinates, shape (n_sites, 2)
    """
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")

    logger.info("Starting Lloyd's relaxation", iterations=iterations)

    options = options or DiagramOptions()
    diagram = generate_diagram(points, options)
    sites = diagram.site_coordinates()

    for iteration in range(iterations):
        if iteration > 0:
            diagram = generate_diagram(sites, options)

        # Move each site to its face's centroid
        for face in range(diagram.n_faces):
            centroid = diagram.face_centroid(face, options.epsilon)
            sites[face] = np.clip(centroid, 0.0, 1.0)

        logger.debug("Relaxation iteration complete", iteration=iteration + 1)

    return sites
