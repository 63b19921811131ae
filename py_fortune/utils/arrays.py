"""Point-array coercion helpers."""

from collections.abc import Mapping
from typing import Any, Iterable

import numpy as np

from ..errors import InvalidInputError


def _as_pair(point: Any):
    if isinstance(point, Mapping):
        return point["x"], point["y"]
    if hasattr(point, "x") and hasattr(point, "y"):
        return point.x, point.y
    return tuple(point)


def as_point_array(points: Iterable[Any]) -> np.ndarray:
    """
    Convert user supplied points to an (n, 2) float array.

    Accepts an array-like of [x, y] rows, or a sequence of mappings with
    ``x``/``y`` keys or objects with ``x``/``y`` attributes.

    Args:
        points: Points to convert

    Returns:
        New float64 array of shape (n, 2)

    Raises:
        InvalidInputError: If the points cannot be read as 2D coordinates
    """
    try:
        if isinstance(points, np.ndarray):
            array = points.astype(float, copy=True)
        else:
            array = np.array([_as_pair(point) for point in points], dtype=float)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidInputError(f"Cannot read points as (x, y) pairs: {exc}") from exc

    if array.size == 0:
        return np.zeros((0, 2))
    if array.ndim != 2 or array.shape[1] != 2:
        raise InvalidInputError(f"Points must have shape (n, 2), got {array.shape}")
    return array


def validate_unit_square(points: np.ndarray) -> None:
    """
    Check that every coordinate is finite and within [0, 1].

    Raises:
        InvalidInputError: Naming the first offending point
    """
    finite = np.isfinite(points).all(axis=1)
    if not finite.all():
        index = int(np.flatnonzero(~finite)[0])
        raise InvalidInputError(f"Point {index} has a non-finite coordinate: {points[index].tolist()}")

    outside = ((points < 0.0) | (points > 1.0)).any(axis=1)
    if outside.any():
        index = int(np.flatnonzero(outside)[0])
        raise InvalidInputError(f"Point {index} lies outside the unit square: {points[index].tolist()}")
