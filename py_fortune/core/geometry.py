"""
Geometric predicates used by the sweep.

All functions are pure and work on plain ``(x, y)`` float tuples; the sweep
calls them tens of thousands of times so they avoid numpy scalars.

The sweep line moves towards increasing y. A site's parabola has the site
as focus and the sweep line as directrix, and the beachline is the set of
parabola points with the largest y for every x.
"""

import math
from typing import Optional, Tuple

import numpy as np

Point = Tuple[float, float]

# Default tolerance for every comparison below. Sites live in the unit
# square, so an absolute tolerance is meaningful. Tunable through
# ``Settings.epsilon`` / ``DiagramOptions.epsilon``.
EPSILON = 1e-12


def cross(ax: float, ay: float, bx: float, by: float) -> float:
    """Z component of the cross product of two 2D vectors."""
    return ax * by - ay * bx


def orientation(a: Point, b: Point, c: Point) -> float:
    """
    Twice the signed area of triangle (a, b, c).

    Positive when the triple turns clockwise with y pointing in the sweep
    direction (counter-clockwise in a y-up frame).
    """
    return cross(b[0] - a[0], b[1] - a[1], c[0] - a[0], c[1] - a[1])


def breakpoint_x(left: Point, right: Point, sweep_y: float, eps: float = EPSILON) -> float:
    """
    X coordinate where the arc of ``left`` meets the arc of ``right``.

    ``left`` is the site of the arc on the left of the breakpoint. The
    breakpoint is recomputed from ``sweep_y`` on every call.

    Args:
        left: Site of the left arc
        right: Site of the right arc
        sweep_y: Current position of the sweep line
        eps: Tolerance for the degenerate cases

    Returns:
        Breakpoint abscissa
    """
    lx, ly = left
    rx, ry = right

    # Sites on the same row: the bisector is vertical
    if abs(ly - ry) <= eps:
        return (lx + rx) * 0.5
    # A site on the sweep line has a zero-width arc (a vertical ray)
    if abs(ly - sweep_y) <= eps:
        return lx
    if abs(ry - sweep_y) <= eps:
        return rx

    d1 = 1.0 / (2.0 * (ly - sweep_y))
    d2 = 1.0 / (2.0 * (ry - sweep_y))
    a = d1 - d2
    b = 2.0 * (rx * d2 - lx * d1)
    c = (ly * ly + lx * lx - sweep_y * sweep_y) * d1 - (ry * ry + rx * rx - sweep_y * sweep_y) * d2

    delta = max(b * b - 4.0 * a * c, 0.0)
    return (-b - math.sqrt(delta)) / (2.0 * a)


def circumcenter(a: Point, b: Point, c: Point, eps: float = EPSILON) -> Optional[Point]:
    """
    Center of the circle through three points.

    Returns None when the points are collinear within ``eps``.
    """
    bx, by = b[0] - a[0], b[1] - a[1]
    cx, cy = c[0] - a[0], c[1] - a[1]
    d = 2.0 * cross(bx, by, cx, cy)
    if abs(d) <= eps:
        return None

    b2 = bx * bx + by * by
    c2 = cx * cx + cy * cy
    ux = (cy * b2 - by * c2) / d
    uy = (bx * c2 - cx * b2) / d
    return (a[0] + ux, a[1] + uy)


def circle_event(left: Point, middle: Point, right: Point, sweep_y: float,
                 eps: float = EPSILON) -> Optional[Tuple[Point, float]]:
    """
    Predict when the middle arc of three consecutive arcs disappears.

    The middle arc is squeezed only when its two breakpoints converge, which
    happens exactly when the triple turns clockwise in sweep orientation.
    Collinear triples and events whose lowest circle point already lies
    behind the sweep line produce no event.

    Args:
        left, middle, right: Sites of three consecutive arcs
        sweep_y: Current position of the sweep line
        eps: Tolerance

    Returns:
        ``(center, event_y)`` or None
    """
    if left == right:
        return None
    if orientation(left, middle, right) <= eps:
        return None

    center = circumcenter(left, middle, right, eps)
    if center is None:
        return None

    radius = math.hypot(middle[0] - center[0], middle[1] - center[1])
    event_y = center[1] + radius
    if event_y < sweep_y - eps:
        return None
    return center, event_y


def edge_direction(site: Point, other: Point) -> Point:
    """
    Direction of travel along the bisector of two sites.

    A half-edge bounding the face of ``site`` runs in this direction while
    the sweep builds the diagram (the face lies on its right).
    """
    return (other[1] - site[1], site[0] - other[0])


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5)


def box_exit(origin: Point, direction: Point, left: float, bottom: float,
             right: float, top: float) -> Tuple[Point, int]:
    """
    Point where a ray starting inside a box leaves it.

    Sides are numbered clockwise in a y-up frame: 0 left, 1 top, 2 right,
    3 bottom.

    Returns:
        ``(point, side)``
    """
    ox, oy = origin
    dx, dy = direction

    t_x = math.inf
    side_x = -1
    if dx > 0.0:
        t_x, side_x = (right - ox) / dx, 2
    elif dx < 0.0:
        t_x, side_x = (left - ox) / dx, 0

    t_y = math.inf
    side_y = -1
    if dy > 0.0:
        t_y, side_y = (top - oy) / dy, 1
    elif dy < 0.0:
        t_y, side_y = (bottom - oy) / dy, 3

    if t_x <= t_y:
        x = right if side_x == 2 else left
        return (x, oy + dy * t_x), side_x
    y = top if side_y == 1 else bottom
    return (ox + dx * t_y, y), side_y


def polygon_signed_area(vertices: np.ndarray) -> float:
    """Shoelace area, positive for counter-clockwise polygons."""
    if len(vertices) < 3:
        return 0.0
    x = vertices[:, 0]
    y = vertices[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def compute_polygon_centroid(vertices: np.ndarray, eps: float = EPSILON) -> np.ndarray:
    """Area-weighted centroid of a polygon.

    Args:
        vertices: Array of [x, y] vertex coordinates
        eps: Areas at or below this are treated as degenerate

    Returns:
        [x, y] centroid, or the vertex mean for degenerate polygons
    """
    vertices = np.asarray(vertices, dtype=float)
    if len(vertices) < 3:
        return np.mean(vertices, axis=0)

    x = vertices[:, 0]
    y = vertices[:, 1]
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)
    cross = x * y_next - x_next * y
    area = 0.5 * float(np.sum(cross))
    if abs(area) <= eps:
        return np.mean(vertices, axis=0)

    cx = float(np.dot(x + x_next, cross)) / (6.0 * area)
    cy = float(np.dot(y + y_next, cross)) / (6.0 * area)
    return np.array([cx, cy])
