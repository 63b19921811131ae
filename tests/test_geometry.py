"""Tests for the geometric predicates."""

import pytest
import numpy as np
from py_fortune.core.geometry import (
    box_exit, breakpoint_x, circle_event, circumcenter, compute_polygon_centroid,
    edge_direction, orientation, polygon_signed_area
)


def parabola_y(site, x, sweep_y):
    """Point of the parabola with focus ``site`` and directrix ``sweep_y``."""
    fx, fy = site
    return ((x - fx) ** 2 + fy ** 2 - sweep_y ** 2) / (2.0 * (fy - sweep_y))


class TestBreakpoint:
    """Test breakpoint computation."""

    @pytest.mark.parametrize("left,right,sweep_y", [
        ((0.3, 0.5), (0.6, 0.2), 0.7),
        ((0.6, 0.2), (0.3, 0.5), 0.7),
        ((0.1, 0.1), (0.9, 0.4), 0.8),
        ((0.9, 0.4), (0.1, 0.1), 0.8),
    ])
    def test_left_arc_wins_left_of_breakpoint(self, left, right, sweep_y):
        """Test that the left site's arc is on top left of the breakpoint."""
        x = breakpoint_x(left, right, sweep_y)

        # Both parabolas meet at the breakpoint
        assert parabola_y(left, x, sweep_y) == pytest.approx(parabola_y(right, x, sweep_y))

        delta = 1e-3
        assert parabola_y(left, x - delta, sweep_y) > parabola_y(right, x - delta, sweep_y)
        assert parabola_y(right, x + delta, sweep_y) > parabola_y(left, x + delta, sweep_y)

    def test_known_value(self):
        """Test the breakpoint against a hand-computed value."""
        x = breakpoint_x((0.3, 0.5), (0.6, 0.2), 0.7)
        assert x == pytest.approx((0.3 + np.sqrt(1.8)) / 3.0)

    def test_same_row_is_midpoint(self):
        """Test sites sharing a row meet halfway."""
        assert breakpoint_x((0.2, 0.5), (0.6, 0.5), 0.5) == pytest.approx(0.4)
        assert breakpoint_x((0.2, 0.5), (0.6, 0.5), 0.9) == pytest.approx(0.4)

    def test_site_on_sweep_line(self):
        """Test zero-width arcs give a vertical breakpoint."""
        assert breakpoint_x((0.3, 0.6), (0.5, 0.2), 0.6) == 0.3
        assert breakpoint_x((0.5, 0.2), (0.3, 0.6), 0.6) == 0.3


class TestCircleEvent:
    """Test circle event prediction."""

    def test_converging_triple(self):
        """Test a clockwise triple produces an event at the circle bottom."""
        predicted = circle_event((0.2, 0.5), (0.5, 0.2), (0.8, 0.5), 0.5)

        assert predicted is not None
        center, event_y = predicted
        np.testing.assert_allclose(center, (0.5, 0.5))
        assert event_y == pytest.approx(0.8)

    def test_diverging_triple(self):
        """Test the reversed triple produces no event."""
        assert circle_event((0.8, 0.5), (0.5, 0.2), (0.2, 0.5), 0.5) is None

    def test_collinear_triple(self):
        """Test collinear sites produce no event."""
        assert circle_event((0.1, 0.1), (0.5, 0.5), (0.9, 0.9), 0.9) is None
        assert circle_event((0.1, 0.5), (0.5, 0.5), (0.9, 0.5), 0.5) is None

    def test_same_outer_site(self):
        """Test a triple whose outer arcs share a site produces no event."""
        assert circle_event((0.5, 0.2), (0.4, 0.6), (0.5, 0.2), 0.6) is None

    def test_event_behind_sweep(self):
        """Test events already passed by the sweep are dropped."""
        assert circle_event((0.2, 0.5), (0.5, 0.2), (0.8, 0.5), 0.9) is None

    def test_event_at_sweep(self):
        """Test an event firing at the current sweep position is kept."""
        predicted = circle_event((0.5, 0.6), (0.3, 0.2), (0.7, 0.2), 0.6)

        assert predicted is not None
        center, event_y = predicted
        np.testing.assert_allclose(center, (0.5, 0.35))
        assert event_y == pytest.approx(0.6)


class TestPrimitives:
    """Test small geometric helpers."""

    def test_orientation_sign(self):
        """Test orientation is positive for counter-clockwise triples."""
        assert orientation((0, 0), (1, 0), (0, 1)) > 0
        assert orientation((0, 0), (0, 1), (1, 0)) < 0
        assert orientation((0, 0), (1, 1), (2, 2)) == 0

    def test_circumcenter(self):
        """Test circumcenter of a right triangle is the hypotenuse midpoint."""
        np.testing.assert_allclose(circumcenter((0, 0), (1, 0), (0, 1)), (0.5, 0.5))
        assert circumcenter((0, 0), (1, 1), (2, 2)) is None

    def test_edge_direction_keeps_face_on_right(self):
        """Test the travel direction keeps the site's face on the right."""
        dx, dy = edge_direction((0.5, 0.2), (0.5, 0.6))
        assert (dx, dy) == pytest.approx((0.4, 0.0))
        # The site lies to the right of the direction of travel
        assert orientation((0.5, 0.4), (0.5 + dx, 0.4 + dy), (0.5, 0.2)) < 0

    @pytest.mark.parametrize("direction,expected,side", [
        ((0.0, 1.0), (0.5, 2.0), 1),
        ((-1.0, 0.0), (-1.0, 0.5), 0),
        ((1.0, 0.0), (2.0, 0.5), 2),
        ((0.0, -1.0), (0.5, -1.0), 3),
        ((1.0, -1.0), (2.0, -1.0), 2),
    ])
    def test_box_exit(self, direction, expected, side):
        """Test rays leave the box on the expected side."""
        point, exit_side = box_exit((0.5, 0.5), direction, -1.0, -1.0, 2.0, 2.0)
        np.testing.assert_allclose(point, expected)
        assert exit_side == side

    def test_signed_area(self):
        """Test shoelace area sign follows orientation."""
        square = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=float)
        assert polygon_signed_area(square) == pytest.approx(1.0)
        assert polygon_signed_area(square[::-1]) == pytest.approx(-1.0)

    def test_centroid(self):
        """Test the centroid of a rectangle is its center."""
        rectangle = np.array([[0, 0], [2, 0], [2, 1], [0, 1]], dtype=float)
        np.testing.assert_allclose(compute_polygon_centroid(rectangle), (1.0, 0.5))

    def test_centroid_of_triangle(self):
        """Test a triangle's centroid is the mean of its corners in either orientation."""
        triangle = np.array([[0, 0], [3, 0], [0, 3]], dtype=float)
        np.testing.assert_allclose(compute_polygon_centroid(triangle), (1.0, 1.0))
        np.testing.assert_allclose(compute_polygon_centroid(triangle[::-1]), (1.0, 1.0))

    def test_centroid_is_area_weighted(self):
        """Test extra collinear vertices do not pull the centroid."""
        square = np.array([[0, 0], [0.25, 0], [0.5, 0], [0.75, 0], [1, 0], [1, 1], [0, 1]])
        np.testing.assert_allclose(compute_polygon_centroid(square), (0.5, 0.5))

    def test_degenerate_centroid_uses_tolerance(self):
        """Test polygons with area within eps fall back to the vertex mean."""
        sliver = np.array([[0, 0], [3, 0], [3, 1e-9], [2, 1e-9]])
        assert compute_polygon_centroid(sliver)[0] == pytest.approx(23.0 / 12.0)
        assert compute_polygon_centroid(sliver, eps=1e-6)[0] == pytest.approx(2.0)
        line = np.array([[0, 0], [1, 1], [2, 2]], dtype=float)
        np.testing.assert_allclose(compute_polygon_centroid(line), (1.0, 1.0))
