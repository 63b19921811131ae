"""Tests for the red-black beachline."""

import pytest
import numpy as np
from py_fortune.core.beachline import NIL, Beachline
from py_fortune.core.dcel import DiagramBuilder
from py_fortune.core.events import CircleEvent, EventQueue
from py_fortune.core.fortune import FortuneSweep
from py_fortune.errors import InvariantViolationError


def make_beachline(sites):
    sites = [tuple(map(float, site)) for site in sites]
    builder = DiagramBuilder(sites)
    queue = EventQueue()
    return Beachline(sites, builder, queue), builder, queue


class TestInsertSite:
    """Test site insertion."""

    def test_first_site_becomes_root(self):
        """Test the first arc is a black root."""
        beachline, _, _ = make_beachline([(0.5, 0.2)])
        arc = beachline.insert_site(0, 0.2)

        assert beachline.root == arc
        assert len(beachline) == 1
        assert not beachline.arcs[arc].red
        beachline.check_invariants()

    def test_split_arc(self):
        """Test a new site splits the arc above it."""
        beachline, builder, _ = make_beachline([(0.5, 0.2), (0.4, 0.6)])
        beachline.insert_site(0, 0.2)
        middle = beachline.insert_site(1, 0.6)

        assert beachline.site_sequence() == [0, 1, 0]
        assert len(builder.half_edges) == 2
        assert beachline.locate(0.41, 0.7) == middle

        # Both breakpoints trace the same twin pair
        arc = beachline.arcs[middle]
        assert arc.left_half_edge == arc.right_half_edge
        twin = builder.half_edges[arc.left_half_edge].twin
        assert beachline.arcs[arc.prev].right_half_edge == twin
        assert beachline.arcs[arc.next].left_half_edge == twin
        beachline.check_invariants()

    def test_first_row_sites_sit_side_by_side(self):
        """Test sites sharing the first row are placed next to each other."""
        beachline, builder, queue = make_beachline([(0.2, 0.5), (0.6, 0.5), (0.9, 0.5)])
        for site in range(3):
            beachline.insert_site(site, 0.5)

        assert beachline.site_sequence() == [0, 1, 2]
        assert len(builder.half_edges) == 4
        assert queue.is_empty()
        np.testing.assert_allclose(beachline.breakpoints(0.7), [0.4, 0.75])
        beachline.check_invariants()

    def test_converging_triple_schedules_event(self):
        """Test a converging triple schedules a circle event."""
        beachline, _, queue = make_beachline([(0.5, 0.2), (0.2, 0.5), (0.8, 0.5)])
        beachline.insert_site(0, 0.2)
        beachline.insert_site(1, 0.5)
        beachline.insert_site(2, 0.5)

        assert beachline.site_sequence() == [0, 1, 0, 2, 0]
        assert len(queue) == 1
        event = queue.pop_min()
        assert isinstance(event, CircleEvent)
        assert event.y == pytest.approx(0.8)
        np.testing.assert_allclose(event.center, (0.5, 0.5))


class TestRemoveArc:
    """Test arc removal on circle events."""

    def test_remove_squeezed_arc(self):
        """Test a fired circle event creates a vertex and joins neighbors."""
        beachline, builder, queue = make_beachline([(0.5, 0.2), (0.2, 0.5), (0.8, 0.5)])
        beachline.insert_site(0, 0.2)
        beachline.insert_site(1, 0.5)
        beachline.insert_site(2, 0.5)

        event = queue.pop_min()
        vertex = beachline.remove_arc(event.arc, event.center, event.y)

        assert beachline.site_sequence() == [0, 1, 2, 0]
        assert not beachline.arcs[event.arc].alive
        np.testing.assert_allclose(builder.vertices[vertex].point, (0.5, 0.5))
        assert queue.is_empty()
        beachline.check_invariants()

    def test_remove_end_arc_rejected(self):
        """Test the outermost arcs can never be squeezed."""
        beachline, _, _ = make_beachline([(0.5, 0.2), (0.4, 0.6)])
        beachline.insert_site(0, 0.2)
        beachline.insert_site(1, 0.6)

        with pytest.raises(InvariantViolationError):
            beachline.remove_arc(beachline.leftmost(), (0.5, 0.5), 0.7)


class TestTreeInvariants:
    """Test the red-black tree stays balanced through a full sweep."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_invariants_hold_after_every_event(self, seed):
        """Test red-black and threading invariants after each event."""
        points = np.random.default_rng(seed).random((150, 2))
        sweep = FortuneSweep(points)

        max_size = 0
        while not sweep.queue.is_empty():
            sweep.step()
            sweep.beachline.check_invariants()
            max_size = max(max_size, len(sweep.beachline))

        assert max_size > 10

    def test_threads_match_breakpoint_order(self):
        """Test breakpoints increase from left to right mid-sweep."""
        points = np.random.default_rng(7).random((80, 2))
        sweep = FortuneSweep(points)

        while not sweep.queue.is_empty():
            event = sweep.step()
            breakpoints = sweep.beachline.breakpoints(event.y)
            assert all(a <= b + 1e-9 for a, b in zip(breakpoints, breakpoints[1:]))

    def test_dead_arcs_are_unlinked(self):
        """Test removed arcs leave no references in the tree."""
        points = np.random.default_rng(3).random((60, 2))
        sweep = FortuneSweep(points)
        sweep.run()

        arcs = sweep.beachline.arcs
        live = [index for index in range(1, len(arcs)) if arcs[index].alive]
        assert len(live) == len(sweep.beachline)

        children = set()
        for index in live:
            children.update((arcs[index].left, arcs[index].right))
        for index, arc in enumerate(arcs[1:], start=1):
            if not arc.alive:
                assert arc.parent == arc.left == arc.right == NIL
                assert index not in children
