"""Tests for the sweep event queue."""

import pytest
import numpy as np
from py_fortune.core.events import CIRCLE, SITE, CircleEvent, EventQueue, SiteEvent
from py_fortune.errors import InvariantViolationError


@pytest.fixture
def sites():
    return np.array([
        [0.5, 0.5],
        [0.1, 0.2],
        [0.9, 0.2],
        [0.3, 0.5],
    ])


def drain(queue):
    events = []
    while not queue.is_empty():
        events.append(queue.pop_min())
    return events


class TestSiteOrdering:
    """Test site events come out in sweep order."""

    def test_sorted_by_y_then_x(self, sites):
        """Test sites are popped by y, then x."""
        queue = EventQueue.from_sites(sites)
        order = [event.site for event in drain(queue)]
        assert order == [1, 2, 3, 0]

    def test_equal_points_keep_input_order(self):
        """Test identical coordinates fall back to input order."""
        queue = EventQueue.from_sites(np.array([[0.4, 0.4], [0.4, 0.4], [0.1, 0.4]]))
        assert [event.site for event in drain(queue)] == [2, 0, 1]

    def test_push_out_of_order_rejected(self):
        """Test sites must be pushed already sorted."""
        queue = EventQueue()
        queue.push_site(0, 0.5, 0.5)
        with pytest.raises(InvariantViolationError):
            queue.push_site(1, 0.5, 0.1)

    def test_site_event_kind(self, sites):
        """Test popped site events are tagged as sites."""
        event = EventQueue.from_sites(sites).pop_min()
        assert isinstance(event, SiteEvent)
        assert event.kind == SITE
        assert (event.x, event.y) == (0.1, 0.2)


class TestCircleEvents:
    """Test circle event scheduling and lazy invalidation."""

    def test_circle_before_later_site(self, sites):
        """Test a circle event fires before sites further along the sweep."""
        queue = EventQueue.from_sites(sites)
        queue.push_circle(arc=7, center=(0.5, 0.2), y=0.3)

        kinds = [event.kind for event in drain(queue)]
        assert kinds == [SITE, SITE, CIRCLE, SITE, SITE]

    def test_site_wins_ties(self, sites):
        """Test a site event precedes a circle event at the same point."""
        queue = EventQueue.from_sites(sites)
        queue.push_circle(arc=3, center=(0.1, 0.0), y=0.2)

        first = queue.pop_min()
        second = queue.pop_min()
        assert isinstance(first, SiteEvent)
        assert isinstance(second, CircleEvent)
        assert second.arc == 3

    def test_tie_broken_by_x(self):
        """Test circle events at the same y pop by x."""
        queue = EventQueue()
        queue.push_circle(arc=1, center=(0.8, 0.1), y=0.5)
        queue.push_circle(arc=2, center=(0.2, 0.1), y=0.5)

        assert [event.arc for event in drain(queue)] == [2, 1]

    def test_invalidated_event_is_skipped(self):
        """Test invalidated events are discarded transparently."""
        queue = EventQueue()
        stale = queue.push_circle(arc=1, center=(0.5, 0.1), y=0.3)
        queue.push_circle(arc=2, center=(0.5, 0.2), y=0.4)
        queue.invalidate(stale)

        assert len(queue) == 1
        events = drain(queue)
        assert [event.arc for event in events] == [2]
        assert queue.discarded == 1

    def test_invalidate_none_is_ignored(self):
        """Test invalidating an absent event does nothing."""
        queue = EventQueue()
        token = queue.push_circle(arc=1, center=(0.5, 0.1), y=0.3)
        queue.invalidate(None)

        assert queue.is_valid(token)
        assert len(queue) == 1

    def test_tokens_are_unique(self):
        """Test every scheduled event gets its own token."""
        queue = EventQueue()
        tokens = {queue.push_circle(arc=i, center=(0.5, 0.5), y=0.5) for i in range(10)}
        assert len(tokens) == 10


class TestEmptyQueue:
    """Test empty queue behaviour."""

    def test_pop_empty_raises(self):
        """Test popping an empty queue raises IndexError."""
        queue = EventQueue()
        assert queue.is_empty()
        with pytest.raises(IndexError):
            queue.pop_min()

    def test_only_cancelled_events_is_empty(self):
        """Test a queue holding only cancelled events reports empty."""
        queue = EventQueue()
        queue.invalidate(queue.push_circle(arc=1, center=(0.5, 0.5), y=0.5))
        assert queue.is_empty()
        assert len(queue) == 0

    def test_popped_counter(self, sites):
        """Test every dispatched event is counted once."""
        queue = EventQueue.from_sites(sites)
        drain(queue)
        assert queue.popped == len(sites)
