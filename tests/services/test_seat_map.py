"""
Tests for the seat grid and the single-seat selection state machine.
"""

import pytest
from collections.abc import Set as AbcSet

from seatbook.services.seat_map import (
    SeatMap, SeatSelection, SeatState, SelectionState, parse_seat_id
)


class TestSeatMap:
    """Test cases for SeatMap."""

    def test_default_grid_layout(self):
        seat_map = SeatMap(4, 8)

        assert seat_map.row_labels == ["A", "B", "C", "D"]
        assert seat_map.capacity == 32
        seat_ids = seat_map.seat_ids()
        assert seat_ids[0] == "A1"
        assert seat_ids[7] == "A8"
        assert seat_ids[8] == "B1"
        assert seat_ids[-1] == "D8"

    def test_contains(self):
        seat_map = SeatMap(4, 8)

        assert seat_map.contains("A1")
        assert seat_map.contains("D8")
        assert not seat_map.contains("E1")
        assert not seat_map.contains("A9")
        assert not seat_map.contains("A0")
        assert not seat_map.contains("")
        assert not seat_map.contains("1A")

    def test_parse_seat_id(self):
        assert parse_seat_id("C12") == ("C", 12)

        with pytest.raises(ValueError):
            parse_seat_id("a1")
        with pytest.raises(ValueError):
            parse_seat_id("A01")

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError):
            SeatMap(0, 8)
        with pytest.raises(ValueError):
            SeatMap(27, 8)
        with pytest.raises(ValueError):
            SeatMap(4, 0)

    def test_render_marks_booked_and_selected(self):
        seat_map = SeatMap(2, 3)

        grid = seat_map.render({"A2"}, selected_seat="B1")

        assert [row["row"] for row in grid] == ["A", "B"]
        states = {seat["seat_id"]: seat["state"] for row in grid for seat in row["seats"]}
        assert states["A2"] == SeatState.BOOKED.value
        assert states["B1"] == SeatState.SELECTED.value
        assert states["A1"] == SeatState.AVAILABLE.value

    def test_booked_wins_over_selected(self):
        seat_map = SeatMap(1, 2)

        assert seat_map.seat_state("A1", {"A1"}, "A1") == SeatState.BOOKED

    def test_render_reads_booked_set_once(self):
        class CountingSet(AbcSet):
            iterations = 0

            def __init__(self, seats):
                self._seats = frozenset(seats)

            def __contains__(self, seat_id):
                return seat_id in self._seats

            def __len__(self):
                return len(self._seats)

            def __iter__(self):
                CountingSet.iterations += 1
                return iter(self._seats)

        seat_map = SeatMap(4, 8)
        booked = CountingSet({"A1", "C3"})

        assert seat_map.seat_state("A1", booked) == SeatState.BOOKED
        assert CountingSet.iterations == 0

        grid = seat_map.render(booked)

        assert CountingSet.iterations == 1
        assert sum(seat["state"] == SeatState.BOOKED.value for row in grid for seat in row["seats"]) == 2


class TestSeatSelection:
    """Test cases for the selection state machine."""

    def test_starts_without_selection(self):
        selection = SeatSelection(SeatMap(4, 8))

        assert selection.state == SelectionState.NO_SELECTION
        assert selection.selected_seat is None

    def test_select_available_seat(self):
        selection = SeatSelection(SeatMap(4, 8), booked_seats={"A1"})

        assert selection.select_seat("A2") is True
        assert selection.state == SelectionState.SELECTED
        assert selection.selected_seat == "A2"
        assert selection.seat_state("A2") == SeatState.SELECTED

    def test_select_booked_seat_is_rejected_and_clears_selection(self):
        selection = SeatSelection(SeatMap(4, 8), booked_seats={"A1"})
        selection.select_seat("B3")

        assert selection.select_seat("A1") is False
        assert selection.state == SelectionState.NO_SELECTION

    def test_select_seat_outside_grid_is_rejected(self):
        selection = SeatSelection(SeatMap(4, 8))

        assert selection.select_seat("Z99") is False
        assert selection.selected_seat is None

    def test_only_one_seat_selected(self):
        selection = SeatSelection(SeatMap(4, 8))

        selection.select_seat("A1")
        selection.select_seat("C4")

        assert selection.selected_seat == "C4"
        assert selection.seat_state("A1") == SeatState.AVAILABLE

    def test_refresh_containing_selected_seat_clears_selection(self):
        """A seat booked by someone else must not stay selected."""
        selection = SeatSelection(SeatMap(4, 8))
        selection.select_seat("A1")

        cleared = selection.apply_booked_seats({"A1", "B2"})

        assert cleared is True
        assert selection.state == SelectionState.NO_SELECTION
        assert selection.seat_state("A1") == SeatState.BOOKED

    def test_refresh_without_conflict_keeps_selection(self):
        selection = SeatSelection(SeatMap(4, 8))
        selection.select_seat("A1")

        cleared = selection.apply_booked_seats({"B2"})

        assert cleared is False
        assert selection.selected_seat == "A1"
        assert selection.booked_seats == frozenset({"B2"})

    def test_seat_released_by_refresh_becomes_selectable(self):
        selection = SeatSelection(SeatMap(4, 8), booked_seats={"A1"})
        assert selection.select_seat("A1") is False

        selection.apply_booked_seats(set())

        assert selection.select_seat("A1") is True

    def test_reset(self):
        selection = SeatSelection(SeatMap(4, 8))
        selection.select_seat("A1")

        selection.reset()

        assert selection.state == SelectionState.NO_SELECTION

    def test_to_dict(self):
        selection = SeatSelection(SeatMap(4, 8), booked_seats={"B1", "A3"})
        selection.select_seat("A1")

        assert selection.to_dict() == {
            "state": "selected",
            "selected_seat": "A1",
            "booked_seats": ["A3", "B1"],
        }
