"""
Seat map state for Seatbook.
A grid of row letters and seat numbers plus a single-seat selection.
"""

import re
import string
from enum import Enum
from typing import AbstractSet, Optional, Iterable, List, Dict, FrozenSet, Tuple
import logging

logger = logging.getLogger(__name__)

SEAT_ID_PATTERN = re.compile(r"^([A-Z])([1-9][0-9]*)$")
MAX_ROWS = len(string.ascii_uppercase)


class SeatState(str, Enum):
    """Visual state of one seat."""
    AVAILABLE = "available"
    BOOKED = "booked"
    SELECTED = "selected"


class SelectionState(str, Enum):
    """State of a seat selection."""
    NO_SELECTION = "no_selection"
    SELECTED = "selected"


def parse_seat_id(seat_id: str) -> Tuple[str, int]:
    """
    Split a seat identifier into its row letter and seat number.

    Raises:
        ValueError: If the identifier is not a row letter followed by a number
    """
    match = SEAT_ID_PATTERN.match(seat_id or "")
    if not match:
        raise ValueError(f"Invalid seat identifier: {seat_id!r}")
    return match.group(1), int(match.group(2))


class SeatMap:
    """Row-letter x seat-number grid (A1, A2, ..., B1, ...)."""

    def __init__(self, rows: int, seats_per_row: int):
        if not 1 <= rows <= MAX_ROWS:
            raise ValueError(f"rows must be between 1 and {MAX_ROWS}")
        if seats_per_row < 1:
            raise ValueError("seats_per_row must be at least 1")
        self.rows = rows
        self.seats_per_row = seats_per_row

    @property
    def row_labels(self) -> List[str]:
        return list(string.ascii_uppercase[:self.rows])

    @property
    def capacity(self) -> int:
        return self.rows * self.seats_per_row

    def seat_ids(self) -> List[str]:
        return [
            f"{row}{number}"
            for row in self.row_labels
            for number in range(1, self.seats_per_row + 1)
        ]

    def contains(self, seat_id: str) -> bool:
        try:
            row, number = parse_seat_id(seat_id)
        except ValueError:
            return False
        return row in self.row_labels and 1 <= number <= self.seats_per_row

    def seat_state(
        self,
        seat_id: str,
        booked_seats: AbstractSet[str],
        selected_seat: Optional[str] = None
    ) -> SeatState:
        # A booked seat never renders as selected
        if seat_id in booked_seats:
            return SeatState.BOOKED
        if seat_id == selected_seat:
            return SeatState.SELECTED
        return SeatState.AVAILABLE

    def render(
        self,
        booked_seats: Iterable[str],
        selected_seat: Optional[str] = None
    ) -> List[Dict[str, object]]:
        """
        Render the grid row by row.

        Returns:
            One entry per row: {"row": "A", "seats": [{"seat_id": "A1", "state": "available"}, ...]}
        """
        booked = frozenset(booked_seats)
        return [
            {
                "row": row,
                "seats": [
                    {
                        "seat_id": f"{row}{number}",
                        "state": self.seat_state(f"{row}{number}", booked, selected_seat).value,
                    }
                    for number in range(1, self.seats_per_row + 1)
                ],
            }
            for row in self.row_labels
        ]


class SeatSelection:
    """
    Single-seat selection over a seat map.

    States are NoSelection and Selected(seat_id). Selecting a booked seat is
    rejected and clears the selection; a refreshed booked set that contains
    the selected seat forces the selection back to NoSelection.
    """

    def __init__(self, seat_map: SeatMap, booked_seats: Iterable[str] = ()):
        self.seat_map = seat_map
        self._booked: FrozenSet[str] = frozenset(booked_seats)
        self._selected: Optional[str] = None

    @property
    def selected_seat(self) -> Optional[str]:
        return self._selected

    @property
    def booked_seats(self) -> FrozenSet[str]:
        return self._booked

    @property
    def state(self) -> SelectionState:
        if self._selected is None:
            return SelectionState.NO_SELECTION
        return SelectionState.SELECTED

    def select_seat(self, seat_id: str) -> bool:
        """
        Try to select a seat.

        Returns:
            True if the seat is now selected, False if the request was rejected
        """
        if not self.seat_map.contains(seat_id) or seat_id in self._booked:
            logger.debug(f"Rejected selection of seat {seat_id}")
            self._selected = None
            return False

        self._selected = seat_id
        return True

    def apply_booked_seats(self, booked_seats: Iterable[str]) -> bool:
        """
        Replace the booked set after a refresh.

        Returns:
            True if the current selection was taken by someone else and cleared
        """
        self._booked = frozenset(booked_seats)
        if self._selected is not None and self._selected in self._booked:
            logger.info(f"Selected seat {self._selected} was booked concurrently, clearing selection")
            self._selected = None
            return True
        return False

    def reset(self):
        """Clear the selection (the booking dialog was closed)."""
        self._selected = None

    def seat_state(self, seat_id: str) -> SeatState:
        return self.seat_map.seat_state(seat_id, self._booked, self._selected)

    def render(self) -> List[Dict[str, object]]:
        return self.seat_map.render(self._booked, self._selected)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "selected_seat": self._selected,
            "booked_seats": sorted(self._booked),
        }
