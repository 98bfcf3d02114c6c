"""Per-side cell grid for the Salvo engine."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from .errors import OutOfBoundsError

logger = logging.getLogger(__name__)

BOARD_SIZE = 10


@dataclass(frozen=True)
class Coordinate:
    """Immutable grid coordinate."""

    row: int
    col: int


class CellState(Enum):
    """State of a single grid cell."""

    EMPTY = "empty"
    OCCUPIED = "occupied"
    HIT = "hit"
    MISS = "miss"

    @property
    def attacked(self) -> bool:
        """True once the cell has been resolved by an attack."""
        return self is CellState.HIT or self is CellState.MISS


@dataclass
class Grid:
    """A side's 10×10 board of cell states.

    Ships are not stored as objects: a ship exists only as the set of
    ``OCCUPIED``/``HIT`` cells it left behind when it was placed. Cells only
    ever move ``EMPTY -> OCCUPIED`` during setup and ``OCCUPIED -> HIT`` or
    ``EMPTY -> MISS`` during combat.
    """

    size: int = BOARD_SIZE
    owner: str = "unknown"
    _cells: list[list[CellState]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._cells = [[CellState.EMPTY] * self.size for _ in range(self.size)]

    @classmethod
    def create(cls, owner: str = "unknown") -> Grid:
        """Return a new standard-size grid with every cell empty."""
        return cls(owner=owner)

    def is_valid_coordinate(self, coord: Coordinate) -> bool:
        """Check whether a coordinate lies inside the grid boundaries."""
        return 0 <= coord.row < self.size and 0 <= coord.col < self.size

    def cell_state(self, coord: Coordinate) -> CellState:
        """Return the state of a cell."""
        self._require_in_bounds(coord)
        return self._cells[coord.row][coord.col]

    def set_state(self, coord: Coordinate, state: CellState) -> None:
        """Overwrite a cell.

        Only the placement engine and the attack resolver call this; neither
        the rendering nor the input side of the game mutates a grid.
        """
        self._require_in_bounds(coord)
        self._cells[coord.row][coord.col] = state

    def remaining_ship_cells(self) -> int:
        """Number of ship cells not yet hit. Zero means the fleet is destroyed."""
        return self.count(CellState.OCCUPIED)

    def count(self, state: CellState) -> int:
        return sum(row.count(state) for row in self._cells)

    def coordinates(self) -> Iterator[Coordinate]:
        """Yield every coordinate in row-major order."""
        for row in range(self.size):
            for col in range(self.size):
                yield Coordinate(row, col)

    def untargeted(self) -> list[Coordinate]:
        """Return the coordinates that may still be attacked."""
        return [
            coord
            for coord in self.coordinates()
            if not self._cells[coord.row][coord.col].attacked
        ]

    def rows(self) -> tuple[tuple[CellState, ...], ...]:
        """Read-only snapshot of the full cell-state array."""
        return tuple(tuple(row) for row in self._cells)

    def _require_in_bounds(self, coord: Coordinate) -> None:
        if not self.is_valid_coordinate(coord):
            logger.error(
                "coordinate_out_of_bounds",
                extra={"row": coord.row, "col": coord.col, "owner": self.owner},
            )
            raise OutOfBoundsError(
                f"Coordinate ({coord.row}, {coord.col}) is outside the {self.size}x{self.size} grid."
            )
