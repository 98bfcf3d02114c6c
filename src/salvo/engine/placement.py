"""Ship placement: feasibility checks, commits, and placement strategies."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum

from salvo.telemetry import get_meter, get_tracer

from .errors import NoLegalPlacementError
from .fleet import FLEET, ShipSpec
from .grid import CellState, Coordinate, Grid

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.placement")
meter = get_meter("salvo.engine.placement")

PLACEMENT_COUNTER = meter.create_counter(
    "salvo_engine_ship_placements",
    unit="1",
    description="Ship placements committed, by strategy",
)

RANDOM_PLACEMENT_ATTEMPTS = 1000


class Orientation(Enum):
    """Direction a ship grows from its origin cell, as a (row, col) step."""

    RIGHT = (0, 1)
    DOWN = (1, 0)
    DOWN_RIGHT = (1, 1)
    UP_RIGHT = (-1, 1)

    @property
    def step(self) -> tuple[int, int]:
        return self.value


@dataclass(frozen=True)
class Placement:
    """Where a ship went: origin cell, length and orientation."""

    origin: Coordinate
    length: int
    orientation: Orientation

    def cells(self) -> list[Coordinate]:
        return footprint(self.origin, self.length, self.orientation)


def footprint(origin: Coordinate, length: int, orientation: Orientation) -> list[Coordinate]:
    """Return the ordered cells a ship would cover. Cells may fall off the grid."""
    d_row, d_col = orientation.step
    return [Coordinate(origin.row + d_row * k, origin.col + d_col * k) for k in range(length)]


def can_place(grid: Grid, origin: Coordinate, length: int, orientation: Orientation) -> bool:
    """Return True if every footprint cell is on the grid and empty."""
    for coord in footprint(origin, length, orientation):
        if not grid.is_valid_coordinate(coord):
            return False
        if grid.cell_state(coord) is not CellState.EMPTY:
            return False
    return True


def place(
    grid: Grid,
    origin: Coordinate,
    length: int,
    orientation: Orientation,
    *,
    strategy: str = "manual",
) -> None:
    """Mark the footprint as occupied.

    The caller must have checked :func:`can_place` with the same arguments;
    occupancy is not re-validated here.
    """
    with tracer.start_as_current_span("placement.place") as span:
        span.set_attribute("ship.length", length)
        span.set_attribute("ship.orientation", orientation.name)
        span.set_attribute("ship.origin.row", origin.row)
        span.set_attribute("ship.origin.col", origin.col)
        span.set_attribute("grid.owner", grid.owner)
        for coord in footprint(origin, length, orientation):
            grid.set_state(coord, CellState.OCCUPIED)
        PLACEMENT_COUNTER.add(1, attributes={"strategy": strategy, "owner": grid.owner})
        logger.info(
            "ship_placed",
            extra={
                "owner": grid.owner,
                "length": length,
                "orientation": orientation.name,
                "row": origin.row,
                "col": origin.col,
                "strategy": strategy,
            },
        )


def try_random_placement(
    grid: Grid,
    length: int,
    rng: random.Random,
    attempts: int = RANDOM_PLACEMENT_ATTEMPTS,
) -> Placement | None:
    """Draw up to ``attempts`` random origins/orientations; return the first feasible one."""
    orientations = list(Orientation)
    for attempt in range(1, attempts + 1):
        orientation = rng.choice(orientations)
        origin = Coordinate(rng.randrange(grid.size), rng.randrange(grid.size))
        if can_place(grid, origin, length, orientation):
            logger.debug(
                "random_placement_found",
                extra={"owner": grid.owner, "length": length, "attempts": attempt},
            )
            return Placement(origin, length, orientation)
    return None


def scan_placement(grid: Grid, length: int) -> Placement | None:
    """Return the first feasible placement by orientation, then row, then column."""
    for orientation in Orientation:
        for origin in grid.coordinates():
            if can_place(grid, origin, length, orientation):
                return Placement(origin, length, orientation)
    return None


def place_random(
    grid: Grid,
    length: int,
    rng: random.Random,
    attempts: int = RANDOM_PLACEMENT_ATTEMPTS,
) -> Placement:
    """Place a ship at a random feasible spot, falling back to an exhaustive scan."""
    with tracer.start_as_current_span("placement.place_random") as span:
        span.set_attribute("ship.length", length)
        span.set_attribute("grid.owner", grid.owner)
        strategy = "random"
        placement = try_random_placement(grid, length, rng, attempts)
        if placement is None:
            logger.warning(
                "random_placement_exhausted",
                extra={"owner": grid.owner, "length": length, "attempts": attempts},
            )
            strategy = "scan"
            placement = scan_placement(grid, length)
        if placement is None:
            logger.error("no_legal_placement", extra={"owner": grid.owner, "length": length})
            raise NoLegalPlacementError(f"No room left for a ship of length {length}.")
        span.set_attribute("placement.strategy", strategy)
        place(grid, placement.origin, length, placement.orientation, strategy=strategy)
        return placement


def place_fleet_random(
    grid: Grid, rng: random.Random, fleet: tuple[ShipSpec, ...] = FLEET
) -> list[Placement]:
    """Randomly place every ship of the fleet, in catalog order."""
    with tracer.start_as_current_span("placement.place_fleet_random") as span:
        span.set_attribute("grid.owner", grid.owner)
        placements = [place_random(grid, spec.length, rng) for spec in fleet]
        logger.debug(
            "fleet_placed",
            extra={"owner": grid.owner, "ships": len(placements)},
        )
        return placements
