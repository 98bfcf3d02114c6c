"""Attack resolution against a single grid."""

from __future__ import annotations

import logging
from enum import Enum

from salvo.telemetry import get_meter, get_tracer

from .errors import AlreadyAttackedError
from .grid import CellState, Coordinate, Grid

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.attack")
meter = get_meter("salvo.engine.attack")

ATTACK_COUNTER = meter.create_counter(
    "salvo_engine_attacks",
    unit="1",
    description="Attacks resolved against a grid",
)


class AttackResult(Enum):
    """Outcome of a resolved attack."""

    HIT = "hit"
    MISS = "miss"


def attack(grid: Grid, coord: Coordinate) -> AttackResult:
    """Resolve one attack and update the target cell.

    Raises ``OutOfBoundsError`` for coordinates off the grid and
    ``AlreadyAttackedError`` for cells already hit or missed; in both cases
    the grid is left untouched and the caller is expected to pick again.
    """
    with tracer.start_as_current_span("attack.resolve") as span:
        span.set_attribute("attack.row", coord.row)
        span.set_attribute("attack.col", coord.col)
        span.set_attribute("grid.owner", grid.owner)
        state = grid.cell_state(coord)
        if state.attacked:
            logger.warning(
                "attack_duplicate",
                extra={"row": coord.row, "col": coord.col, "owner": grid.owner},
            )
            raise AlreadyAttackedError(
                f"Cell ({coord.row}, {coord.col}) has already been attacked."
            )

        if state is CellState.OCCUPIED:
            grid.set_state(coord, CellState.HIT)
            result = AttackResult.HIT
        else:
            grid.set_state(coord, CellState.MISS)
            result = AttackResult.MISS

        span.set_attribute("attack.outcome", result.value)
        ATTACK_COUNTER.add(1, attributes={"outcome": result.value, "owner": grid.owner})
        logger.info(
            "attack_%s",
            result.value,
            extra={
                "row": coord.row,
                "col": coord.col,
                "owner": grid.owner,
                "remaining": grid.remaining_ship_cells(),
            },
        )
        return result
