"""Fleet catalog shared by both sides."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ShipSpec:
    """Name and length of a ship class."""

    name: str
    length: int


FLEET: tuple[ShipSpec, ...] = (
    ShipSpec("Carrier", 5),
    ShipSpec("Battleship", 4),
    ShipSpec("Cruiser", 3),
    ShipSpec("Submarine", 3),
    ShipSpec("Destroyer", 2),
)


def total_ship_cells(fleet: tuple[ShipSpec, ...] = FLEET) -> int:
    """Return the number of cells a fully placed fleet occupies."""
    return sum(spec.length for spec in fleet)
